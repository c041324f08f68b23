# agegender/processing/pipeline.py
"""
Pipeline chính: detect face -> crop -> age + gender.

Usage:
    from agegender.processing import AgeGenderPipeline

    pipeline = AgeGenderPipeline(face_locator, model_dir="models")
    pipeline.init_models(0)
    result = pipeline.analyze_file("photo.jpg")
    print(result.age_years, result.gender)
"""
import math
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from ..core.errors import ModelNotInitializedError, NoFaceFoundError
from ..core.model_catalog import DEFAULT_VARIANT_INDEX, get_variant
from ..core.tflite_helper import InterpreterOptions
from ..detect import BoundingBox, FaceLocator
from ..estimation import AgeGenderModels, gender_label
from ..estimation.age import AGE_SCALE
from .cropper import DEFAULT_SHIFT, crop_to_bbox, load_image, rotate_image
from .display import MODELS_INITIALIZED_MESSAGE, NO_FACE_MESSAGE

logger = logging.getLogger(__name__)


class ModelStatus(Enum):
    """Trạng thái khởi tạo models."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class AnalysisResult:
    """Kết quả phân tích khuôn mặt đầu tiên trong ảnh."""
    bbox: BoundingBox
    face: np.ndarray
    age: float                        # Giá trị thô từ model (đã nhân scale)
    gender_scores: np.ndarray         # [male, female]
    age_inference_ms: float
    gender_inference_ms: float
    face_count: int = 1

    @property
    def age_years(self) -> int:
        return int(math.floor(self.age))

    @property
    def gender(self) -> str:
        return gender_label(self.gender_scores)

    def to_dict(self) -> dict:
        return {
            'age': self.age_years,
            'age_raw': round(float(self.age), 3),
            'gender': self.gender,
            'gender_scores': [round(float(s), 4) for s in self.gender_scores],
            'age_inference_ms': round(self.age_inference_ms, 2),
            'gender_inference_ms': round(self.gender_inference_ms, 2),
            'face_count': self.face_count,
            'bbox': self.bbox.to_dict(),
        }


class AgeGenderPipeline:
    """
    Kết nối face locator với cặp model age/gender.
    Models có thể load đồng bộ hoặc trong background thread.
    """

    def __init__(
        self,
        face_locator: FaceLocator,
        model_dir: str = "models",
        crop_shift: int = DEFAULT_SHIFT,
        age_scale: float = AGE_SCALE,
        model_loader: Optional[Callable[..., AgeGenderModels]] = None
    ):
        """
        Args:
            face_locator: Detector trả về list BoundingBox
            model_dir: Thư mục chứa các file .tflite
            crop_shift: Số pixel dịch bbox xuống khi crop
            age_scale: Hệ số nhân output age model
            model_loader: Hàm load models (mặc định AgeGenderModels.load)
        """
        self.face_locator = face_locator
        self.model_dir = model_dir
        self.crop_shift = crop_shift
        self.age_scale = age_scale
        self._model_loader = model_loader or AgeGenderModels.load

        self._models: Optional[AgeGenderModels] = None
        self._state_lock = threading.Lock()
        self._analyze_lock = threading.Lock()
        self._ready = threading.Event()
        self._status = ModelStatus.IDLE
        self._last_error: Optional[str] = None
        self._variant_index: Optional[int] = None

    # === MODEL LIFECYCLE ===
    @property
    def status(self) -> ModelStatus:
        return self._status

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def variant_index(self) -> Optional[int]:
        return self._variant_index

    @property
    def models(self) -> Optional[AgeGenderModels]:
        return self._models

    @property
    def is_ready(self) -> bool:
        """True khi có models để phân tích (kể cả khi lần re-init gần nhất lỗi)."""
        return self._models is not None

    def init_models(
        self,
        variant_index: int = DEFAULT_VARIANT_INDEX,
        options: Optional[InterpreterOptions] = None
    ) -> AgeGenderModels:
        """
        Load cặp model của variant. Models cũ (nếu có) bị đóng sau khi
        models mới load xong.

        Raises:
            KeyError nếu variant_index sai, lỗi load model được raise lại
        """
        variant = get_variant(variant_index)

        with self._state_lock:
            self._status = ModelStatus.LOADING
            self._last_error = None
            self._ready.clear()

        try:
            models = self._model_loader(
                variant, self.model_dir, options or InterpreterOptions(),
                age_scale=self.age_scale
            )
        except Exception as e:
            with self._state_lock:
                self._status = ModelStatus.ERROR
                self._last_error = str(e)
            self._ready.set()
            logger.error(f"❌ Không load được models: {e}")
            raise

        with self._analyze_lock, self._state_lock:
            old = self._models
            self._models = models
            self._variant_index = variant_index
            self._status = ModelStatus.READY
        self._ready.set()

        if old is not None:
            old.close()

        logger.info(f"✅ {MODELS_INITIALIZED_MESSAGE}")
        return models

    def init_models_async(
        self,
        variant_index: int = DEFAULT_VARIANT_INDEX,
        options: Optional[InterpreterOptions] = None,
        on_done: Optional[Callable[[Optional[Exception]], None]] = None
    ) -> threading.Thread:
        """
        Load models trong background thread để không block caller.

        Args:
            on_done: callback(error) gọi khi xong (error=None nếu thành công)
        """
        get_variant(variant_index)

        with self._state_lock:
            self._status = ModelStatus.LOADING
            self._ready.clear()

        def _worker():
            error = None
            try:
                self.init_models(variant_index, options)
            except Exception as e:
                error = e
            if on_done is not None:
                on_done(error)

        thread = threading.Thread(target=_worker, name="model-init", daemon=True)
        thread.start()
        return thread

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Chờ lần init gần nhất kết thúc. True nếu models sẵn sàng."""
        self._ready.wait(timeout)
        return self.is_ready

    def close(self):
        """Đóng interpreters."""
        with self._analyze_lock, self._state_lock:
            models = self._models
            self._models = None
            self._status = ModelStatus.IDLE
        if models is not None:
            models.close()
        self.face_locator.close()

    # === ANALYSIS ===
    def analyze(self, image: np.ndarray) -> AnalysisResult:
        """
        Detect face, crop khuôn mặt đầu tiên và dự đoán age/gender.

        Raises:
            ModelNotInitializedError: models chưa load
            NoFaceFoundError: không có khuôn mặt nào
            CropError: bbox nằm ngoài ảnh
        """
        with self._analyze_lock:
            models = self._models
            if models is None:
                raise ModelNotInitializedError("Models have not been initialized")

            faces = self.face_locator.detect_faces(image)
            if not faces:
                raise NoFaceFoundError(NO_FACE_MESSAGE)

            bbox = faces[0]
            face = crop_to_bbox(image, bbox, self.crop_shift)

            age = models.age.predict_age(face)
            gender_scores = models.gender.predict_gender(face)

            result = AnalysisResult(
                bbox=bbox,
                face=face,
                age=age,
                gender_scores=gender_scores,
                age_inference_ms=models.age.inference_time,
                gender_inference_ms=models.gender.inference_time,
                face_count=len(faces),
            )

        logger.debug(
            f"Face {bbox.left},{bbox.top} {bbox.width}x{bbox.height}: "
            f"age={result.age_years} gender={result.gender}"
        )
        return result

    def analyze_file(self, path: str, rotation: int = 0) -> AnalysisResult:
        """Đọc ảnh từ file, xoay (nếu cần) rồi analyze."""
        image = load_image(path)
        if rotation:
            image = rotate_image(image, rotation)
        return self.analyze(image)
