# agegender/detect/detect.py
"""
Face Detection module.

Hai backend:
- HaarFaceDetector: OpenCV Haar cascade (có sẵn trong cv2.data, không cần model)
- UltraLightFaceDetector: version-RFB-320 TFLite (INT8 hoặc float32)

Kết quả là list BoundingBox; phần tử đầu tiên là khuôn mặt được phân tích.

Thread-safe: Sử dụng Lock cho TFLite inference.
"""
import logging
import threading
from dataclasses import dataclass
from math import ceil
from typing import List

import cv2
import numpy as np

from ..core.tflite_helper import get_interpreter

logger = logging.getLogger(__name__)

# --- CẤU HÌNH ULTRALIGHT ---
MODEL_PATH_INT8 = "models/detection/version-RFB-320_int8_without_postprocessing.tflite"
INPUT_SIZE = (320, 240)  # (width, height)

# INT8 Quantization parameters (mặc định, sẽ đọc lại từ model)
INPUT_SCALE = 0.0078125
INPUT_ZERO_POINT = -1

CENTER_VARIANCE = 0.1
SIZE_VARIANCE = 0.2
NMS_THRESHOLD = 0.3
MIN_SIZES = [[10, 16, 24], [32, 48], [64, 96], [128, 176, 256]]
STRIDES = [8, 16, 32, 64]


@dataclass(frozen=True)
class BoundingBox:
    """Hình chữ nhật (left, top, width, height) theo pixel của ảnh gốc."""
    left: int
    top: int
    width: int
    height: int
    confidence: float = 1.0

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def to_dict(self) -> dict:
        return {
            'left': self.left,
            'top': self.top,
            'width': self.width,
            'height': self.height,
            'confidence': round(float(self.confidence), 4),
        }


class FaceLocator:
    """Interface chung cho các face detector."""

    name = "base"

    def detect_faces(self, image: np.ndarray) -> List[BoundingBox]:
        raise NotImplementedError

    def close(self):
        pass


class HaarFaceDetector(FaceLocator):
    """
    Face detector dùng Haar cascade của OpenCV.
    Kết quả sắp xếp theo diện tích giảm dần (mặt lớn nhất trước).
    """

    name = "haar"

    def __init__(self, cascade_path=None, scale_factor=1.1, min_neighbors=5, min_size=(30, 30)):
        if cascade_path is None:
            cascade_path = cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
        self.cascade = cv2.CascadeClassifier(cascade_path)
        if self.cascade.empty():
            raise FileNotFoundError(f"Không load được Haar cascade: {cascade_path}")

        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size
        logger.info(f"[Haar Detector] Loaded: {cascade_path}")

    def detect_faces(self, image):
        if image.ndim == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image

        faces = self.cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )

        boxes = [BoundingBox(int(x), int(y), int(w), int(h)) for (x, y, w, h) in faces]
        boxes.sort(key=lambda b: b.area, reverse=True)
        return boxes


class UltraLightFaceDetector(FaceLocator):
    """
    Face Detector dùng version-RFB-320 (không có post-processing trong graph).
    Thread-safe.

    Model:
    - Input: [1, 240, 320, 3] int8 hoặc float32, normalize về [-1, 1]
    - Output boxes: [1, 4420, 4]
    - Output scores: [1, 4420, 2]
    """

    name = "ultralight"

    def __init__(self, model_path=MODEL_PATH_INT8, conf_threshold=0.6, interpreter=None):
        # Thread-safety lock
        self._inference_lock = threading.Lock()

        self.conf_threshold = conf_threshold
        self.model_path = model_path
        self.input_shape = INPUT_SIZE

        self.interpreter = interpreter if interpreter is not None else get_interpreter(model_path)
        self.interpreter.allocate_tensors()
        self.input_details = self.interpreter.get_input_details()
        self.output_details = self.interpreter.get_output_details()

        self._input_dtype = self.input_details[0]['dtype']
        self._input_index = self.input_details[0]['index']
        self._output_indices = [d['index'] for d in self.output_details]

        # Lấy quantization parameters từ model
        self._input_scale, self._input_zero_point = _quant_params(
            self.input_details[0], INPUT_SCALE, INPUT_ZERO_POINT
        )
        self._output_params = [_quant_params(d, 1.0, 0) for d in self.output_details]

        # Pre-generate priors
        self._priors_cache = generate_priors(self.input_shape)

        logger.info(f"[UltraLight Detector] Loaded: {model_path}")
        logger.debug(f"[UltraLight Detector] Priors: {len(self._priors_cache)}")

    def _preprocess(self, frame):
        """
        Pipeline:
        1. Resize về 320x240
        2. Convert BGR -> RGB
        3. Normalize về [-1, 1]
        4. Quantize nếu model INT8: q = value / scale + zero_point
        """
        img_resized = cv2.resize(frame, self.input_shape)
        img_rgb = cv2.cvtColor(img_resized, cv2.COLOR_BGR2RGB)
        img_float = (img_rgb.astype(np.float32) - 127.5) / 127.5

        if self._input_dtype == np.int8:
            img = np.clip(
                np.round(img_float / self._input_scale + self._input_zero_point),
                -128, 127
            ).astype(np.int8)
        elif self._input_dtype == np.uint8:
            img = np.clip(
                np.round(img_float / self._input_scale + self._input_zero_point),
                0, 255
            ).astype(np.uint8)
        else:
            img = img_float

        return np.expand_dims(img, axis=0)

    def _dequantize_output(self, output, param_idx):
        """float_value = (int_value - zero_point) * scale"""
        if output.dtype == np.int8 or output.dtype == np.uint8:
            scale, zero_point = self._output_params[param_idx]
            return (output.astype(np.float32) - zero_point) * scale
        return output.astype(np.float32)

    def detect_faces(self, frame):
        """
        Detect faces trong frame. Thread-safe.

        Returns:
            List BoundingBox, confidence giảm dần
        """
        h_img, w_img = frame.shape[:2]

        img_input = self._preprocess(frame)

        with self._inference_lock:
            self.interpreter.set_tensor(self._input_index, img_input)
            self.interpreter.invoke()
            out_0 = np.array(self.interpreter.get_tensor(self._output_indices[0])[0], copy=True)
            out_1 = np.array(self.interpreter.get_tensor(self._output_indices[1])[0], copy=True)

        out_0 = self._dequantize_output(out_0, 0)
        out_1 = self._dequantize_output(out_1, 1)

        # boxes có shape [..., 4], scores có shape [..., 2]
        if out_0.shape[-1] == 4:
            boxes_enc, scores = out_0, out_1
        else:
            boxes_enc, scores = out_1, out_0

        return decode_detections(
            boxes_enc, scores[:, 1], self._priors_cache,
            (w_img, h_img), self.conf_threshold
        )


def _quant_params(detail, default_scale, default_zero_point):
    quant = detail.get('quantization_parameters', {}) or {}
    scales = quant.get('scales')
    zero_points = quant.get('zero_points')
    scale = float(scales[0]) if scales is not None and len(scales) > 0 else default_scale
    zero_point = int(zero_points[0]) if zero_points is not None and len(zero_points) > 0 else default_zero_point
    return scale, zero_point


def generate_priors(input_shape):
    """
    Generate anchor boxes (priors) cho SSD-style detection.
    Mỗi prior: [cx, cy, w, h] đã chuẩn hóa về [0, 1].
    """
    width, height = input_shape
    feature_map_sizes = [(ceil(height / s), ceil(width / s)) for s in STRIDES]

    total = sum(fh * fw * len(ms) for (fh, fw), ms in zip(feature_map_sizes, MIN_SIZES))
    priors = np.empty((total, 4), dtype=np.float32)

    idx = 0
    for k, (fh, fw) in enumerate(feature_map_sizes):
        for y in range(fh):
            cy = (y + 0.5) / fh
            for x in range(fw):
                cx = (x + 0.5) / fw
                for min_size in MIN_SIZES[k]:
                    priors[idx] = [cx, cy, min_size / width, min_size / height]
                    idx += 1

    return priors


def decode_detections(boxes_enc, scores, priors, image_size, conf_threshold,
                      nms_threshold=NMS_THRESHOLD):
    """
    Decode output model thành BoundingBox trên ảnh gốc (filter + NMS).

    Args:
        boxes_enc: [N, 4] offsets so với priors
        scores: [N] score của class "face"
        priors: [N, 4]
        image_size: (width, height) của ảnh gốc
    """
    w_img, h_img = image_size

    mask = scores > conf_threshold
    scores_filtered = scores[mask]
    if len(scores_filtered) == 0:
        return []
    boxes_filtered = boxes_enc[mask]
    priors = priors[mask]

    boxes = np.concatenate([
        priors[:, :2] + boxes_filtered[:, :2] * CENTER_VARIANCE * priors[:, 2:],
        priors[:, 2:] * np.exp(boxes_filtered[:, 2:] * SIZE_VARIANCE)
    ], axis=1)

    # (cx, cy, w, h) -> (x_min, y_min, x_max, y_max)
    boxes[:, :2] -= boxes[:, 2:] / 2
    boxes[:, 2:] += boxes[:, :2]

    boxes[:, 0] *= w_img
    boxes[:, 2] *= w_img
    boxes[:, 1] *= h_img
    boxes[:, 3] *= h_img

    rects = boxes.astype(int)
    # NMSBoxes nhận [x, y, w, h]
    nms_rects = [[int(r[0]), int(r[1]), int(r[2] - r[0]), int(r[3] - r[1])] for r in rects]
    keep = cv2.dnn.NMSBoxes(nms_rects, scores_filtered.tolist(), conf_threshold, nms_threshold)

    results = []
    for i in np.array(keep).flatten():
        x_min, y_min, x_max, y_max = rects[i]
        x = max(0, int(x_min))
        y = max(0, int(y_min))
        w = min(int(x_max), w_img) - x
        h = min(int(y_max), h_img) - y
        if w <= 0 or h <= 0:
            continue
        results.append(BoundingBox(x, y, w, h, float(scores_filtered[i])))

    results.sort(key=lambda b: b.confidence, reverse=True)
    return results


def create_face_locator(backend="haar", model_path=None, conf_threshold=0.6) -> FaceLocator:
    """Tạo face locator theo tên backend."""
    if backend == "haar":
        return HaarFaceDetector()
    if backend == "ultralight":
        return UltraLightFaceDetector(model_path=model_path or MODEL_PATH_INT8,
                                      conf_threshold=conf_threshold)
    raise ValueError(f"Unknown detection backend: {backend!r} (haar | ultralight)")
