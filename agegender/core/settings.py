# agegender/core/settings.py
"""
Configuration đơn giản cho Age/Gender Estimation.
Chỉ giữ những settings thực sự cần thiết.

Override bằng file config/config.json (cùng tên key, UPPER_CASE).
"""
import os
import json
import platform
from dataclasses import dataclass, field


# === PLATFORM DETECTION ===
IS_WINDOWS = platform.system() == "Windows"
IS_PI = platform.system() == "Linux" and os.path.exists("/proc/device-tree/model")
HAS_DISPLAY = IS_WINDOWS or os.environ.get("DISPLAY", "") != ""

# === PATHS ===
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
CONFIG_PATH = os.path.join(BASE_DIR, 'config', 'config.json')


def _load_json_config(path: str) -> dict:
    """Load config từ JSON file, trả về {} nếu lỗi."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


@dataclass
class Settings:
    """Configuration đơn giản - chỉ giữ settings cần thiết."""

    # === PLATFORM (read-only) ===
    IS_WINDOWS: bool = field(default_factory=lambda: IS_WINDOWS)
    IS_PI: bool = field(default_factory=lambda: IS_PI)
    HAS_DISPLAY: bool = field(default_factory=lambda: HAS_DISPLAY)
    BASE_DIR: str = field(default_factory=lambda: BASE_DIR)

    # === MODELS ===
    MODEL_DIR: str = "models"
    DEFAULT_MODEL_INDEX: int = 0          # Model đầu tiên trong menu (Quantized)
    AGE_SCALE: float = 116.0              # Output age model nằm trong [0, 1]

    # === DELEGATES ===
    USE_GPU: bool = False
    USE_NNAPI: bool = False
    GPU_DELEGATE_LIBRARY: str = "libtensorflowlite_gpu_delegate.so"
    NNAPI_DELEGATE_LIBRARY: str = "libnnapi_delegate.so"
    TFLITE_NUM_THREADS: int = 4

    # === FACE DETECTION ===
    DETECTION_BACKEND: str = "haar"       # "haar" | "ultralight"
    DETECTION_MODEL: str = "models/detection/version-RFB-320_int8_without_postprocessing.tflite"
    DETECTION_THRESHOLD: float = 0.6

    # === CROP / ORIENTATION ===
    CROP_SHIFT: int = 5                   # Dịch bbox xuống 5px khi crop
    ROTATION_DEGREES: int = 0             # Camera Android cần -90

    # === CAMERA ===
    CAMERA_WIDTH: int = 640
    CAMERA_HEIGHT: int = 480
    PICTURES_DIR: str = "pictures"

    # === WEB SERVER ===
    WEB_PORT: int = 5000

    # === DISPLAY ===
    FORCE_GUI_MODE: bool = False
    HEADLESS_MODE: bool = False

    def __post_init__(self):
        """Tính toán giá trị phụ thuộc platform."""
        self._load_from_json()
        self._compute_defaults()

    def _load_from_json(self):
        """Load settings từ config.json nếu có."""
        config = _load_json_config(CONFIG_PATH)
        for key, value in config.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

    def _compute_defaults(self):
        """Tính giá trị mặc định theo platform."""
        # Camera nhỏ hơn trên Pi
        if self.IS_PI:
            if self.CAMERA_WIDTH > 320:
                self.CAMERA_WIDTH = 320
            if self.CAMERA_HEIGHT > 240:
                self.CAMERA_HEIGHT = 240
            self.TFLITE_NUM_THREADS = 2

        # Headless mode
        self.HEADLESS_MODE = not self.IS_WINDOWS and not self.FORCE_GUI_MODE and not self.HAS_DISPLAY

    def resolve_path(self, path: str) -> str:
        """Đường dẫn tương đối được tính từ BASE_DIR."""
        if os.path.isabs(path):
            return path
        return os.path.join(self.BASE_DIR, path)

    # === PROPERTY ALIASES ===
    @property
    def model_dir(self) -> str:
        return self.resolve_path(self.MODEL_DIR)

    @property
    def pictures_dir(self) -> str:
        return self.resolve_path(self.PICTURES_DIR)

    @property
    def crop_shift(self) -> int:
        return self.CROP_SHIFT

    @property
    def tflite_num_threads(self) -> int:
        return self.TFLITE_NUM_THREADS

    @property
    def headless_mode(self) -> bool:
        return self.HEADLESS_MODE

    @property
    def camera_width(self) -> int:
        return self.CAMERA_WIDTH

    @property
    def camera_height(self) -> int:
        return self.CAMERA_HEIGHT

    @property
    def web_port(self) -> int:
        return self.WEB_PORT


# === SINGLETON ===
settings = Settings()
