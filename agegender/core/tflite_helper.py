# agegender/core/tflite_helper.py
"""
Helper module để load TFLite interpreter và hardware delegates.
Tự động chọn giữa tflite_runtime và tensorflow.lite.
Giúp code chạy được trên cả PC (TensorFlow) và Pi (tflite-runtime).

Delegates:
- GPU: libtensorflowlite_gpu_delegate.so
- NNAPI: chỉ có trên Android / board hỗ trợ, trên PC thường không có
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .settings import settings

logger = logging.getLogger(__name__)

GPU = "gpu"
NNAPI = "nnapi"

GPU_UNAVAILABLE_REASON = "GPU acceleration is not available on this device"
NNAPI_UNAVAILABLE_REASON = "NNAPI is not available on this device"

# Cache để tránh log nhiều lần
_logged_runtime = False
_probe_lock = threading.Lock()
_delegate_cache: Optional[Dict[str, "DelegateStatus"]] = None


@dataclass
class InterpreterOptions:
    """Tương đương Interpreter.Options: chọn delegate bằng 2 toggle."""
    use_gpu: bool = False
    use_nnapi: bool = False
    num_threads: Optional[int] = None


@dataclass
class DelegateStatus:
    """Kết quả kiểm tra một delegate."""
    name: str
    available: bool
    reason: str = ""


def _import_runtime():
    """
    Trả về (Interpreter class, load_delegate, tên runtime).
    Thử tflite_runtime trước (nhẹ hơn), fallback sang tensorflow.
    """
    try:
        from tflite_runtime.interpreter import Interpreter, load_delegate
        return Interpreter, load_delegate, "tflite_runtime"
    except ImportError:
        pass

    try:
        import tensorflow as tf
        return tf.lite.Interpreter, tf.lite.experimental.load_delegate, "tensorflow.lite"
    except ImportError:
        pass

    raise ImportError(
        "Không tìm thấy TFLite interpreter!\n"
        "Cài đặt một trong hai:\n"
        "  - pip install tflite-runtime  (nhẹ, cho Pi)\n"
        "  - pip install tensorflow       (đầy đủ, cho PC)"
    )


def _delegate_library(name: str) -> str:
    if name == GPU:
        return settings.GPU_DELEGATE_LIBRARY
    return settings.NNAPI_DELEGATE_LIBRARY


def _try_load_delegate(name: str):
    """Load một delegate, trả về (delegate, lỗi)."""
    try:
        _, load_delegate, _ = _import_runtime()
    except ImportError as e:
        return None, str(e).splitlines()[0]

    library = _delegate_library(name)
    try:
        return load_delegate(library), ""
    except (ValueError, OSError, RuntimeError) as e:
        logger.debug(f"Delegate {name} ({library}) load failed: {e}")
        return None, str(e)


def probe_delegates(refresh: bool = False) -> Dict[str, DelegateStatus]:
    """
    Kiểm tra GPU/NNAPI delegate có dùng được trên máy này không.
    Kết quả được cache vì load delegate khá chậm.
    """
    global _delegate_cache

    with _probe_lock:
        if _delegate_cache is not None and not refresh:
            return dict(_delegate_cache)

        result = {}
        for name, reason in ((GPU, GPU_UNAVAILABLE_REASON), (NNAPI, NNAPI_UNAVAILABLE_REASON)):
            delegate, error = _try_load_delegate(name)
            if delegate is not None:
                result[name] = DelegateStatus(name, True)
            else:
                result[name] = DelegateStatus(name, False, reason)
                logger.info(f"Delegate {name}: không khả dụng ({error or reason})")

        _delegate_cache = result
        return dict(result)


def load_delegates(options: InterpreterOptions) -> List[object]:
    """
    Load các delegate được bật trong options.
    Delegate không khả dụng sẽ bị bỏ qua (toggle bị tắt), không raise.
    """
    delegates = []
    requested = []
    if options.use_gpu:
        requested.append(GPU)
    if options.use_nnapi:
        requested.append(NNAPI)

    for name in requested:
        delegate, error = _try_load_delegate(name)
        if delegate is None:
            logger.warning(f"⚠️ Bỏ qua delegate {name}: {error}")
            if name == GPU:
                options.use_gpu = False
            else:
                options.use_nnapi = False
            continue
        delegates.append(delegate)

    return delegates


def get_interpreter(model_path, num_threads=None, delegates=None):
    """
    Tạo TFLite Interpreter từ model path.

    Args:
        model_path: Đường dẫn đến file .tflite
        num_threads: Số threads cho inference (mặc định theo settings)
        delegates: List delegate đã load (GPU/NNAPI)
    """
    global _logged_runtime

    if num_threads is None:
        num_threads = max(1, int(settings.TFLITE_NUM_THREADS))

    Interpreter, _, runtime_name = _import_runtime()
    if not _logged_runtime:
        logger.info(f"[TFLite] Sử dụng {runtime_name} (threads={num_threads})")
        _logged_runtime = True

    if delegates:
        return Interpreter(
            model_path=model_path,
            num_threads=num_threads,
            experimental_delegates=list(delegates),
        )
    return Interpreter(model_path=model_path, num_threads=num_threads)
