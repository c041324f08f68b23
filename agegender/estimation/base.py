# agegender/estimation/base.py
"""
Base class cho các model TFLite chạy trên ảnh khuôn mặt.

Pipeline chung:
1. Resize về input size của model (bilinear)
2. Convert BGR -> RGB
3. Normalize về [0, 1]
4. Quantize nếu input tensor là int8/uint8
5. Invoke, dequantize output

Thread-safe: Sử dụng Lock cho TFLite inference.
"""
import os
import time
import logging
import threading

import cv2
import numpy as np

from ..core.errors import ModelNotInitializedError
from ..core.tflite_helper import get_interpreter

logger = logging.getLogger(__name__)


class TFLiteFaceModel:
    """Wrapper cho một TFLite interpreter nhận ảnh khuôn mặt."""

    DEFAULT_INPUT_SIZE = 224
    label = "model"

    def __init__(self, model_path=None, interpreter=None, num_threads=None, delegates=None):
        """
        Args:
            model_path: Đường dẫn file .tflite
            interpreter: Interpreter có sẵn (bỏ qua model_path)
            num_threads: Số threads cho inference
            delegates: List delegate đã load (GPU/NNAPI)
        """
        self._inference_lock = threading.Lock()
        self.model_path = model_path
        # Thời gian inference lần gần nhất (ms)
        self.inference_time = 0.0

        if interpreter is None:
            if model_path is None or not os.path.isfile(model_path):
                raise FileNotFoundError(f"{self.label} model not found: {model_path}")
            interpreter = get_interpreter(model_path, num_threads=num_threads, delegates=delegates)

        self.interpreter = interpreter
        self.interpreter.allocate_tensors()
        self.input_details = self.interpreter.get_input_details()
        self.output_details = self.interpreter.get_output_details()

        self._input_index = self.input_details[0]['index']
        self._output_index = self.output_details[0]['index']
        self._input_dtype = self.input_details[0]['dtype']

        # Input shape [1, H, W, 3]; shape động (-1) thì dùng mặc định
        raw_shape = self.input_details[0].get('shape', [])
        shape = tuple(int(d) for d in raw_shape)
        self.input_height = shape[1] if len(shape) >= 3 and shape[1] > 0 else self.DEFAULT_INPUT_SIZE
        self.input_width = shape[2] if len(shape) >= 3 and shape[2] > 0 else self.DEFAULT_INPUT_SIZE

        self._input_scale, self._input_zero_point = _quant_params(self.input_details[0])
        self._output_scale, self._output_zero_point = _quant_params(self.output_details[0])

        logger.info(
            f"[{self.label}] Loaded: {model_path or 'interpreter'} "
            f"input={self.input_width}x{self.input_height} dtype={np.dtype(self._input_dtype).name}"
        )

    def preprocess(self, face: np.ndarray) -> np.ndarray:
        if face.ndim == 2:
            face = cv2.cvtColor(face, cv2.COLOR_GRAY2BGR)

        img = cv2.resize(face, (self.input_width, self.input_height), interpolation=cv2.INTER_LINEAR)
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        img = img.astype(np.float32) / 255.0

        if self._input_dtype in (np.int8, np.uint8):
            info = np.iinfo(self._input_dtype)
            scale = self._input_scale or 1.0
            img = np.clip(
                np.round(img / scale + self._input_zero_point),
                info.min, info.max
            ).astype(self._input_dtype)
        else:
            img = img.astype(self._input_dtype)

        return np.expand_dims(img, axis=0)

    def run(self, face: np.ndarray) -> np.ndarray:
        """Chạy model trên một ảnh khuôn mặt, trả về output[0] (float32)."""
        if self.interpreter is None:
            raise ModelNotInitializedError(f"{self.label} model is closed")

        start = time.perf_counter()
        input_data = self.preprocess(face)

        with self._inference_lock:
            self.interpreter.set_tensor(self._input_index, input_data)
            self.interpreter.invoke()
            output = np.array(self.interpreter.get_tensor(self._output_index)[0], copy=True)

        output = self._dequantize(output)
        self.inference_time = (time.perf_counter() - start) * 1000
        return output

    def _dequantize(self, output):
        if output.dtype == np.int8 or output.dtype == np.uint8:
            scale = self._output_scale or 1.0
            return (output.astype(np.float32) - self._output_zero_point) * scale
        return output.astype(np.float32)

    def close(self):
        """Giải phóng interpreter."""
        with self._inference_lock:
            self.interpreter = None


def _quant_params(detail):
    """(scale, zero_point) của tensor; (0.0, 0) nếu không quantize."""
    quant = detail.get('quantization_parameters', {}) or {}
    scales = quant.get('scales')
    zero_points = quant.get('zero_points')
    if scales is not None and len(scales) > 0:
        zp = int(zero_points[0]) if zero_points is not None and len(zero_points) > 0 else 0
        return float(scales[0]), zp

    # API cũ: 'quantization': (scale, zero_point)
    legacy = detail.get('quantization')
    if legacy and legacy[0]:
        return float(legacy[0]), int(legacy[1])
    return 0.0, 0
