# agegender/processing/cropper.py
"""
Đọc ảnh, xoay ảnh và cắt vùng khuôn mặt.

Crop dịch bbox xuống CROP_SHIFT pixel (mặc định 5) theo chiều dọc,
giữ nguyên width/height của bbox.
"""
import os

import cv2
import numpy as np

from ..core.errors import CropError, ImageDecodeError

DEFAULT_SHIFT = 5

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def load_image(path: str) -> np.ndarray:
    """Decode file ảnh thành BGR array."""
    if not os.path.isfile(path):
        raise ImageDecodeError(f"Image not found: {path}")
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError(f"Could not decode image: {path}")
    return image


def decode_image(data: bytes) -> np.ndarray:
    """Decode ảnh từ bytes (upload)."""
    if not data:
        raise ImageDecodeError("Empty image data")
    image = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError("Could not decode image")
    return image


def rotate_image(image: np.ndarray, degrees: int) -> np.ndarray:
    """
    Xoay ảnh theo bội số của 90 độ.
    Góc dương = cùng chiều kim đồng hồ, góc âm = ngược chiều
    (ảnh camera điện thoại cần -90).
    """
    if degrees % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
    degrees %= 360
    if degrees == 0:
        return image
    return cv2.rotate(image, _ROTATIONS[degrees])


def crop_to_bbox(image: np.ndarray, bbox, shift: int = DEFAULT_SHIFT) -> np.ndarray:
    """
    Cắt vùng (left, top + shift, width, height) ra khỏi ảnh.
    Vùng vượt biên bị clip theo kích thước ảnh.

    Raises:
        CropError nếu vùng crop rỗng sau khi clip
    """
    h_img, w_img = image.shape[:2]

    x0 = bbox.left
    y0 = bbox.top + shift
    x1 = x0 + bbox.width
    y1 = y0 + bbox.height

    x0, y0 = max(0, x0), max(0, y0)
    x1, y1 = min(w_img, x1), min(h_img, y1)

    if x1 <= x0 or y1 <= y0:
        raise CropError(
            f"Bounding box {bbox.left},{bbox.top} {bbox.width}x{bbox.height} "
            f"(shift={shift}) is outside image {w_img}x{h_img}"
        )

    return image[y0:y1, x0:x1].copy()
