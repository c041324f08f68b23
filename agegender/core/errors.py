# agegender/core/errors.py
"""
Exceptions dùng chung cho pipeline age/gender.
"""


class AgeGenderError(Exception):
    """Base class cho mọi lỗi của package."""


class NoFaceFoundError(AgeGenderError):
    """Không tìm thấy khuôn mặt nào trong ảnh."""


class ModelNotInitializedError(AgeGenderError):
    """Gọi inference trước khi models được load."""


class CropError(AgeGenderError):
    """Bounding box nằm hoàn toàn ngoài ảnh."""


class ImageDecodeError(AgeGenderError):
    """Không đọc/decode được file ảnh."""
