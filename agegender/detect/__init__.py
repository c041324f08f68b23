# agegender/detect/__init__.py
"""
Face Detection module.

Exports:
- BoundingBox: bbox (left, top, width, height)
- HaarFaceDetector / UltraLightFaceDetector: hai backend
- create_face_locator: chọn backend theo tên
"""

from .detect import (
    BoundingBox,
    FaceLocator,
    HaarFaceDetector,
    UltraLightFaceDetector,
    create_face_locator,
)

__all__ = [
    'BoundingBox',
    'FaceLocator',
    'HaarFaceDetector',
    'UltraLightFaceDetector',
    'create_face_locator',
]
