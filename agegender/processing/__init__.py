# agegender/processing/__init__.py
"""
Processing modules - Image & Face Processing.

- cropper: load/rotate ảnh, crop theo bbox
- pipeline: detect -> crop -> age/gender
- display: format kết quả, overlay
"""

from .cropper import crop_to_bbox, decode_image, load_image, rotate_image
from .display import DisplayHandler, format_inference_times, format_result
from .pipeline import AgeGenderPipeline, AnalysisResult, ModelStatus

__all__ = [
    'crop_to_bbox',
    'decode_image',
    'load_image',
    'rotate_image',
    'DisplayHandler',
    'format_inference_times',
    'format_result',
    'AgeGenderPipeline',
    'AnalysisResult',
    'ModelStatus',
]
