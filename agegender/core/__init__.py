# agegender/core/__init__.py
"""
Core modules - Infrastructure & Configuration.

- settings: Unified configuration
- camera: Camera management
- tflite_helper: TFLite interpreter + delegates
- model_catalog: Danh sách model age/gender
- model_factory: Factory cho face locator / pipeline
- errors: Exceptions
"""

from .settings import settings, Settings
from .camera import CameraManager, CameraConfig, create_camera, create_image_file
from .tflite_helper import get_interpreter, InterpreterOptions, probe_delegates
from .model_catalog import MODEL_VARIANTS, ModelVariant, get_variant
from .model_factory import create_face_locator, create_pipeline

__all__ = [
    'settings',
    'Settings',
    'CameraManager',
    'CameraConfig',
    'create_camera',
    'create_image_file',
    'get_interpreter',
    'InterpreterOptions',
    'probe_delegates',
    'MODEL_VARIANTS',
    'ModelVariant',
    'get_variant',
    'create_face_locator',
    'create_pipeline',
]
