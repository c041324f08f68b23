# agegender package
"""
Age/Gender Estimation - Face Detection + TFLite age/gender models

Structure:
    agegender/
    ├── core/                     # Core infrastructure
    │   ├── settings.py           # Configuration
    │   ├── camera.py             # Chụp ảnh ra file tạm
    │   ├── tflite_helper.py      # TFLite interpreter + GPU/NNAPI delegates
    │   ├── model_catalog.py      # Menu 4 cặp model age/gender
    │   ├── model_factory.py      # Factory cho face locator / pipeline
    │   └── errors.py             # Exceptions
    ├── detect/                   # Face detection (Haar / UltraLight)
    ├── estimation/               # Age + gender TFLite models
    ├── processing/               # Crop, pipeline, display
    ├── web/                      # Flask web UI
    └── main.py                   # CLI entry point

Usage:
    from agegender import create_pipeline

    pipeline = create_pipeline()
    pipeline.init_models(0)
    result = pipeline.analyze_file("photo.jpg")
"""

from .core.model_factory import create_face_locator, create_pipeline
from .core.settings import settings
from .processing import AgeGenderPipeline, AnalysisResult

__version__ = "1.0.0"

__all__ = [
    'settings',
    'create_face_locator',
    'create_pipeline',
    'AgeGenderPipeline',
    'AnalysisResult',
]
