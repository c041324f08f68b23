# agegender/core/model_factory.py
"""
Factory module đơn giản để tạo face locator và pipeline từ settings.

Usage:
    from agegender.core.model_factory import create_pipeline

    pipeline = create_pipeline()
    pipeline.init_models(0)
"""
import logging

from .settings import settings as default_settings

logger = logging.getLogger(__name__)


def create_face_locator(settings=None):
    """Tạo face locator theo DETECTION_BACKEND."""
    from ..detect import create_face_locator as _create

    settings = settings or default_settings
    backend = settings.DETECTION_BACKEND
    logger.info(f"[Detector] Backend: {backend}")
    return _create(
        backend,
        model_path=settings.resolve_path(settings.DETECTION_MODEL),
        conf_threshold=settings.DETECTION_THRESHOLD,
    )


def create_pipeline(settings=None, face_locator=None):
    """Tạo AgeGenderPipeline (chưa load models)."""
    from ..processing.pipeline import AgeGenderPipeline

    settings = settings or default_settings
    if face_locator is None:
        face_locator = create_face_locator(settings)

    logger.info(f"[Models] Directory: {settings.model_dir}")
    return AgeGenderPipeline(
        face_locator,
        model_dir=settings.model_dir,
        crop_shift=settings.CROP_SHIFT,
        age_scale=settings.AGE_SCALE,
    )


def default_interpreter_options(settings=None):
    """InterpreterOptions từ USE_GPU / USE_NNAPI / TFLITE_NUM_THREADS."""
    from .tflite_helper import InterpreterOptions

    settings = settings or default_settings
    return InterpreterOptions(
        use_gpu=bool(settings.USE_GPU),
        use_nnapi=bool(settings.USE_NNAPI),
        num_threads=settings.TFLITE_NUM_THREADS,
    )
