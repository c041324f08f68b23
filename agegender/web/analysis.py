# agegender/web/analysis.py
"""
Web Analysis API - chọn model, chụp/upload ảnh và xem kết quả.

Endpoints:
- GET  /api/models          - Danh sách model + delegate khả dụng + trạng thái
- POST /api/models/init     - Khởi tạo models (chạy nền)
- GET  /api/models/status   - Trạng thái khởi tạo
- POST /api/analyze         - Upload ảnh (multipart field "image")
- POST /api/capture         - Chụp ảnh từ camera rồi phân tích
"""
import base64
import logging

import cv2
from flask import Blueprint, jsonify, request

from ..core.errors import (
    CropError,
    ImageDecodeError,
    ModelNotInitializedError,
    NoFaceFoundError,
)
from ..core.model_catalog import MODEL_VARIANTS
from ..core.tflite_helper import InterpreterOptions, probe_delegates
from ..processing.cropper import decode_image, load_image, rotate_image
from ..processing.display import NO_FACE_MESSAGE, NO_FACE_TITLE, format_inference_times

logger = logging.getLogger(__name__)

analysis_bp = Blueprint('analysis', __name__)

# Global references - được set từ main.py
_pipeline = None
_camera_factory = None
_pictures_dir = "pictures"
_default_rotation = 0
_last_result = None


def init_analysis(pipeline, camera_factory=None, pictures_dir="pictures", rotation=0):
    """
    Khởi tạo module với pipeline (và camera factory nếu có).

    Args:
        pipeline: AgeGenderPipeline
        camera_factory: callable(device_id) -> CameraManager
        pictures_dir: Thư mục lưu ảnh chụp
        rotation: Góc xoay mặc định cho ảnh
    """
    global _pipeline, _camera_factory, _pictures_dir, _default_rotation, _last_result
    _pipeline = pipeline
    _camera_factory = camera_factory
    _pictures_dir = pictures_dir
    _default_rotation = rotation
    _last_result = None
    logger.info("[Web] Analysis API initialized")


def get_pipeline():
    return _pipeline


def camera_enabled() -> bool:
    return _camera_factory is not None


def get_last_result():
    return _last_result


def _error(message, http_status, **extra):
    payload = dict(extra)
    payload.update({'success': False, 'error': message})
    return jsonify(payload), http_status


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('1', 'true', 'on', 'yes')


def _parse_rotation(value):
    if value in (None, ''):
        return _default_rotation
    rotation = int(value)
    if rotation % 90 != 0:
        raise ValueError("rotate must be a multiple of 90")
    return rotation


def _status_payload():
    status = _pipeline.status.value if _pipeline is not None else 'idle'
    return {
        'status': status,
        'ready': bool(_pipeline is not None and _pipeline.is_ready),
        'model_index': _pipeline.variant_index if _pipeline is not None else None,
        'error': _pipeline.last_error if _pipeline is not None else None,
    }


def _encode_face(face):
    ok, buf = cv2.imencode('.jpg', face)
    if not ok:
        return None
    return base64.b64encode(buf.tobytes()).decode('ascii')


def _run_analysis(image):
    """Chạy pipeline và map lỗi sang HTTP status."""
    global _last_result

    try:
        result = _pipeline.analyze(image)
    except ModelNotInitializedError as e:
        return _error(str(e), 409, **_status_payload())
    except NoFaceFoundError:
        return _error(NO_FACE_MESSAGE, 422, title=NO_FACE_TITLE)
    except CropError as e:
        return _error(str(e), 422)

    payload = result.to_dict()
    payload['success'] = True
    payload['inference_text'] = format_inference_times(result)
    payload['face_jpeg'] = _encode_face(result.face)
    _last_result = payload
    return jsonify(payload)


@analysis_bp.route('/api/models', methods=['GET'])
def list_models():
    delegates = probe_delegates()
    return jsonify({
        'models': [
            {'index': i, 'name': v.name.strip(), 'quantized': v.is_quantized}
            for i, v in enumerate(MODEL_VARIANTS)
        ],
        'delegates': {
            name: {'available': d.available, 'reason': d.reason}
            for name, d in delegates.items()
        },
        **_status_payload(),
    })


@analysis_bp.route('/api/models/status', methods=['GET'])
def model_status():
    if _pipeline is None:
        return _error('Pipeline not configured', 503)
    return jsonify(_status_payload())


@analysis_bp.route('/api/models/init', methods=['POST'])
def init_models():
    """
    Body (JSON hoặc form): {"model": 0, "use_gpu": false, "use_nnapi": false}
    Models được load trong background thread, trả về 202 ngay.
    """
    if _pipeline is None:
        return _error('Pipeline not configured', 503)

    data = request.get_json(silent=True) or request.form
    try:
        index = int(data.get('model', 0))
    except (TypeError, ValueError):
        return _error('model must be an integer', 400)
    if not 0 <= index < len(MODEL_VARIANTS):
        return _error(f'model index out of range (0-{len(MODEL_VARIANTS) - 1})', 400)

    # Delegate không khả dụng thì bị tắt, giống checkbox bị disable
    delegates = probe_delegates()
    options = InterpreterOptions(
        use_gpu=_parse_bool(data.get('use_gpu')) and delegates['gpu'].available,
        use_nnapi=_parse_bool(data.get('use_nnapi')) and delegates['nnapi'].available,
    )

    _pipeline.init_models_async(index, options)
    logger.info(f"[Web] Init models: index={index} gpu={options.use_gpu} nnapi={options.use_nnapi}")

    payload = _status_payload()
    payload.update({'success': True, 'use_gpu': options.use_gpu, 'use_nnapi': options.use_nnapi})
    return jsonify(payload), 202


@analysis_bp.route('/api/analyze', methods=['POST'])
def analyze_upload():
    if _pipeline is None:
        return _error('Pipeline not configured', 503)
    if 'image' not in request.files:
        return _error('No image file provided', 400)

    file = request.files['image']
    if file.filename == '':
        return _error('No selected file', 400)

    try:
        rotation = _parse_rotation(request.form.get('rotate'))
        image = decode_image(file.read())
    except ValueError as e:
        return _error(str(e), 400)
    except ImageDecodeError as e:
        return _error(str(e), 400)

    if rotation:
        image = rotate_image(image, rotation)
    return _run_analysis(image)


@analysis_bp.route('/api/capture', methods=['POST'])
def capture():
    if _pipeline is None:
        return _error('Pipeline not configured', 503)
    if _camera_factory is None:
        return _error('Camera is not available', 503)

    data = request.get_json(silent=True) or request.form
    try:
        device_id = int(data.get('camera', 0))
        rotation = _parse_rotation(data.get('rotate'))
    except (TypeError, ValueError) as e:
        return _error(str(e), 400)

    # Chưa load models thì không cần mở camera
    if not _pipeline.is_ready:
        return _error('Models have not been initialized', 409, **_status_payload())

    with _camera_factory(device_id) as camera:
        photo_path = camera.capture_to_file(_pictures_dir) if camera.is_opened() else None
    if photo_path is None:
        return _error('Could not capture image from camera', 503)

    try:
        image = load_image(photo_path)
    except ImageDecodeError as e:
        return _error(str(e), 500)

    if rotation:
        image = rotate_image(image, rotation)
    return _run_analysis(image)
