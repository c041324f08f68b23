# agegender/main.py
"""
Age/Gender Estimation - Main Entry Point.

Luồng xử lý:
1. Chọn model (menu 4 model) + delegate GPU/NNAPI, khởi tạo interpreters
2. Chụp ảnh từ camera (hoặc đọc file ảnh)
3. Detect face, crop khuôn mặt đầu tiên (dịch xuống 5px)
4. Chạy age model + gender model, in kết quả và thời gian inference

Usage:
    python -m agegender.main --image photo.jpg
    python -m agegender.main --camera 0 --model 2 --gpu
    python -m agegender.main --list-models
    python -m agegender.main --web --port 5000
"""
import os
import sys
import json
import logging
import argparse

# === SETUP DISPLAY TRƯỚC KHI IMPORT CV2 ===
if os.environ.get("DISPLAY", "") == "":
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

try:
    from .core import settings, create_camera, probe_delegates
    from .core.errors import AgeGenderError, CropError, ImageDecodeError, NoFaceFoundError
    from .core.model_catalog import MODEL_VARIANTS
    from .core.model_factory import create_pipeline, default_interpreter_options
    from .processing import DisplayHandler, format_result, load_image, rotate_image
    from .processing.display import NO_FACE_MESSAGE, NO_FACE_TITLE
except ImportError:
    from agegender.core import settings, create_camera, probe_delegates
    from agegender.core.errors import AgeGenderError, CropError, ImageDecodeError, NoFaceFoundError
    from agegender.core.model_catalog import MODEL_VARIANTS
    from agegender.core.model_factory import create_pipeline, default_interpreter_options
    from agegender.processing import DisplayHandler, format_result, load_image, rotate_image
    from agegender.processing.display import NO_FACE_MESSAGE, NO_FACE_TITLE

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_FACE = 1
EXIT_ERROR = 2

WINDOW_NAME = "Age/Gender Estimation"


def setup_logging(verbose: bool = False):
    """Logging setup: thêm FileHandler khi chạy trên Pi."""
    handlers = [logging.StreamHandler()]
    if settings.IS_PI:
        handlers.append(logging.FileHandler('agegender.log', encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Age/Gender Estimation - TFLite',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m agegender.main --image photo.jpg
  python -m agegender.main --camera 0 --rotate -90
  python -m agegender.main --image photo.jpg --model 3 --json
  python -m agegender.main --web
        """
    )

    # Input
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--image', '-i', metavar='PATH', help='Image file to analyse')
    source.add_argument('--camera', '-c', type=int, metavar='ID',
                        help='Take a picture with this camera device')

    # Models
    parser.add_argument('--model', '-m', type=int, metavar='INDEX',
                        help=f'Model index from --list-models (default: {settings.DEFAULT_MODEL_INDEX})')
    parser.add_argument('--list-models', action='store_true', help='List available models and exit')
    parser.add_argument('--model-dir', metavar='DIR', help=f'Model directory (default: {settings.MODEL_DIR})')
    parser.add_argument('--gpu', action='store_true', help='Use the GPU delegate if available')
    parser.add_argument('--nnapi', action='store_true', help='Use the NNAPI delegate if available')

    # Detection / crop
    parser.add_argument('--detector', choices=['haar', 'ultralight'],
                        help=f'Face detection backend (default: {settings.DETECTION_BACKEND})')
    parser.add_argument('--shift', type=int, metavar='PX',
                        help=f'Vertical crop shift in pixels (default: {settings.CROP_SHIFT})')
    parser.add_argument('--rotate', type=int, metavar='DEG',
                        help=f'Rotate the picture before detection (default: {settings.ROTATION_DEGREES})')

    # Output
    parser.add_argument('--json', action='store_true', help='Print the result as JSON')
    parser.add_argument('--show', action='store_true', help='Show the annotated picture in a window')

    # Web
    parser.add_argument('--web', action='store_true', help='Run the web UI instead of a single analysis')
    parser.add_argument('--port', '-p', type=int, metavar='PORT',
                        help=f'Web server port (default: {settings.WEB_PORT})')

    # Debug
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    return parser.parse_args(argv)


def apply_arguments(args):
    """Apply command line arguments to settings."""
    changes = []

    if args.model is not None:
        settings.DEFAULT_MODEL_INDEX = args.model
        changes.append(f"Model: {args.model}")
    if args.model_dir:
        settings.MODEL_DIR = args.model_dir
        changes.append(f"Model dir: {args.model_dir}")
    if args.gpu:
        settings.USE_GPU = True
        changes.append("GPU: ON")
    if args.nnapi:
        settings.USE_NNAPI = True
        changes.append("NNAPI: ON")
    if args.detector:
        settings.DETECTION_BACKEND = args.detector
        changes.append(f"Detector: {args.detector}")
    if args.shift is not None:
        settings.CROP_SHIFT = args.shift
        changes.append(f"Shift: {args.shift}px")
    if args.rotate is not None:
        settings.ROTATION_DEGREES = args.rotate
        changes.append(f"Rotate: {args.rotate}")
    if args.port:
        settings.WEB_PORT = args.port
        changes.append(f"Port: {args.port}")

    return changes


def print_models():
    """In menu model + trạng thái delegate."""
    print("\n📋 Models:")
    for i, variant in enumerate(MODEL_VARIANTS):
        marker = "*" if i == settings.DEFAULT_MODEL_INDEX else " "
        print(f" {marker} {i}. {variant.name.strip()}")
        print(f"      {variant.age_filename}, {variant.gender_filename}")

    print("\n⚡ Delegates:")
    for name, status in probe_delegates().items():
        state = "available" if status.available else f"unavailable ({status.reason})"
        print(f"   {name}: {state}")
    print()


def capture_photo(device_id: int):
    """Chụp ảnh từ camera, trả về đường dẫn file hoặc None."""
    camera = create_camera(device_id, settings.CAMERA_WIDTH, settings.CAMERA_HEIGHT)
    with camera:
        if not camera.is_opened():
            return None
        return camera.capture_to_file(settings.pictures_dir)


def run_web(pipeline):
    """Chạy web UI; models được load nền với lựa chọn mặc định."""
    from .web.server import run_server, setup_analysis

    def camera_factory(device_id):
        return create_camera(device_id, settings.CAMERA_WIDTH, settings.CAMERA_HEIGHT)

    setup_analysis(pipeline, camera_factory, settings.pictures_dir, settings.ROTATION_DEGREES)
    pipeline.init_models_async(settings.DEFAULT_MODEL_INDEX, default_interpreter_options(settings))
    run_server(host='0.0.0.0', port=settings.WEB_PORT)
    return EXIT_OK


def show_result(photo_path: str, result):
    """Vẽ kết quả lên ảnh gốc và hiển thị (bỏ qua khi headless)."""
    display = DisplayHandler(overlay_enabled=not settings.HEADLESS_MODE)
    if not display.enabled:
        logger.warning("Headless mode: --show ignored")
        return
    image = load_image(photo_path)
    if settings.ROTATION_DEGREES:
        image = rotate_image(image, settings.ROTATION_DEGREES)
    display.draw_result(image, result)
    display.show(WINDOW_NAME, image)
    display.destroy_windows()


def run_once(pipeline, args) -> int:
    """Một lần chụp/đọc ảnh -> phân tích -> in kết quả."""
    if args.camera is not None:
        photo_path = capture_photo(args.camera)
        if photo_path is None:
            logger.error("❌ Không chụp được ảnh từ camera")
            return EXIT_ERROR
    else:
        photo_path = args.image

    try:
        pipeline.init_models(settings.DEFAULT_MODEL_INDEX, default_interpreter_options(settings))
    except (KeyError, ImportError, OSError, ValueError, RuntimeError) as e:
        logger.error(f"❌ Không khởi tạo được models: {e}")
        return EXIT_ERROR

    try:
        result = pipeline.analyze_file(photo_path, settings.ROTATION_DEGREES)
    except NoFaceFoundError:
        if args.json:
            print(json.dumps({'success': False, 'error': NO_FACE_MESSAGE, 'title': NO_FACE_TITLE}))
        else:
            print(f"{NO_FACE_TITLE}\n{NO_FACE_MESSAGE}")
        return EXIT_NO_FACE
    except (ImageDecodeError, CropError, ValueError) as e:
        logger.error(f"❌ {e}")
        return EXIT_ERROR

    if args.json:
        payload = result.to_dict()
        payload['success'] = True
        payload['image'] = photo_path
        print(json.dumps(payload))
    else:
        print(format_result(result))

    if args.show:
        show_result(photo_path, result)

    return EXIT_OK


def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    changes = apply_arguments(args)
    if changes:
        logger.info("Settings: " + ", ".join(changes))

    if args.list_models:
        print_models()
        return EXIT_OK

    if not args.web and args.image is None and args.camera is None:
        print("error: one of --image, --camera or --web is required", file=sys.stderr)
        return EXIT_ERROR

    try:
        pipeline = create_pipeline(settings)
    except (ImportError, OSError, ValueError) as e:
        logger.error(f"❌ Không tạo được face detector: {e}")
        return EXIT_ERROR

    try:
        if args.web:
            return run_web(pipeline)
        return run_once(pipeline, args)
    except AgeGenderError as e:
        logger.error(f"❌ {e}")
        return EXIT_ERROR
    finally:
        pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
