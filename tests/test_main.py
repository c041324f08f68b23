import json

import cv2
import numpy as np
import pytest

from agegender import main as main_module
from agegender.detect import BoundingBox
from agegender.processing.pipeline import AgeGenderPipeline

from conftest import FakeLoader, FakeLocator


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / "photo.png"
    cv2.imwrite(str(path), np.full((100, 100, 3), 90, dtype=np.uint8))
    return str(path)


@pytest.fixture
def locator():
    return FakeLocator([BoundingBox(20, 20, 50, 50)])


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def fake_pipeline(monkeypatch, restore_settings, locator, loader):
    created = []

    def create_pipeline(settings):
        pipeline = AgeGenderPipeline(locator, crop_shift=settings.CROP_SHIFT, model_loader=loader)
        created.append(pipeline)
        return pipeline

    monkeypatch.setattr(main_module, "create_pipeline", create_pipeline)
    return created


def test_analyze_image_as_json(fake_pipeline, locator, loader, photo, capsys):
    code = main_module.main(['--image', photo, '--model', '3', '--json'])

    assert code == main_module.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data['age'] == 29
    assert data['gender'] == "Male"
    assert data['image'] == photo
    assert loader.calls[0][0].age_filename == "model_v6_lite_age_nonq.tflite"
    assert locator.closed


def test_analyze_image_text(fake_pipeline, photo, capsys):
    assert main_module.main(['--image', photo, '--shift', '0']) == main_module.EXIT_OK

    out = capsys.readouterr().out
    assert "Age    : 29" in out
    assert "Age Detection model inference time" in out
    assert fake_pipeline[0].crop_shift == 0


def test_no_face_exit_code(fake_pipeline, locator, photo, capsys):
    locator.boxes.clear()

    assert main_module.main(['--image', photo]) == main_module.EXIT_NO_FACE
    assert "No Faces Found" in capsys.readouterr().out


def test_missing_image(fake_pipeline, tmp_path):
    assert main_module.main(['--image', str(tmp_path / "missing.jpg")]) == main_module.EXIT_ERROR


def test_model_init_failure(monkeypatch, restore_settings, locator, photo):
    monkeypatch.setattr(
        main_module, "create_pipeline",
        lambda settings: AgeGenderPipeline(locator, model_loader=FakeLoader(error=FileNotFoundError("x")))
    )
    assert main_module.main(['--image', photo]) == main_module.EXIT_ERROR


def test_delegate_apply_failure_exit_code(monkeypatch, restore_settings, locator, photo):
    error = RuntimeError("Failed to apply delegate")
    monkeypatch.setattr(
        main_module, "create_pipeline",
        lambda settings: AgeGenderPipeline(locator, model_loader=FakeLoader(error=error))
    )
    assert main_module.main(['--image', photo, '--gpu']) == main_module.EXIT_ERROR
    assert locator.closed


def test_bad_model_index(fake_pipeline, photo):
    assert main_module.main(['--image', photo, '--model', '8']) == main_module.EXIT_ERROR


def test_requires_a_source(fake_pipeline, capsys):
    assert main_module.main([]) == main_module.EXIT_ERROR
    assert "--image" in capsys.readouterr().err


def test_camera_capture_failure(fake_pipeline, monkeypatch):
    monkeypatch.setattr(main_module, "capture_photo", lambda device_id: None)
    assert main_module.main(['--camera', '0']) == main_module.EXIT_ERROR


def test_camera_capture(fake_pipeline, monkeypatch, photo, capsys):
    monkeypatch.setattr(main_module, "capture_photo", lambda device_id: photo)
    assert main_module.main(['--camera', '0', '--json']) == main_module.EXIT_OK
    assert json.loads(capsys.readouterr().out)['image'] == photo


def test_list_models(restore_settings, monkeypatch, capsys):
    from agegender.core.tflite_helper import DelegateStatus

    monkeypatch.setattr(main_module, "probe_delegates",
                        lambda: {'gpu': DelegateStatus('gpu', True), 'nnapi': DelegateStatus('nnapi', False, "n/a")})

    assert main_module.main(['--list-models']) == main_module.EXIT_OK

    out = capsys.readouterr().out
    assert "0. Age/Gender Detection Model ( Quantized )" in out
    assert "nnapi: unavailable (n/a)" in out


def test_apply_arguments(restore_settings):
    args = main_module.parse_arguments(['--gpu', '--rotate', '-90', '--detector', 'ultralight'])
    changes = main_module.apply_arguments(args)

    assert restore_settings.USE_GPU is True
    assert restore_settings.ROTATION_DEGREES == -90
    assert restore_settings.DETECTION_BACKEND == "ultralight"
    assert len(changes) == 3
