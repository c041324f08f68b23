import importlib
import json

from agegender.core.settings import Settings


settings_module = importlib.import_module("agegender.core.settings")


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.setattr(settings_module, "CONFIG_PATH", str(tmp_path / "missing.json"))
    s = Settings(IS_PI=False)

    assert s.CROP_SHIFT == 5
    assert s.AGE_SCALE == 116.0
    assert s.DEFAULT_MODEL_INDEX == 0
    assert not s.USE_GPU and not s.USE_NNAPI


def test_json_overrides_known_keys(monkeypatch, tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"CROP_SHIFT": 8, "USE_GPU": True, "UNKNOWN": 1, "WEB_PORT": None}))
    monkeypatch.setattr(settings_module, "CONFIG_PATH", str(path))

    s = Settings(IS_PI=False)

    assert s.CROP_SHIFT == 8
    assert s.USE_GPU is True
    assert s.WEB_PORT == 5000
    assert not hasattr(s, "UNKNOWN")


def test_invalid_json_is_ignored(monkeypatch, tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    monkeypatch.setattr(settings_module, "CONFIG_PATH", str(path))

    assert Settings(IS_PI=False).CROP_SHIFT == 5


def test_pi_defaults(monkeypatch, tmp_path):
    monkeypatch.setattr(settings_module, "CONFIG_PATH", str(tmp_path / "missing.json"))
    s = Settings(IS_PI=True)

    assert (s.camera_width, s.camera_height) == (320, 240)
    assert s.tflite_num_threads == 2


def test_headless_without_display(monkeypatch, tmp_path):
    monkeypatch.setattr(settings_module, "CONFIG_PATH", str(tmp_path / "missing.json"))
    assert Settings(IS_WINDOWS=False, HAS_DISPLAY=False).headless_mode
    assert not Settings(IS_WINDOWS=False, HAS_DISPLAY=False, FORCE_GUI_MODE=True).headless_mode


def test_relative_paths_resolve_from_base_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings_module, "CONFIG_PATH", str(tmp_path / "missing.json"))
    s = Settings(BASE_DIR=str(tmp_path), MODEL_DIR="models")

    assert s.model_dir == str(tmp_path / "models")
    assert s.resolve_path("/abs/models") == "/abs/models"
