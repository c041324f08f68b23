import numpy as np
import pytest

from agegender.core.errors import ModelNotInitializedError
from agegender.core.model_catalog import get_variant
from agegender.core.tflite_helper import InterpreterOptions
from agegender.estimation import AgeEstimator, AgeGenderModels, GenderClassifier, gender_label
from agegender.estimation import models as models_module
from agegender.estimation import base as base_module

from conftest import FakeInterpreter


def test_age_is_scaled_model_output(face_image):
    interpreter = FakeInterpreter(outputs=[np.array([[0.25]], dtype=np.float32)])
    estimator = AgeEstimator(interpreter=interpreter)

    age = estimator.predict_age(face_image)

    assert age == pytest.approx(29.0)
    assert interpreter.allocated
    assert interpreter.invocations == 1
    assert estimator.inference_time >= 0.0


def test_age_input_is_resized_rgb_and_normalized(face_image):
    interpreter = FakeInterpreter(input_shape=(1, 200, 200, 3))
    AgeEstimator(interpreter=interpreter).predict_age(face_image)

    data = interpreter.last_input
    assert data.shape == (1, 200, 200, 3)
    assert data.dtype == np.float32
    assert 0.0 <= data.min() and data.max() <= 1.0


def test_bgr_is_converted_to_rgb():
    blue = np.zeros((10, 10, 3), dtype=np.uint8)
    blue[:, :, 0] = 255
    interpreter = FakeInterpreter(input_shape=(1, 4, 4, 3))

    AgeEstimator(interpreter=interpreter).predict_age(blue)

    pixel = interpreter.last_input[0, 0, 0]
    assert pixel[2] == pytest.approx(1.0)
    assert pixel[0] == pytest.approx(0.0)


def test_custom_age_scale(face_image):
    interpreter = FakeInterpreter(outputs=[np.array([[0.5]], dtype=np.float32)])
    assert AgeEstimator(interpreter=interpreter, age_scale=100).predict_age(face_image) == pytest.approx(50.0)


def test_quantized_tensors_are_converted(face_image):
    interpreter = FakeInterpreter(
        input_dtype=np.uint8,
        input_quant=(1.0 / 255.0, 0),
        outputs=[np.array([[25]], dtype=np.int8)],
        output_quant=[(0.01, 0)],
    )
    estimator = AgeEstimator(interpreter=interpreter)

    age = estimator.predict_age(face_image)

    assert interpreter.last_input.dtype == np.uint8
    assert age == pytest.approx(29.0, rel=1e-4)


def test_dynamic_input_shape_falls_back_to_default(face_image):
    interpreter = FakeInterpreter(
        input_shape=(1, -1, -1, 3),
        outputs=[np.array([[0.9, 0.1]], dtype=np.float32)],
    )
    classifier = GenderClassifier(interpreter=interpreter)

    classifier.predict_gender(face_image)

    assert (classifier.input_width, classifier.input_height) == (128, 128)
    assert interpreter.last_input.shape == (1, 128, 128, 3)


def test_gender_scores_and_label(face_image):
    interpreter = FakeInterpreter(
        input_shape=(1, 128, 128, 3),
        outputs=[np.array([[0.2, 0.8]], dtype=np.float32)],
    )
    scores = GenderClassifier(interpreter=interpreter).predict_gender(face_image)

    np.testing.assert_allclose(scores, [0.2, 0.8])
    assert gender_label(scores) == "Female"
    assert gender_label([0.6, 0.4]) == "Male"
    # Bằng nhau thì không phải Male
    assert gender_label([0.5, 0.5]) == "Female"


def test_gender_model_with_single_output_is_rejected(face_image):
    interpreter = FakeInterpreter(outputs=[np.array([[0.2]], dtype=np.float32)])
    with pytest.raises(ValueError):
        GenderClassifier(interpreter=interpreter).predict_gender(face_image)


def test_grayscale_face_is_accepted():
    gray = np.full((50, 40), 128, dtype=np.uint8)
    interpreter = FakeInterpreter(input_shape=(1, 200, 200, 3))
    AgeEstimator(interpreter=interpreter).predict_age(gray)
    assert interpreter.last_input.shape == (1, 200, 200, 3)


def test_closed_model_raises(face_image):
    estimator = AgeEstimator(interpreter=FakeInterpreter())
    estimator.close()
    with pytest.raises(ModelNotInitializedError):
        estimator.predict_age(face_image)


def test_missing_model_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        AgeEstimator(str(tmp_path / "model_v6_age_q.tflite"))


def test_load_pair_from_variant(tmp_path, monkeypatch):
    variant = get_variant(1)
    (tmp_path / variant.age_filename).write_bytes(b"")
    (tmp_path / variant.gender_filename).write_bytes(b"")

    created = []

    def fake_get_interpreter(model_path, num_threads=None, delegates=None):
        created.append((model_path, num_threads, delegates))
        if "gender" in model_path:
            return FakeInterpreter(input_shape=(1, 128, 128, 3),
                                   outputs=[np.array([[0.1, 0.9]], dtype=np.float32)])
        return FakeInterpreter()

    monkeypatch.setattr(base_module, "get_interpreter", fake_get_interpreter)
    monkeypatch.setattr(models_module, "load_delegates", lambda options: [])

    options = InterpreterOptions(num_threads=2)
    models = AgeGenderModels.load(variant, str(tmp_path), options)

    assert [c[0] for c in created] == [
        str(tmp_path / variant.age_filename),
        str(tmp_path / variant.gender_filename),
    ]
    assert all(c[1] == 2 for c in created)
    assert models.variant is variant
    # options được copy, không sửa object của caller
    assert models.options is not options

    models.close()
    assert models.age.interpreter is None
    assert models.gender.interpreter is None
