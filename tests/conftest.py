import numpy as np
import pytest

from agegender.core import tflite_helper
from agegender.core.settings import settings
from agegender.detect import BoundingBox, FaceLocator
from agegender.estimation import AgeEstimator, AgeGenderModels, GenderClassifier


class FakeInterpreter:
    """Interpreter giả lập API của tflite_runtime cho test."""

    def __init__(self, input_shape=(1, 200, 200, 3), input_dtype=np.float32,
                 outputs=None, input_quant=None, output_quant=None):
        self.input_shape = input_shape
        self.input_dtype = input_dtype
        self.outputs = outputs if outputs is not None else [np.array([[0.25]], dtype=np.float32)]
        self.input_quant = input_quant
        self.output_quant = output_quant or [None] * len(self.outputs)
        self.allocated = False
        self.invocations = 0
        self.last_input = None

    @staticmethod
    def _quant(params):
        if params is None:
            return {'scales': np.array([], dtype=np.float32), 'zero_points': np.array([], dtype=np.int32)}
        scale, zero_point = params
        return {'scales': np.array([scale], dtype=np.float32), 'zero_points': np.array([zero_point], dtype=np.int32)}

    def allocate_tensors(self):
        self.allocated = True

    def get_input_details(self):
        return [{
            'index': 0,
            'shape': np.array(self.input_shape),
            'dtype': self.input_dtype,
            'quantization_parameters': self._quant(self.input_quant),
        }]

    def get_output_details(self):
        return [
            {
                'index': i + 1,
                'shape': np.array(out.shape),
                'dtype': out.dtype.type,
                'quantization_parameters': self._quant(self.output_quant[i]),
            }
            for i, out in enumerate(self.outputs)
        ]

    def set_tensor(self, index, data):
        assert index == 0
        self.last_input = data

    def invoke(self):
        self.invocations += 1

    def get_tensor(self, index):
        return self.outputs[index - 1]


class FakeLocator(FaceLocator):
    name = "fake"

    def __init__(self, boxes=None):
        self.boxes = list(boxes or [])
        self.calls = 0
        self.closed = False

    def detect_faces(self, image):
        self.calls += 1
        return list(self.boxes)

    def close(self):
        self.closed = True


def make_models(age_output=0.25, gender_output=(0.7, 0.3)):
    age = AgeEstimator(interpreter=FakeInterpreter(
        input_shape=(1, 200, 200, 3),
        outputs=[np.array([[age_output]], dtype=np.float32)],
    ))
    gender = GenderClassifier(interpreter=FakeInterpreter(
        input_shape=(1, 128, 128, 3),
        outputs=[np.array([list(gender_output)], dtype=np.float32)],
    ))
    return AgeGenderModels(age=age, gender=gender)


class FakeLoader:
    """Thay cho AgeGenderModels.load, ghi lại các lần gọi."""

    def __init__(self, error=None, **model_kwargs):
        self.error = error
        self.model_kwargs = model_kwargs
        self.calls = []
        self.loaded = []

    def __call__(self, variant, model_dir, options, age_scale=116.0):
        self.calls.append((variant, model_dir, options, age_scale))
        if self.error is not None:
            raise self.error
        models = make_models(**self.model_kwargs)
        models.variant = variant
        models.options = options
        self.loaded.append(models)
        return models


@pytest.fixture
def face_image():
    rng = np.random.default_rng(0)
    return rng.integers(0, 255, size=(120, 160, 3), dtype=np.uint8)


@pytest.fixture
def face_box():
    return BoundingBox(40, 20, 60, 70)


@pytest.fixture
def restore_settings():
    snapshot = dict(vars(settings))
    yield settings
    for key, value in snapshot.items():
        setattr(settings, key, value)


@pytest.fixture(autouse=True)
def reset_delegate_cache():
    tflite_helper._delegate_cache = None
    yield
    tflite_helper._delegate_cache = None
