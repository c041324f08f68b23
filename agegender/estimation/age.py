# agegender/estimation/age.py
"""
Age Estimation model.

Input: [1, 200, 200, 3] float32, normalize [0, 1]
Output: [1, 1], age = output * 116
"""
from .base import TFLiteFaceModel

AGE_SCALE = 116.0


class AgeEstimator(TFLiteFaceModel):
    """Ước lượng tuổi từ ảnh khuôn mặt đã crop."""

    DEFAULT_INPUT_SIZE = 200
    label = "Age"

    def __init__(self, model_path=None, interpreter=None, num_threads=None, delegates=None,
                 age_scale=AGE_SCALE):
        super().__init__(model_path, interpreter, num_threads, delegates)
        self.age_scale = age_scale

    def predict_age(self, face) -> float:
        """Trả về tuổi (float, chưa làm tròn)."""
        output = self.run(face)
        return float(output.reshape(-1)[0]) * self.age_scale
