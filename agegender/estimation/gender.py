# agegender/estimation/gender.py
"""
Gender Classification model.

Input: [1, 128, 128, 3] float32, normalize [0, 1]
Output: [1, 2] scores (index 0 = Male, index 1 = Female)
"""
import numpy as np

from .base import TFLiteFaceModel

MALE = "Male"
FEMALE = "Female"


def gender_label(scores) -> str:
    """Male nếu scores[0] > scores[1], ngược lại Female."""
    return MALE if scores[0] > scores[1] else FEMALE


class GenderClassifier(TFLiteFaceModel):
    """Phân loại giới tính từ ảnh khuôn mặt đã crop."""

    DEFAULT_INPUT_SIZE = 128
    label = "Gender"

    def predict_gender(self, face) -> np.ndarray:
        """Trả về vector 2 phần tử [male_score, female_score]."""
        output = self.run(face).reshape(-1)
        if output.shape[0] < 2:
            raise ValueError(f"Gender model must output 2 scores, got {output.shape[0]}")
        return output[:2]
