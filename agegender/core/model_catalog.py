# agegender/core/model_catalog.py
"""
Danh sách các cặp model age/gender có thể chọn.

Thứ tự giống menu chọn model: index 0 là mặc định.
"""
import os
from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class ModelVariant:
    """Một lựa chọn trong menu: tên hiển thị + 2 file .tflite."""
    name: str
    age_filename: str
    gender_filename: str

    @property
    def is_quantized(self) -> bool:
        return self.age_filename.endswith("_q.tflite")


MODEL_VARIANTS: List[ModelVariant] = [
    ModelVariant(
        "Age/Gender Detection Model ( Quantized )",
        "model_v6_age_q.tflite",
        "model_v6_gender_q.tflite",
    ),
    ModelVariant(
        "Age/Gender Detection Model ( Non-quantized )",
        "model_v6_age_nonq.tflite",
        "model_v6_gender_nonq.tflite",
    ),
    ModelVariant(
        "Age/Gender Detection Lite Model ( Quantized )",
        "model_v6_lite_age_q.tflite",
        "model_v6_lite_gender_q.tflite",
    ),
    ModelVariant(
        "Age/Gender Detection Lite Model ( Non-quantized )",
        "model_v6_lite_age_nonq.tflite",
        "model_v6_lite_gender_nonq.tflite",
    ),
]

DEFAULT_VARIANT_INDEX = 0


def get_variant(index: int) -> ModelVariant:
    """Lấy variant theo vị trí trong menu. Raise KeyError nếu sai index."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise KeyError(f"Invalid model index: {index!r}")
    if not 0 <= index < len(MODEL_VARIANTS):
        raise KeyError(f"Model index out of range: {index} (0-{len(MODEL_VARIANTS) - 1})")
    return MODEL_VARIANTS[index]


def model_names() -> List[str]:
    return [v.name for v in MODEL_VARIANTS]


def resolve_model_paths(variant: ModelVariant, model_dir: str) -> Tuple[str, str]:
    """Trả về (age_path, gender_path) trong model_dir."""
    return (
        os.path.join(model_dir, variant.age_filename),
        os.path.join(model_dir, variant.gender_filename),
    )
