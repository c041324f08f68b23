# agegender/estimation/models.py
"""
Cặp model age + gender được load cùng nhau từ một ModelVariant.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..core.model_catalog import ModelVariant, resolve_model_paths
from ..core.tflite_helper import InterpreterOptions, load_delegates
from .age import AgeEstimator, AGE_SCALE
from .gender import GenderClassifier

logger = logging.getLogger(__name__)


@dataclass
class AgeGenderModels:
    """Hai model đã load + thông tin cấu hình đã dùng."""
    age: AgeEstimator
    gender: GenderClassifier
    variant: Optional[ModelVariant] = None
    options: Optional[InterpreterOptions] = None

    @classmethod
    def load(cls, variant: ModelVariant, model_dir: str,
             options: Optional[InterpreterOptions] = None,
             age_scale: float = AGE_SCALE) -> "AgeGenderModels":
        """
        Load cả hai model của variant.
        Mỗi interpreter có delegate riêng; delegate không khả dụng bị bỏ qua.
        """
        options = replace(options) if options is not None else InterpreterOptions()
        age_path, gender_path = resolve_model_paths(variant, model_dir)

        age = AgeEstimator(
            age_path,
            num_threads=options.num_threads,
            delegates=load_delegates(options),
            age_scale=age_scale,
        )
        try:
            gender = GenderClassifier(
                gender_path,
                num_threads=options.num_threads,
                delegates=load_delegates(options),
            )
        except Exception:
            age.close()
            raise

        logger.info(
            f"🧠 Models: {variant.name.strip()} "
            f"(gpu={options.use_gpu}, nnapi={options.use_nnapi})"
        )
        return cls(age=age, gender=gender, variant=variant, options=options)

    def close(self):
        self.age.close()
        self.gender.close()
