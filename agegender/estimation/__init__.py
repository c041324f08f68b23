# agegender/estimation/__init__.py
"""
Age / Gender models (TFLite).

- AgeEstimator: output scalar * 116
- GenderClassifier: output [male, female]
- AgeGenderModels: load cả hai từ một ModelVariant
"""

from .age import AgeEstimator
from .gender import GenderClassifier, gender_label, MALE, FEMALE
from .models import AgeGenderModels

__all__ = [
    'AgeEstimator',
    'GenderClassifier',
    'gender_label',
    'MALE',
    'FEMALE',
    'AgeGenderModels',
]
