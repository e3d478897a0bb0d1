"""
Model management for rapidocr_lite.

Usage:
    from rapidocr_lite.models import ModelRegistry

    paths = ModelRegistry().get("latin-v5")   # download + resolve
"""

from .registry import ModelRegistry, default_models_dir
from .config import ALL_SUITES, DEFAULT_SUITE, ModelFile, ModelSuite

__all__ = [
    "ModelRegistry",
    "default_models_dir",
    "ALL_SUITES",
    "DEFAULT_SUITE",
    "ModelFile",
    "ModelSuite",
]
