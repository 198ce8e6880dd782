"""Configuration helpers for :mod:`lambda_core`."""

from .loader import DEFAULT_PRESET, load_presets, resolve_config
from .settings import REQUIRED_KEYS, AnalysisConfig

__all__ = [
    "AnalysisConfig",
    "DEFAULT_PRESET",
    "REQUIRED_KEYS",
    "load_presets",
    "resolve_config",
]
