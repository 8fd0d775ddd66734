# FILE: config/__init__.py
"""Configuration package for Beacon.

Contains:
- models.py: Provider/model defaults and model selector parsing
"""

from config.models import (
    SUPPORTED_PROVIDERS,
    DEFAULT_PROVIDER,
    DEFAULT_MODELS,
    MAX_OUTPUT_TOKENS,
    canonical_provider,
    parse_model_selector,
)

__all__ = [
    "SUPPORTED_PROVIDERS",
    "DEFAULT_PROVIDER",
    "DEFAULT_MODELS",
    "MAX_OUTPUT_TOKENS",
    "canonical_provider",
    "parse_model_selector",
]
