# FILE: config/models.py
"""Provider and model defaults - single source of truth.

An assistant's `model_selector` picks the generative backend:

  - "gemini"                   -> gemini with its default model
  - "openai:gpt-4.1-mini"      -> explicit provider and model
  - None / ""                  -> BEACON_DEFAULT_PROVIDER with its default model

Provider names are case-insensitive; "google" is accepted as an alias for
"gemini".
"""

from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

# =============================================================================
# Defaults
# =============================================================================

SUPPORTED_PROVIDERS = ("gemini", "openai", "anthropic")

PROVIDER_ALIASES: Dict[str, str] = {
    "google": "gemini",
    "claude": "anthropic",
    "gpt": "openai",
}

DEFAULT_PROVIDER: str = os.getenv("BEACON_DEFAULT_PROVIDER", "gemini").strip().lower()

DEFAULT_MODELS: Dict[str, str] = {
    "gemini": os.getenv("GEMINI_DEFAULT_MODEL", "gemini-2.5-flash"),
    "openai": os.getenv("OPENAI_DEFAULT_MODEL", "gpt-4.1-mini"),
    "anthropic": os.getenv("ANTHROPIC_DEFAULT_MODEL", "claude-sonnet-4-5-20250929"),
}

# Output cap for a single answer
MAX_OUTPUT_TOKENS: int = int(os.getenv("BEACON_MAX_OUTPUT_TOKENS", "2048"))


def canonical_provider(name: str) -> str:
    key = (name or "").strip().lower()
    return PROVIDER_ALIASES.get(key, key)


def parse_model_selector(selector: Optional[str]) -> Tuple[str, str]:
    """Resolve a model selector to (provider, model).

    Raises:
        ValueError: If the provider is not supported
    """
    if not selector or not selector.strip():
        provider = canonical_provider(DEFAULT_PROVIDER)
        model = ""
    else:
        provider_part, _, model = selector.strip().partition(":")
        provider = canonical_provider(provider_part)
        model = model.strip()

    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unknown provider '{provider}'")

    return provider, model or DEFAULT_MODELS[provider]


__all__ = [
    "SUPPORTED_PROVIDERS",
    "DEFAULT_PROVIDER",
    "DEFAULT_MODELS",
    "MAX_OUTPUT_TOKENS",
    "canonical_provider",
    "parse_model_selector",
]
