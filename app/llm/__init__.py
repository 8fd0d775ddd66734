# FILE: app/llm/__init__.py
"""
LLM module exports.

The chat pipeline only needs a GenerativeBackend; ProviderBackend implements
it over the provider SDKs (see streaming.py).
"""

from app.llm.backend import CancellationToken, GenerativeBackend, get_backend
from app.llm.streaming import (
    ProviderBackend,
    stream_llm,
    get_available_streaming_providers,
)

__all__ = [
    "CancellationToken",
    "GenerativeBackend",
    "get_backend",
    "ProviderBackend",
    "stream_llm",
    "get_available_streaming_providers",
]
