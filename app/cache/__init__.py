# FILE: app/cache/__init__.py
"""Response cache for first-turn answers."""

from .response_cache import ResponseCache, question_hash, is_cacheable

__all__ = [
    "ResponseCache",
    "question_hash",
    "is_cacheable",
]
