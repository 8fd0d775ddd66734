# FILE: app/chat/__init__.py
"""Chat sessions: orchestration of the routing ladder and the SSE relay."""

from .relay import (
    sse_frame,
    direct_answer_stream,
    prime_backend,
    generative_stream,
    iter_sse_payloads,
    collect_answer,
    CollectedAnswer,
    PrimedStream,
)
from .orchestrator import RoutedMessage, handle_message, complete_generative

__all__ = [
    "sse_frame",
    "direct_answer_stream",
    "prime_backend",
    "generative_stream",
    "iter_sse_payloads",
    "collect_answer",
    "CollectedAnswer",
    "PrimedStream",
    "RoutedMessage",
    "handle_message",
    "complete_generative",
]
