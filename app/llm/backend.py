# FILE: app/llm/backend.py
"""
The generative backend capability as the chat pipeline sees it.

A backend takes a system instruction and the ordered [{role, text}] history
(role is "user" or "model", the current question last) and yields text deltas
as they arrive. Failures raise UpstreamFailure.

The CancellationToken is created per request by the stream relay and set when
the client goes away; backends check it between deltas and release the
upstream call as soon as it is set.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Optional


class CancellationToken:
    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()


class GenerativeBackend(ABC):
    @abstractmethod
    def stream(
        self,
        system_instruction: str,
        history: List[Dict[str, str]],
        cancel_token: Optional[CancellationToken] = None,
        model_selector: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Async generator of text deltas."""
        ...


_backend: Optional[GenerativeBackend] = None


def get_backend() -> GenerativeBackend:
    """FastAPI dependency: the provider-SDK backend, created on first use."""
    global _backend
    if _backend is None:
        from .streaming import ProviderBackend

        _backend = ProviderBackend()
    return _backend
