# FILE: app/errors.py
"""
Error taxonomy for the chat pipeline.

Each error carries the HTTP status it surfaces as; main.py registers one
handler that renders them as {"message": ...} bodies. Cache write conflicts
are not errors; ResponseCache.store reports them by returning False.
"""
from typing import Dict, Optional


class ChatError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class NotFound(ChatError):
    status_code = 404


class ValidationError(ChatError):
    status_code = 400


class RateLimited(ChatError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after

    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


class UpstreamFailure(ChatError):
    """The generative backend failed or returned an error event."""
    status_code = 500
