# FILE: app/cache/response_cache.py
"""
Content-addressed cache of generated answers.

Keys are (assistant_id, sha256(normalize(question))). Only first-turn
questions are cached or served: a follow-up depends on the conversation so far
and cannot be answered from its text alone. That rule is enforced by the
caller; this module only stores and serves.

Writes are idempotent: storing an already-cached question keeps the original
answer and is not an error.
"""
from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.routing import config
from app.routing.normalizer import normalize
from .models import CacheEntry

logger = logging.getLogger(__name__)


def question_hash(question: str) -> str:
    """Stable hash of the normalized question."""
    return hashlib.sha256(normalize(question).encode("utf-8")).hexdigest()


def is_cacheable(response: str, max_chars: int = config.CACHE_MAX_RESPONSE_CHARS) -> bool:
    return bool(response and response.strip()) and len(response) < max_chars


class ResponseCache:
    """Response cache backed by the `response_cache` table."""

    def __init__(self, db: Session, max_response_chars: int = config.CACHE_MAX_RESPONSE_CHARS):
        self.db = db
        self.max_response_chars = max_response_chars

    def peek(self, assistant_id: int, question: str) -> Optional[CacheEntry]:
        """Find the entry without recording a hit."""
        return (
            self.db.query(CacheEntry)
            .filter(CacheEntry.assistant_id == assistant_id)
            .filter(CacheEntry.question_hash == question_hash(question))
            .first()
        )

    def record_hit(self, entry: CacheEntry) -> None:
        entry.hit_count = (entry.hit_count or 0) + 1
        entry.last_used_at = datetime.utcnow()
        self.db.commit()

    def lookup(self, assistant_id: int, question: str) -> Optional[str]:
        """Cached response for the question, counting the hit; None on miss."""
        entry = self.peek(assistant_id, question)
        if entry is None:
            return None
        self.record_hit(entry)
        logger.info(f"[cache] hit assistant={assistant_id} hits={entry.hit_count}")
        return entry.response

    def store(self, assistant_id: int, question: str, response: str) -> bool:
        """
        Insert if absent.

        Returns True if a row was written. An existing key, or a response at or
        over the size ceiling, leaves the cache unchanged and returns False.
        """
        if not is_cacheable(response, self.max_response_chars):
            return False

        if self.peek(assistant_id, question) is not None:
            return False

        entry = CacheEntry(
            assistant_id=assistant_id,
            question_hash=question_hash(question),
            question=normalize(question),
            response=response,
            hit_count=0,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            # A parallel request cached the same question first
            self.db.rollback()
            logger.debug(f"[cache] store conflict ignored for assistant={assistant_id}")
            return False
        logger.info(f"[cache] stored assistant={assistant_id} chars={len(response)}")
        return True

    def invalidate(self, assistant_id: int) -> int:
        """Delete every cached answer for the assistant. Returns rows removed."""
        count = (
            self.db.query(CacheEntry)
            .filter(CacheEntry.assistant_id == assistant_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if count:
            logger.info(f"[cache] invalidated {count} entries for assistant={assistant_id}")
        return count

    def list_entries(self, assistant_id: int) -> List[CacheEntry]:
        return (
            self.db.query(CacheEntry)
            .filter(CacheEntry.assistant_id == assistant_id)
            .order_by(CacheEntry.hit_count.desc(), CacheEntry.created_at.desc())
            .all()
        )
