# FILE: app/cache/models.py
"""
Response cache rows.

One row per (assistant, hash of the normalized question). The unique
constraint is what makes concurrent stores of the same question safe: the
second insert fails and is ignored.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, UniqueConstraint
from app.db import Base


class CacheEntry(Base):
    __tablename__ = "response_cache"
    __table_args__ = (
        UniqueConstraint("assistant_id", "question_hash", name="uq_response_cache_assistant_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    assistant_id = Column(Integer, ForeignKey("assistants.id", ondelete="CASCADE"), nullable=False, index=True)
    question_hash = Column(String(64), nullable=False)
    question = Column(Text, nullable=False)  # normalized form
    response = Column(Text, nullable=False)
    hit_count = Column(Integer, default=0, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
