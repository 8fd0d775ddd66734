# app/memory/models.py
"""
SQLAlchemy ORM models for Beacon assistants, knowledge and conversations.

Conversations are append-only: messages are only ever inserted, never
updated. Knowledge entries are written by the admin routes and read-only to
the answer-routing pipeline.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from app.db import Base


class Assistant(Base):
    __tablename__ = "assistants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    system_prompt = Column(Text, nullable=False, default="")
    welcome_message = Column(Text, nullable=True)

    # Per-assistant tunables, validated through app.memory.schemas on write.
    # NULL means "use the service defaults".
    rate_limit_config = Column(JSON, nullable=True)
    cache_config = Column(JSON, nullable=True)
    routing_config = Column(JSON, nullable=True)

    # "provider" or "provider:model", e.g. "gemini:gemini-2.5-flash"
    model_selector = Column(String(100), nullable=True)

    last_trained_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    knowledge_entries = relationship("KnowledgeEntry", back_populates="assistant", cascade="all, delete-orphan")
    conversations = relationship("Conversation", back_populates="assistant", cascade="all, delete-orphan")


class KnowledgeEntry(Base):
    """
    A unit of assistant-scoped reference content.

    source_kind is one of upload / text / website / faq. The `metadata`
    column holds the kind-dependent payload: faq rows carry
    {"kind": "faq", "question": ..., "response": ...}, the others carry
    free-form descriptive fields (size, origin, url...).
    """
    __tablename__ = "knowledge_entries"

    id = Column(Integer, primary_key=True, index=True)
    assistant_id = Column(Integer, ForeignKey("assistants.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    source_kind = Column(String(20), nullable=False)
    content = Column(Text, nullable=False, default="")

    # `metadata` is reserved on declarative classes, so the attribute is `meta`
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    assistant = relationship("Assistant", back_populates="knowledge_entries")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    assistant_id = Column(Integer, ForeignKey("assistants.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="New Chat")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    assistant = relationship("Assistant", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )


class Message(Base):
    """
    Chat message storage.

    role is "user" for inbound questions and "model" for every answer,
    whichever routing branch produced it.
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)

    # Which routing branch answered: greeting, faq_match, cache_hit, ...
    # For user messages: None
    route = Column(String(40), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
