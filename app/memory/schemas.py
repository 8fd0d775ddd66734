# FILE: app/memory/schemas.py
"""
Memory module Pydantic schemas.

Knowledge metadata is a tagged union keyed by `kind` (which always equals the
entry's source_kind): faq entries carry a question/response pair, the other
kinds carry free-form descriptive fields. The shape is enforced when an entry
is created, not when it is read.
"""
from datetime import datetime
from typing import Optional, List, Literal, Union, Annotated
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


SourceKind = Literal["upload", "text", "website", "faq"]
MessageRole = Literal["user", "model"]


# ============== ASSISTANT CONFIG ==============

class RateLimitConfig(BaseModel):
    enabled: bool = True
    max_count: Optional[int] = Field(default=None, ge=1)
    window_seconds: Optional[int] = Field(default=None, ge=1)


class CacheConfig(BaseModel):
    enabled: bool = True


class RoutingConfig(BaseModel):
    high_confidence_threshold: Optional[float] = Field(default=None, gt=0.0, le=1.0)
    min_matched_keywords: Optional[int] = Field(default=None, ge=1)


# ============== KNOWLEDGE METADATA ==============

class FaqMetadata(BaseModel):
    kind: Literal["faq"] = "faq"
    question: str
    response: str

    @field_validator("question", "response")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("faq question and response must be non-empty")
        return v


class SourceMetadata(BaseModel):
    """Descriptive fields for upload/text/website entries. Extra keys are kept."""
    model_config = ConfigDict(extra="allow")

    kind: Literal["upload", "text", "website"]
    size: Optional[int] = None
    origin: Optional[str] = None


KnowledgeMetadata = Annotated[Union[FaqMetadata, SourceMetadata], Field(discriminator="kind")]


# ============== ASSISTANT ==============

class AssistantCreate(BaseModel):
    name: str
    description: Optional[str] = None
    system_prompt: str = ""
    welcome_message: Optional[str] = None
    rate_limit_config: Optional[RateLimitConfig] = None
    cache_config: Optional[CacheConfig] = None
    routing_config: Optional[RoutingConfig] = None
    model_selector: Optional[str] = None


class AssistantUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    system_prompt: Optional[str] = None
    welcome_message: Optional[str] = None
    rate_limit_config: Optional[RateLimitConfig] = None
    cache_config: Optional[CacheConfig] = None
    routing_config: Optional[RoutingConfig] = None
    model_selector: Optional[str] = None


class AssistantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    system_prompt: str
    welcome_message: Optional[str]
    rate_limit_config: Optional[RateLimitConfig]
    cache_config: Optional[CacheConfig]
    routing_config: Optional[RoutingConfig]
    model_selector: Optional[str]
    last_trained_at: Optional[datetime]
    created_at: datetime


# ============== KNOWLEDGE ==============

class KnowledgeEntryCreate(BaseModel):
    title: str
    source_kind: SourceKind
    content: str = ""
    metadata: Optional[KnowledgeMetadata] = None

    @model_validator(mode="before")
    @classmethod
    def _tag_metadata(cls, data):
        # Callers may omit metadata.kind; it is always the entry's source_kind
        if isinstance(data, dict):
            meta = data.get("metadata")
            kind = data.get("source_kind")
            if isinstance(meta, dict) and "kind" not in meta and kind:
                data = {**data, "metadata": {**meta, "kind": kind}}
        return data

    @model_validator(mode="after")
    def _check_shape(self):
        if self.source_kind == "faq" and not isinstance(self.metadata, FaqMetadata):
            raise ValueError("faq entries require metadata with question and response")
        if self.metadata is not None and self.metadata.kind != self.source_kind:
            raise ValueError(
                f"metadata kind '{self.metadata.kind}' does not match source_kind '{self.source_kind}'"
            )
        return self


class KnowledgeEntryUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    question: Optional[str] = None
    response: Optional[str] = None


class KnowledgeEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assistant_id: int
    title: str
    source_kind: str
    content: str
    metadata: Optional[dict] = Field(default=None, validation_alias="meta")
    created_at: datetime
    updated_at: datetime


# ============== CHAT ==============

class SessionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assistant_id: int = Field(alias="assistantId")


class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assistant_id: int
    title: str
    created_at: datetime


class MessageSend(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be empty")
        return v


class MessageCreate(BaseModel):
    conversation_id: int
    role: MessageRole
    content: str
    route: Optional[str] = None


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    role: str
    content: str
    route: Optional[str]
    created_at: datetime


class CacheEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assistant_id: int
    question: str
    response: str
    hit_count: int
    last_used_at: Optional[datetime]
    created_at: datetime


class RetrainOut(BaseModel):
    success: bool
    last_trained_at: Optional[datetime]
    cache_entries_removed: int
