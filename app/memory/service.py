# FILE: app/memory/service.py
"""
Memory service layer for Beacon.

Assistants, knowledge entries and conversations. Every create/update/delete
of a knowledge entry invalidates the assistant's response cache in the same
call, because cached answers were derived from the old knowledge.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.cache import ResponseCache
from app.memory import models, schemas
from app.routing import KnowledgeItem, RoutingOptions
from app.routing import config as routing_config

logger = logging.getLogger(__name__)

_metadata_adapter = TypeAdapter(schemas.KnowledgeMetadata)


# ============== ASSISTANT ==============

@dataclass(frozen=True)
class AssistantProfile:
    """What the chat pipeline needs to know about an assistant, with defaults applied."""
    id: int
    system_prompt: str
    welcome_message: Optional[str]
    rate_limit: schemas.RateLimitConfig
    cache: schemas.CacheConfig
    routing: RoutingOptions
    model_selector: Optional[str]


def _dump(config) -> Optional[dict]:
    return config.model_dump() if config is not None else None


def create_assistant(db: Session, data: schemas.AssistantCreate) -> models.Assistant:
    assistant = models.Assistant(
        name=data.name,
        description=data.description,
        system_prompt=data.system_prompt,
        welcome_message=data.welcome_message,
        rate_limit_config=_dump(data.rate_limit_config),
        cache_config=_dump(data.cache_config),
        routing_config=_dump(data.routing_config),
        model_selector=data.model_selector,
    )
    db.add(assistant)
    db.commit()
    db.refresh(assistant)
    return assistant


def get_assistant(db: Session, assistant_id: int) -> Optional[models.Assistant]:
    return db.query(models.Assistant).filter(models.Assistant.id == assistant_id).first()


def list_assistants(db: Session) -> List[models.Assistant]:
    return db.query(models.Assistant).order_by(models.Assistant.id).all()


def update_assistant(db: Session, assistant_id: int, data: schemas.AssistantUpdate) -> Optional[models.Assistant]:
    assistant = get_assistant(db, assistant_id)
    if not assistant:
        return None
    for field_name in ("name", "description", "system_prompt", "welcome_message", "model_selector"):
        value = getattr(data, field_name)
        if value is not None:
            setattr(assistant, field_name, value)
    for field_name in ("rate_limit_config", "cache_config", "routing_config"):
        value = getattr(data, field_name)
        if value is not None:
            setattr(assistant, field_name, value.model_dump())
    db.commit()
    db.refresh(assistant)
    return assistant


def mark_retrained(db: Session, assistant_id: int) -> Tuple[Optional[models.Assistant], int]:
    """Stamp last_trained_at and drop the cached answers."""
    assistant = get_assistant(db, assistant_id)
    if not assistant:
        return None, 0
    assistant.last_trained_at = datetime.utcnow()
    db.commit()
    db.refresh(assistant)
    removed = ResponseCache(db).invalidate(assistant_id)
    return assistant, removed


def delete_assistant(db: Session, assistant_id: int) -> bool:
    """Delete the assistant with its knowledge, conversations and cached answers."""
    assistant = get_assistant(db, assistant_id)
    if not assistant:
        return False
    ResponseCache(db).invalidate(assistant_id)
    db.delete(assistant)
    db.commit()
    logger.info(f"[memory] deleted assistant={assistant_id}")
    return True


def get_profile(db: Session, assistant_id: int) -> Optional[AssistantProfile]:
    assistant = get_assistant(db, assistant_id)
    if not assistant:
        return None
    return profile_for(assistant)


def profile_for(assistant: models.Assistant) -> AssistantProfile:
    rate = schemas.RateLimitConfig.model_validate(assistant.rate_limit_config or {})
    rate = rate.model_copy(update={
        "max_count": rate.max_count or routing_config.RATE_LIMIT_DEFAULT_MAX,
        "window_seconds": rate.window_seconds or routing_config.RATE_LIMIT_DEFAULT_WINDOW,
    })
    cache = schemas.CacheConfig.model_validate(assistant.cache_config or {})
    routing = schemas.RoutingConfig.model_validate(assistant.routing_config or {})

    return AssistantProfile(
        id=assistant.id,
        system_prompt=assistant.system_prompt or "",
        welcome_message=assistant.welcome_message,
        rate_limit=rate,
        cache=cache,
        routing=RoutingOptions(
            high_confidence_threshold=(
                routing.high_confidence_threshold or routing_config.HIGH_CONFIDENCE_THRESHOLD
            ),
            min_matched_keywords=routing.min_matched_keywords or routing_config.MIN_MATCHED_KEYWORDS,
            snippet_max_length=routing_config.SNIPPET_MAX_LENGTH,
            welcome_message=assistant.welcome_message,
        ),
        model_selector=assistant.model_selector,
    )


# ============== KNOWLEDGE ==============

def create_knowledge_entry(
    db: Session, assistant_id: int, data: schemas.KnowledgeEntryCreate
) -> models.KnowledgeEntry:
    entry = models.KnowledgeEntry(
        assistant_id=assistant_id,
        title=data.title,
        source_kind=data.source_kind,
        content=data.content or "",
        meta=data.metadata.model_dump() if data.metadata is not None else None,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    ResponseCache(db).invalidate(assistant_id)
    return entry


def get_knowledge_entry(db: Session, entry_id: int) -> Optional[models.KnowledgeEntry]:
    return db.query(models.KnowledgeEntry).filter(models.KnowledgeEntry.id == entry_id).first()


def list_knowledge_entries(db: Session, assistant_id: int) -> List[models.KnowledgeEntry]:
    # Oldest first: "first match wins" and score ties follow insertion order
    return (
        db.query(models.KnowledgeEntry)
        .filter(models.KnowledgeEntry.assistant_id == assistant_id)
        .order_by(models.KnowledgeEntry.created_at.asc(), models.KnowledgeEntry.id.asc())
        .all()
    )


def update_knowledge_entry(
    db: Session, entry_id: int, data: schemas.KnowledgeEntryUpdate
) -> Optional[models.KnowledgeEntry]:
    """
    Apply a partial update. Raises ValueError if an faq entry would lose its
    question or response.
    """
    entry = get_knowledge_entry(db, entry_id)
    if not entry:
        return None

    if data.title is not None:
        entry.title = data.title
    if data.content is not None:
        entry.content = data.content

    if data.question is not None or data.response is not None:
        if entry.source_kind != "faq":
            raise ValueError("question/response can only be set on faq entries")
        current = dict(entry.meta or {})
        if data.question is not None:
            current["question"] = data.question
        if data.response is not None:
            current["response"] = data.response
        current["kind"] = "faq"
        try:
            entry.meta = schemas.FaqMetadata.model_validate(current).model_dump()
        except PydanticValidationError as e:
            raise ValueError(e.errors()[0]["msg"]) from e

    db.commit()
    db.refresh(entry)

    ResponseCache(db).invalidate(entry.assistant_id)
    return entry


def delete_knowledge_entry(db: Session, entry_id: int) -> bool:
    entry = get_knowledge_entry(db, entry_id)
    if not entry:
        return False
    assistant_id = entry.assistant_id
    db.delete(entry)
    db.commit()

    ResponseCache(db).invalidate(assistant_id)
    return True


def to_knowledge_item(entry: models.KnowledgeEntry) -> KnowledgeItem:
    """
    Read-only routing view of a stored entry.

    Metadata that fails validation (rows written before validation existed)
    is dropped, so an incomplete faq entry simply never matches.
    """
    metadata = None
    if entry.meta:
        raw = dict(entry.meta)
        raw.setdefault("kind", entry.source_kind)
        try:
            metadata = _metadata_adapter.validate_python(raw)
        except PydanticValidationError:
            logger.warning(f"[memory.service] knowledge entry {entry.id} has invalid metadata; ignoring it")
    return KnowledgeItem(
        id=entry.id,
        source_kind=entry.source_kind,
        title=entry.title,
        content=entry.content or "",
        metadata=metadata,
    )


def list_knowledge_items(db: Session, assistant_id: int) -> List[KnowledgeItem]:
    return [to_knowledge_item(e) for e in list_knowledge_entries(db, assistant_id)]


# ============== CONVERSATION ==============

def create_conversation(db: Session, assistant_id: int, title: str = "New Chat") -> models.Conversation:
    conversation = models.Conversation(assistant_id=assistant_id, title=title)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def get_conversation(db: Session, conversation_id: int) -> Optional[models.Conversation]:
    return db.query(models.Conversation).filter(models.Conversation.id == conversation_id).first()


# ============== MESSAGE ==============

def _sanitize_utf8(text: str) -> str:
    """Replace lone surrogates so the text can always be encoded for storage."""
    if not text:
        return text
    return text.encode("utf-8", errors="surrogatepass").decode("utf-8", errors="replace")


def create_message(db: Session, data: schemas.MessageCreate) -> models.Message:
    message = models.Message(
        conversation_id=data.conversation_id,
        role=data.role,
        content=_sanitize_utf8(data.content),
        route=data.route,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def list_messages(db: Session, conversation_id: int, limit: Optional[int] = None) -> List[models.Message]:
    """Messages in the order they were appended; `limit` keeps the most recent ones."""
    query = (
        db.query(models.Message)
        .filter(models.Message.conversation_id == conversation_id)
        .order_by(models.Message.id.asc())
    )
    messages = query.all()
    if limit is not None and len(messages) > limit:
        messages = messages[-limit:]
    return messages


def count_messages(db: Session, conversation_id: int) -> int:
    return db.query(models.Message).filter(models.Message.conversation_id == conversation_id).count()
