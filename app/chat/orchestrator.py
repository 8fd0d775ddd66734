# FILE: app/chat/orchestrator.py
"""
Chat orchestrator: takes one user message through the routing ladder.

    rate check -> persist user message -> decide() -> persist answer
                                                   \\-> generative fallback

handle_message does every synchronous step and returns a RoutedMessage. For
the deterministic branches the assistant message is already persisted when it
returns; for the generative fallback the caller relays the backend stream and
calls complete_generative with the full answer.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.cache import ResponseCache
from app.errors import NotFound, RateLimited
from app.memory import schemas as memory_schemas
from app.memory import service as memory_service
from app.memory.service import AssistantProfile
from app.ratelimit import RateLimiter
from app.routing import AssembledContext, CacheState, RouteKind, RoutingDecision, build_context, decide
from app.routing import config as routing_config

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass
class RoutedMessage:
    conversation_id: int
    profile: AssistantProfile
    question: str
    decision: RoutingDecision
    cache_eligible: bool = False
    context: Optional[AssembledContext] = None


def handle_message(
    db: Session,
    conversation_id: int,
    content: str,
    client_id: str,
    limiter: RateLimiter,
) -> RoutedMessage:
    """
    Route one user message.

    Raises:
        NotFound: Unknown conversation, or its assistant is gone
        RateLimited: The client exceeded the assistant's window (nothing persisted)
    """
    conversation = memory_service.get_conversation(db, conversation_id)
    if not conversation:
        raise NotFound("Session not found")

    profile = memory_service.get_profile(db, conversation.assistant_id)
    if not profile:
        raise NotFound("Assistant not found")

    if profile.rate_limit.enabled:
        verdict = limiter.check(
            profile.id,
            client_id,
            profile.rate_limit.max_count,
            profile.rate_limit.window_seconds,
        )
        if not verdict.allowed:
            logger.info(
                f"[chat] rate limited assistant={profile.id} client={client_id} "
                f"retry_after={verdict.retry_after}s"
            )
            raise RateLimited(RATE_LIMIT_MESSAGE, retry_after=verdict.retry_after)

    first_message = memory_service.count_messages(db, conversation_id) == 0

    memory_service.create_message(
        db,
        memory_schemas.MessageCreate(conversation_id=conversation_id, role="user", content=content),
    )

    entries = memory_service.list_knowledge_items(db, profile.id)

    cache = ResponseCache(db)
    cache_eligible = first_message and profile.cache.enabled
    cached_entry = cache.peek(profile.id, content) if cache_eligible else None

    decision = decide(
        content,
        entries,
        CacheState(
            eligible=cache_eligible,
            response=cached_entry.response if cached_entry is not None else None,
        ),
        profile.routing,
    )

    logger.info(
        f"[chat] conversation={conversation_id} assistant={profile.id} "
        f"route={decision.kind.value} language={decision.language.value} "
        f"entries={len(entries)} candidates={len(decision.scored)}"
    )

    routed = RoutedMessage(
        conversation_id=conversation_id,
        profile=profile,
        question=content,
        decision=decision,
        cache_eligible=cache_eligible,
    )

    if decision.kind == RouteKind.CACHE_HIT:
        cache.record_hit(cached_entry)

    if not decision.invokes_backend:
        _persist_answer(db, conversation_id, decision.response or "", decision.kind)
        return routed

    history = memory_service.list_messages(
        db, conversation_id, limit=routing_config.CONTEXT_HISTORY_MESSAGES
    )
    routed.context = build_context(
        profile.system_prompt,
        entries,
        content,
        history=history,
        language=decision.language,
        scored=decision.scored,
    )
    return routed


def complete_generative(db: Session, routed: RoutedMessage, answer: str) -> None:
    """Persist the streamed answer and cache it when this was a cacheable first turn."""
    _persist_answer(db, routed.conversation_id, answer, RouteKind.GENERATIVE_FALLBACK)

    if routed.cache_eligible:
        ResponseCache(db).store(routed.profile.id, routed.question, answer)


def _persist_answer(db: Session, conversation_id: int, content: str, route: RouteKind) -> None:
    memory_service.create_message(
        db,
        memory_schemas.MessageCreate(
            conversation_id=conversation_id,
            role="model",
            content=content,
            route=route.value,
        ),
    )
