# FILE: app/routing/decision.py
"""
The routing ladder as a pure function.

decide() evaluates one user message against the cheap answer sources in a
fixed order and stops at the first that applies:

    greeting -> faq match -> off-topic guard -> high-confidence snippet
             -> cache hit -> generative fallback

No I/O happens here. The caller resolves the knowledge entries and the cache
state up front, and acts on the returned RoutingDecision (persist, stream,
call the backend). The rate check runs before this, in the orchestrator,
because a rejected message must not be persisted.
"""
from __future__ import annotations

from typing import Sequence

from . import config, templates
from .faq import match_faq
from .normalizer import detect_language, normalize
from .relevance import extract_snippet, score
from .schemas import (
    CacheState,
    KnowledgeItem,
    RouteKind,
    RoutingDecision,
    RoutingOptions,
)


def is_greeting(message: str, max_length: int = config.GREETING_MAX_LENGTH) -> bool:
    """Short message that is, or starts with, a known greeting phrase."""
    stripped = (message or "").strip()
    if not stripped or len(stripped) >= max_length:
        return False
    text = normalize(stripped)
    for phrase in templates.GREETING_PHRASES:
        if text == phrase or text.startswith(phrase + " "):
            return True
    return False


def decide(
    query: str,
    entries: Sequence[KnowledgeItem],
    cache_state: CacheState = CacheState(),
    options: RoutingOptions = RoutingOptions(),
) -> RoutingDecision:
    language = detect_language(query)

    if is_greeting(query):
        return RoutingDecision(
            kind=RouteKind.GREETING,
            language=language,
            response=templates.welcome(language, options.welcome_message),
        )

    faq_answer = match_faq(query, entries)
    if faq_answer is not None:
        return RoutingDecision(kind=RouteKind.FAQ_MATCH, language=language, response=faq_answer)

    scored = score(query, entries, min_matched=options.min_matched_keywords)

    if entries and not scored:
        return RoutingDecision(
            kind=RouteKind.OFF_TOPIC_REFUSAL,
            language=language,
            response=templates.OFF_TOPIC[language],
        )

    if scored and scored[0].score >= options.high_confidence_threshold:
        best = scored[0]
        snippet = extract_snippet(best.entry.content, best.matched_keywords, options.snippet_max_length)
        return RoutingDecision(
            kind=RouteKind.HIGH_CONFIDENCE_SNIPPET,
            language=language,
            response=templates.snippet_reply(language, best.entry.title, snippet),
            scored=scored,
        )

    if cache_state.eligible and cache_state.response is not None:
        return RoutingDecision(
            kind=RouteKind.CACHE_HIT,
            language=language,
            response=cache_state.response,
            scored=scored,
        )

    return RoutingDecision(kind=RouteKind.GENERATIVE_FALLBACK, language=language, scored=scored)
