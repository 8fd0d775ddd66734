# FILE: app/routing/__init__.py
"""
Answer routing: the deterministic shortcuts tried before the generative backend.

Usage:
    from app.routing import decide, CacheState, RoutingOptions

    decision = decide(message, entries, CacheState(eligible=True, response=cached))
    if decision.invokes_backend:
        context = build_context(persona, entries, message, history, decision.language, decision.scored)
"""

from .schemas import (
    Language,
    RouteKind,
    KnowledgeItem,
    ScoredEntry,
    CacheState,
    RoutingOptions,
    RoutingDecision,
)
from .normalizer import normalize, extract_keywords, detect_language
from .faq import match_faq
from .relevance import score, extract_snippet
from .context import AssembledContext, build_context
from .decision import decide, is_greeting

__all__ = [
    "Language",
    "RouteKind",
    "KnowledgeItem",
    "ScoredEntry",
    "CacheState",
    "RoutingOptions",
    "RoutingDecision",
    "normalize",
    "extract_keywords",
    "detect_language",
    "match_faq",
    "score",
    "extract_snippet",
    "AssembledContext",
    "build_context",
    "decide",
    "is_greeting",
]
