# FILE: app/routing/schemas.py
"""
Types shared by the answer-routing ladder.

KnowledgeItem is the read-only view of a stored knowledge entry that the
matcher, scorer and context assembler work on. RoutingDecision is the outcome
of evaluating one user message; only GENERATIVE_FALLBACK reaches the backend.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple, Union

from app.memory.schemas import FaqMetadata, SourceMetadata


class Language(str, Enum):
    """Languages with localized templates. ENGLISH is the default."""
    ENGLISH = "en"
    RUSSIAN = "ru"
    SPANISH = "es"


class RouteKind(str, Enum):
    GREETING = "greeting"
    FAQ_MATCH = "faq_match"
    OFF_TOPIC_REFUSAL = "off_topic_refusal"
    HIGH_CONFIDENCE_SNIPPET = "high_confidence_snippet"
    CACHE_HIT = "cache_hit"
    GENERATIVE_FALLBACK = "generative_fallback"


@dataclass(frozen=True)
class KnowledgeItem:
    id: int
    source_kind: str
    title: str
    content: str = ""
    metadata: Union[FaqMetadata, SourceMetadata, None] = None

    @property
    def is_faq(self) -> bool:
        return self.source_kind == "faq"

    @property
    def faq_pair(self) -> Optional[Tuple[str, str]]:
        """(question, response) when this is a complete faq entry, else None."""
        if not self.is_faq or not isinstance(self.metadata, FaqMetadata):
            return None
        if not self.metadata.question.strip() or not self.metadata.response.strip():
            return None
        return self.metadata.question, self.metadata.response


@dataclass(frozen=True)
class ScoredEntry:
    entry: KnowledgeItem
    score: float
    matched_keywords: FrozenSet[str]


@dataclass(frozen=True)
class CacheState:
    """What the cache can offer for this message, resolved before deciding."""
    eligible: bool = False
    response: Optional[str] = None


@dataclass(frozen=True)
class RoutingOptions:
    high_confidence_threshold: float = 0.8
    min_matched_keywords: int = 2
    snippet_max_length: int = 500
    welcome_message: Optional[str] = None


@dataclass(frozen=True)
class RoutingDecision:
    kind: RouteKind
    language: Language
    response: Optional[str] = None
    scored: List[ScoredEntry] = field(default_factory=list)

    @property
    def invokes_backend(self) -> bool:
        return self.kind == RouteKind.GENERATIVE_FALLBACK

    @property
    def cached(self) -> bool:
        return self.kind == RouteKind.CACHE_HIT
