# FILE: app/routing/relevance.py
"""
Keyword-overlap relevance scoring and snippet extraction.

Lexical only: an entry's score is the fraction of the query's keywords that
also appear in the entry's content. Entries that share fewer than
`min_matched` keywords are dropped so a single coincidental word never makes
a document look relevant.
"""
from __future__ import annotations

import logging
from typing import Iterable, List

from . import config
from .normalizer import extract_keywords
from .schemas import KnowledgeItem, ScoredEntry

logger = logging.getLogger(__name__)


def score(
    query: str,
    entries: Iterable[KnowledgeItem],
    min_matched: int = config.MIN_MATCHED_KEYWORDS,
) -> List[ScoredEntry]:
    """
    Score non-faq entries against the query keywords.

    Returns candidates sorted by descending score; ties keep their input order.
    """
    query_keywords = extract_keywords(query)
    if not query_keywords:
        return []

    results: List[ScoredEntry] = []
    for entry in entries:
        if entry.is_faq or not entry.content:
            continue
        matched = query_keywords & extract_keywords(entry.content)
        if len(matched) < min_matched:
            continue
        results.append(
            ScoredEntry(
                entry=entry,
                score=len(matched) / len(query_keywords),
                matched_keywords=frozenset(matched),
            )
        )

    # sorted() is stable, so equal scores stay in original order
    results = sorted(results, key=lambda s: s.score, reverse=True)
    if results:
        logger.debug(
            "[relevance] %d candidates, top=%.2f (%s)",
            len(results), results[0].score, results[0].entry.title,
        )
    return results


def extract_snippet(
    content: str,
    matched_keywords: Iterable[str],
    max_length: int = config.SNIPPET_MAX_LENGTH,
) -> str:
    """
    Bounded excerpt of `content` around the earliest keyword hit.

    The window opens SNIPPET_LEAD_CHARS before the hit (clamped to 0) and runs
    max_length - SNIPPET_LEAD_CHARS characters past it. An ellipsis marks each
    side that was cut.
    """
    if not content:
        return ""

    lowered = content.lower()
    hits = [lowered.find(k.lower()) for k in matched_keywords if k]
    hits = [h for h in hits if h >= 0]
    first_hit = min(hits) if hits else 0

    lead = config.SNIPPET_LEAD_CHARS
    start = max(0, first_hit - lead)
    end = min(len(content), first_hit + max(0, max_length - lead))

    snippet = content[start:end].strip()
    if start > 0:
        snippet = config.ELLIPSIS + snippet
    if end < len(content):
        snippet = snippet + config.ELLIPSIS
    return snippet
