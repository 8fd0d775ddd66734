# FILE: app/routing/faq.py
"""
Deterministic FAQ matching.

Exact equality of normalized forms only: no partial or fuzzy matching, so the
same normalized question always gets the same stored answer.
"""
from __future__ import annotations

from typing import Iterable, Optional

from .normalizer import normalize
from .schemas import KnowledgeItem


def match_faq(query: str, entries: Iterable[KnowledgeItem]) -> Optional[str]:
    """Return the response of the first faq entry whose question equals `query` after normalization."""
    normalized_query = normalize(query)
    if not normalized_query:
        return None

    for entry in entries:
        pair = entry.faq_pair
        if pair is None:
            continue
        question, response = pair
        if normalize(question) == normalized_query:
            return response

    return None
