# FILE: app/routing/context.py
"""
Prompt context assembly for the generative fallback.

Knowledge block layout, in order, within CONTEXT_MAX_CHARS:
  1. Snippets of the top-scored non-faq entries (up to CONTEXT_TOP_ENTRIES)
  2. Every complete faq entry as an explicit Q/A pair
  3. Up to CONTEXT_EXTRA_ENTRIES further non-faq entries, each capped at
     CONTEXT_EXTRA_ENTRY_CHARS, while the block still has room

The system instruction wraps the block with the assistant persona, a language
directive and the grounding rules.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from . import config, templates
from .normalizer import detect_language
from .relevance import extract_snippet, score
from .schemas import KnowledgeItem, Language, ScoredEntry

SECTION_SNIPPETS = "=== RELEVANT EXCERPTS ==="
SECTION_FAQ = "=== FREQUENTLY ASKED QUESTIONS ==="
SECTION_MORE = "=== MORE REFERENCE MATERIAL ==="
SECTION_KNOWLEDGE = "KNOWLEDGE BASE:"


@dataclass
class AssembledContext:
    system_instruction: str
    prior_messages: List[Dict[str, str]] = field(default_factory=list)
    knowledge_block: str = ""


def cap_text(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + config.ELLIPSIS


def build_knowledge_block(
    entries: Sequence[KnowledgeItem],
    query: str,
    scored: Optional[List[ScoredEntry]] = None,
    max_chars: int = config.CONTEXT_MAX_CHARS,
) -> str:
    """Concatenate snippets, FAQ pairs and extra entries into one bounded block."""
    if scored is None:
        scored = score(query, entries)

    sections: List[str] = []
    used = 0
    included_ids = set()

    top = scored[: config.CONTEXT_TOP_ENTRIES]
    if top:
        parts = []
        for s in top:
            snippet = extract_snippet(s.entry.content, s.matched_keywords)
            parts.append(f"[{s.entry.title}]\n{snippet}")
            included_ids.add(s.entry.id)
        section = SECTION_SNIPPETS + "\n" + "\n\n".join(parts)
        sections.append(section)
        used += len(section)

    faq_parts = []
    for entry in entries:
        pair = entry.faq_pair
        if pair is None:
            continue
        question, response = pair
        faq_parts.append(f"Q: {question}\nA: {response}")
    if faq_parts:
        section = SECTION_FAQ + "\n" + "\n\n".join(faq_parts)
        sections.append(section)
        used += len(section)

    extra_parts = []
    for entry in entries:
        if len(extra_parts) >= config.CONTEXT_EXTRA_ENTRIES:
            break
        if entry.is_faq or not entry.content or entry.id in included_ids:
            continue
        part = f"[{entry.title}]\n{cap_text(entry.content, config.CONTEXT_EXTRA_ENTRY_CHARS)}"
        if used + len(part) > max_chars:
            break
        extra_parts.append(part)
        used += len(part)
    if extra_parts:
        sections.append(SECTION_MORE + "\n" + "\n\n".join(extra_parts))

    return cap_text("\n\n".join(sections), max_chars)


def build_system_instruction(persona: str, language: Language, knowledge_block: str) -> str:
    language_name = templates.LANGUAGE_NAMES[language]
    no_info = templates.NO_INFORMATION[language]
    off_topic = templates.OFF_TOPIC[language]

    lines = []
    if persona and persona.strip():
        lines.append(persona.strip())
        lines.append("")
    lines.append(f"The user is writing in {language_name}. Respond in {language_name}.")
    lines.append("")
    lines.append("RULES:")
    lines.append("1. Answer ONLY from the knowledge base below.")
    lines.append(f"2. If the answer is not in the knowledge base, reply exactly: \"{no_info}\"")
    lines.append(f"3. If the request is unrelated to the knowledge base, reply exactly: \"{off_topic}\"")
    lines.append("4. Never use general world knowledge or make up facts.")
    lines.append("")
    lines.append(SECTION_KNOWLEDGE)
    lines.append(knowledge_block or templates.EMPTY_KNOWLEDGE[language])
    return "\n".join(lines)


def map_history(messages: Iterable) -> List[Dict[str, str]]:
    """Stored messages -> ordered [{role, text}] for the backend call."""
    history = []
    for msg in messages:
        role = getattr(msg, "role", None) or msg["role"]
        content = getattr(msg, "content", None)
        if content is None:
            content = msg["content"]
        history.append({"role": "user" if role == "user" else "model", "text": content})
    return history


def build_context(
    persona: str,
    entries: Sequence[KnowledgeItem],
    query: str,
    history: Iterable = (),
    language: Optional[Language] = None,
    scored: Optional[List[ScoredEntry]] = None,
) -> AssembledContext:
    if language is None:
        language = detect_language(query)
    block = build_knowledge_block(entries, query, scored=scored) if entries else ""
    return AssembledContext(
        system_instruction=build_system_instruction(persona, language, block),
        prior_messages=map_history(history),
        knowledge_block=block,
    )
