# FILE: tests/test_context.py
"""
Tests for app/routing/context.py
Bounded knowledge block and the instruction envelope for the generative fallback.
"""

from app.memory.schemas import FaqMetadata
from app.routing import KnowledgeItem, Language, build_context
from app.routing import config, templates
from app.routing.context import (
    SECTION_FAQ,
    SECTION_KNOWLEDGE,
    SECTION_MORE,
    SECTION_SNIPPETS,
    build_knowledge_block,
    build_system_instruction,
    map_history,
)


def _text(entry_id, content, title=None):
    return KnowledgeItem(id=entry_id, source_kind="text", title=title or f"Doc {entry_id}", content=content)


def _faq(entry_id, question, response):
    return KnowledgeItem(
        id=entry_id,
        source_kind="faq",
        title=question,
        metadata=FaqMetadata(question=question, response=response),
    )


class TestKnowledgeBlock:
    """Section selection and ordering."""

    def test_sections_in_order(self):
        entries = [
            _text(1, "Library parking is free after six.", "Parking"),
            _faq(2, "Do you have wifi?", "Yes, ask for the password."),
            _text(3, "Story time for children runs on Saturdays.", "Events"),
        ]
        block = build_knowledge_block(entries, "library parking fees")

        assert block.index(SECTION_SNIPPETS) < block.index(SECTION_FAQ) < block.index(SECTION_MORE)
        assert "[Parking]" in block
        assert "Q: Do you have wifi?\nA: Yes, ask for the password." in block
        assert "[Events]" in block

    def test_at_most_three_snippets(self):
        entries = [_text(i, f"library parking note number {i}", f"Note {i}") for i in range(1, 6)]
        block = build_knowledge_block(entries, "library parking")
        snippets = block.split(SECTION_SNIPPETS)[1].split(SECTION_MORE)[0]
        assert snippets.count("[Note ") == 3

    def test_at_most_two_extra_entries(self):
        entries = [_text(i, f"unrelated text {i}", f"Extra {i}") for i in range(1, 6)]
        block = build_knowledge_block(entries, "library parking")
        assert SECTION_SNIPPETS not in block
        assert block.count("[Extra ") == 2

    def test_extra_entries_are_capped(self):
        entries = [_text(1, "z" * 5000, "Huge")]
        block = build_knowledge_block(entries, "library parking")
        assert ("z" * config.CONTEXT_EXTRA_ENTRY_CHARS) in block
        assert ("z" * (config.CONTEXT_EXTRA_ENTRY_CHARS + 1)) not in block

    def test_all_faq_pairs_included(self):
        entries = [_faq(i, f"Question {i}?", f"Answer {i}.") for i in range(1, 8)]
        block = build_knowledge_block(entries, "anything")
        for i in range(1, 8):
            assert f"Q: Question {i}?\nA: Answer {i}." in block

    def test_block_is_bounded(self):
        entries = [_faq(i, f"Question {i}?", "a" * 1000) for i in range(1, 40)]
        block = build_knowledge_block(entries, "anything", max_chars=5000)
        assert len(block) <= 5000 + len(config.ELLIPSIS)


class TestSystemInstruction:
    """Persona, language directive, rules, knowledge."""

    def test_order_of_parts(self):
        text = build_system_instruction("You are the library bot.", Language.ENGLISH, "BLOCK")
        persona = text.index("You are the library bot.")
        language = text.index("Respond in English.")
        rules = text.index("RULES:")
        knowledge = text.index(SECTION_KNOWLEDGE)
        assert persona < language < rules < knowledge
        assert text.endswith("BLOCK")

    def test_rules_quote_localized_templates(self):
        text = build_system_instruction("", Language.RUSSIAN, "BLOCK")
        assert templates.NO_INFORMATION[Language.RUSSIAN] in text
        assert templates.OFF_TOPIC[Language.RUSSIAN] in text
        assert "Respond in Russian." in text

    def test_empty_knowledge_placeholder(self):
        text = build_system_instruction("Persona", Language.SPANISH, "")
        assert text.endswith(templates.EMPTY_KNOWLEDGE[Language.SPANISH])


class TestBuildContext:
    """End-to-end assembly."""

    def test_history_mapped_in_order(self):
        history = [
            {"role": "user", "content": "hello"},
            {"role": "model", "content": "Hi there"},
            {"role": "user", "content": "library parking?"},
        ]
        ctx = build_context("Persona", [_text(1, "Library parking is free.")], "library parking?", history)
        assert ctx.prior_messages == [
            {"role": "user", "text": "hello"},
            {"role": "model", "text": "Hi there"},
            {"role": "user", "text": "library parking?"},
        ]

    def test_no_entries_uses_placeholder(self):
        ctx = build_context("Persona", [], "what is new")
        assert ctx.knowledge_block == ""
        assert templates.EMPTY_KNOWLEDGE[Language.ENGLISH] in ctx.system_instruction

    def test_language_detected_from_query(self):
        ctx = build_context("Persona", [], "Когда открывается библиотека?")
        assert "Respond in Russian." in ctx.system_instruction


class TestMapHistory:
    """Stored roles map onto user/model."""

    def test_objects_and_dicts(self):
        class Row:
            def __init__(self, role, content):
                self.role = role
                self.content = content

        assert map_history([Row("user", "q"), {"role": "assistant", "content": "a"}]) == [
            {"role": "user", "text": "q"},
            {"role": "model", "text": "a"},
        ]
