# FILE: tests/test_response_cache.py
"""
Tests for app/cache/response_cache.py
Content-addressed answer cache: idempotent writes, hit counting, invalidation.
"""

from app.cache import ResponseCache, is_cacheable, question_hash
from app.cache.models import CacheEntry
from app.memory import schemas, service


class TestQuestionHash:
    """Cache key derivation."""

    def test_equal_normalized_questions_share_a_key(self):
        assert question_hash("What time do you OPEN?") == question_hash("  what time do you open ")

    def test_different_questions_differ(self):
        assert question_hash("opening hours") != question_hash("closing hours")

    def test_is_sha256_hex(self):
        assert len(question_hash("anything")) == 64


class TestIsCacheable:
    """Size ceiling."""

    def test_under_ceiling(self):
        assert is_cacheable("short answer", max_chars=4000)

    def test_at_or_over_ceiling(self):
        assert not is_cacheable("x" * 4000, max_chars=4000)
        assert not is_cacheable("x" * 5000, max_chars=4000)

    def test_blank(self):
        assert not is_cacheable("   ")


class TestStoreAndLookup:
    """Idempotent storage and hit accounting."""

    def test_store_then_lookup_counts_hits(self, db_session, make_assistant):
        assistant = make_assistant()
        cache = ResponseCache(db_session)

        assert cache.store(assistant.id, "What are the hours?", "9 to 6.") is True
        assert cache.lookup(assistant.id, "what are the hours") == "9 to 6."
        assert cache.lookup(assistant.id, "WHAT ARE THE HOURS?") == "9 to 6."

        entry = cache.peek(assistant.id, "what are the hours")
        assert entry.hit_count == 2
        assert entry.last_used_at is not None

    def test_store_twice_keeps_original(self, db_session, make_assistant):
        assistant = make_assistant()
        cache = ResponseCache(db_session)

        assert cache.store(assistant.id, "What are the hours?", "9 to 6.") is True
        assert cache.store(assistant.id, "what are the hours", "Always open.") is False

        rows = db_session.query(CacheEntry).filter(CacheEntry.assistant_id == assistant.id).all()
        assert len(rows) == 1
        assert rows[0].response == "9 to 6."

    def test_oversized_response_not_stored(self, db_session, make_assistant):
        assistant = make_assistant()
        cache = ResponseCache(db_session, max_response_chars=10)
        assert cache.store(assistant.id, "question", "x" * 10) is False
        assert cache.peek(assistant.id, "question") is None

    def test_miss(self, db_session, make_assistant):
        assistant = make_assistant()
        assert ResponseCache(db_session).lookup(assistant.id, "never asked") is None

    def test_keys_are_per_assistant(self, db_session, make_assistant):
        first = make_assistant(name="First")
        second = make_assistant(name="Second")
        cache = ResponseCache(db_session)
        cache.store(first.id, "hours", "9 to 6.")
        assert cache.lookup(second.id, "hours") is None


class TestInvalidation:
    """Any knowledge change drops the assistant's cached answers."""

    def _seed(self, db_session, assistant_id):
        cache = ResponseCache(db_session)
        cache.store(assistant_id, "q one", "a one")
        cache.store(assistant_id, "q two", "a two")
        return cache

    def test_invalidate_returns_count(self, db_session, make_assistant):
        assistant = make_assistant()
        cache = self._seed(db_session, assistant.id)
        assert cache.invalidate(assistant.id) == 2
        assert cache.list_entries(assistant.id) == []

    def test_invalidate_leaves_other_assistants(self, db_session, make_assistant):
        first = make_assistant(name="First")
        second = make_assistant(name="Second")
        self._seed(db_session, first.id)
        cache = self._seed(db_session, second.id)
        cache.invalidate(first.id)
        assert len(cache.list_entries(second.id)) == 2

    def test_knowledge_create_invalidates(self, db_session, make_assistant, knowledge):
        assistant = make_assistant()
        cache = self._seed(db_session, assistant.id)
        service.create_knowledge_entry(
            db_session,
            assistant.id,
            schemas.KnowledgeEntryCreate.model_validate(knowledge["text_opening_hours"]),
        )
        assert cache.list_entries(assistant.id) == []

    def test_knowledge_update_invalidates(self, db_session, make_assistant, knowledge):
        assistant = make_assistant(knowledge=[knowledge["text_opening_hours"]])
        entry = service.list_knowledge_entries(db_session, assistant.id)[0]
        cache = self._seed(db_session, assistant.id)
        service.update_knowledge_entry(db_session, entry.id, schemas.KnowledgeEntryUpdate(content="Closed."))
        assert cache.list_entries(assistant.id) == []

    def test_knowledge_delete_invalidates(self, db_session, make_assistant, knowledge):
        assistant = make_assistant(knowledge=[knowledge["text_opening_hours"]])
        entry = service.list_knowledge_entries(db_session, assistant.id)[0]
        cache = self._seed(db_session, assistant.id)
        assert service.delete_knowledge_entry(db_session, entry.id) is True
        assert cache.list_entries(assistant.id) == []

    def test_retrain_invalidates(self, db_session, make_assistant):
        assistant = make_assistant()
        self._seed(db_session, assistant.id)
        updated, removed = service.mark_retrained(db_session, assistant.id)
        assert removed == 2
        assert updated.last_trained_at is not None
