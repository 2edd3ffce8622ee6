"""Tests for the session memory stores."""

from datetime import datetime, timedelta

import pytest
from memory.models import ContextFrame
from memory.sqlite_store import SQLiteSessionStore
from memory.store import InMemorySessionStore
from schemas.catalog import Candidate


def _candidate(cid: str, store: str = "Nissei") -> Candidate:
    return Candidate(id=cid, title=f"Produto {cid}", category="celular", store=store)


class TestInMemorySessionStore:
    """Test accessor semantics on the in-process store."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = InMemorySessionStore(context_stack_size=3)

    def test_unknown_session_is_created(self):
        """Test that lookup of an unknown session initializes an empty record."""
        memory = self.store.get_or_create("s-1")

        assert memory.session_id == "s-1"
        assert memory.messages == []
        assert memory.current_focus_id is None
        assert "s-1" in self.store.session_ids()

    def test_append_message(self):
        """Test message append with meta."""
        message = self.store.append_message("s-1", "user", "oi", meta={"intent": "small_talk"})

        memory = self.store.get_or_create("s-1")
        assert len(memory.messages) == 1
        assert message.intent == "small_talk"
        assert memory.last_interaction_at == message.timestamp

    def test_append_message_rejects_unknown_role(self):
        """Test that only user and assistant roles are accepted."""
        with pytest.raises(ValueError):
            self.store.append_message("s-1", "system", "x")

    def test_context_stack_is_bounded(self):
        """Test that the stack never exceeds its cap."""
        for i in range(10):
            self.store.push_context("s-1", ContextFrame(type="query", payload={"i": i}, relevance=0.5))

        assert len(self.store.get_or_create("s-1").context_stack) == 3

    def test_eviction_removes_lowest_relevance(self):
        """Test that the lowest-relevance frame is evicted first."""
        self.store.push_context("s-1", ContextFrame(type="query", payload={"n": "a"}, relevance=0.9))
        self.store.push_context("s-1", ContextFrame(type="query", payload={"n": "b"}, relevance=0.2))
        self.store.push_context("s-1", ContextFrame(type="query", payload={"n": "c"}, relevance=0.8))
        self.store.push_context("s-1", ContextFrame(type="query", payload={"n": "d"}, relevance=0.7))

        names = [f.payload["n"] for f in self.store.get_or_create("s-1").context_stack]
        assert names == ["a", "c", "d"]

    def test_relevance_is_bounded(self):
        """Test that frame relevance must stay within [0, 1]."""
        with pytest.raises(ValueError):
            ContextFrame(type="query", relevance=1.5)

    def test_merge_profile_unions_lists(self):
        """Test ordered union for list fields and overwrite for scalars."""
        self.store.merge_profile("s-1", {"preferred_categories": ["celular"], "budget": 500})
        profile = self.store.merge_profile(
            "s-1", {"preferred_categories": ["drone", "Celular"], "budget": 800, "name": None}
        )

        assert profile.preferred_categories == ["celular", "drone"]
        assert profile.budget == 800
        assert profile.name is None

    def test_merge_profile_ignores_unknown_fields(self):
        """Test that unknown keys are ignored."""
        profile = self.store.merge_profile("s-1", {"shoe_size": 42, "city": "Ciudad del Este"})

        assert profile.city == "Ciudad del Este"

    def test_set_focus_and_shown(self):
        """Test focus and shown candidates are replaced wholesale."""
        self.store.set_shown("s-1", [_candidate("a"), _candidate("b")], query="iphone", category="celular")
        self.store.set_focus("s-1", "a")
        self.store.set_shown("s-1", [_candidate("c")], query="drone", category="drone")

        memory = self.store.get_or_create("s-1")
        assert [c.id for c in memory.last_shown_candidates] == ["c"]
        assert memory.last_query == "drone"
        assert memory.last_category == "drone"
        assert memory.current_focus_id == "a"
        assert memory.shown("a") is None

    def test_snapshot_is_detached(self):
        """Test that snapshots cannot mutate stored memory."""
        self.store.set_shown("s-1", [_candidate("a")])
        snapshot = self.store.snapshot("s-1")
        snapshot.last_shown_candidates.clear()

        assert len(self.store.get_or_create("s-1").last_shown_candidates) == 1
        assert self.store.get_or_create("s-1").messages == []

    def test_price_signal_detected(self):
        """Test that price words record a behavior signal."""
        self.store.append_message("s-1", "user", "tem algum mais barato?")
        self.store.append_message("s-1", "user", "qual o preço?")

        signals = {s.pattern: s for s in self.store.get_or_create("s-1").behavior_signals}
        assert signals["price_sensitive"].frequency == 2
        assert signals["price_sensitive"].confidence == pytest.approx(0.8)

    def test_repeated_search_signal(self):
        """Test that repeating the same search is detected."""
        for _ in range(3):
            self.store.append_message("s-1", "user", "iphone 15")

        patterns = [s.pattern for s in self.store.get_or_create("s-1").behavior_signals]
        assert "repeated_search" in patterns

    def test_relevant_contexts_decay(self):
        """Test decay ordering and the relevance floor."""
        old = ContextFrame(
            type="query",
            payload={"n": "old"},
            relevance=1.0,
            timestamp=datetime.now() - timedelta(hours=3),
        )
        self.store.push_context("s-1", old)
        self.store.push_context("s-1", ContextFrame(type="product", payload={"n": "new"}, relevance=0.9))

        contexts = self.store.relevant_contexts("s-1")

        assert [f.payload["n"] for f in contexts] == ["new"]
        # Stored frames keep their original relevance
        assert self.store.get_or_create("s-1").context_stack[0].relevance == 1.0

    def test_expire_inactive(self):
        """Test that idle sessions are removed by the expiry policy."""
        self.store.get_or_create("idle")
        self.store.append_message("active", "user", "oi")
        memory = self.store.get_or_create("idle")
        memory.last_interaction_at = datetime.now() - timedelta(days=2)

        expired = self.store.expire_inactive(timedelta(hours=1))

        assert expired == ["idle"]
        assert self.store.session_ids() == ["active"]


class TestSQLiteSessionStore:
    """Test the persistent store round trip."""

    def test_memory_survives_new_store_instance(self, tmp_path):
        """Test that a second store instance sees the saved session."""
        db_path = tmp_path / "sessions.db"
        store = SQLiteSessionStore(db_path=str(db_path))
        store.append_message("s-1", "user", "quero um drone")
        store.set_shown("s-1", [_candidate("p-2001", "Shopping China")], category="drone")
        store.set_focus("s-1", "p-2001")
        store.merge_profile("s-1", {"preferred_categories": ["drone"]})

        reopened = SQLiteSessionStore(db_path=str(db_path))
        memory = reopened.get_or_create("s-1")

        assert memory.messages[0].content == "quero um drone"
        assert memory.current_focus_id == "p-2001"
        assert memory.shown("p-2001").store == "Shopping China"
        assert memory.user_profile.preferred_categories == ["drone"]

    def test_context_cap_applies(self, tmp_path):
        """Test bounded context stack on the SQLite store."""
        store = SQLiteSessionStore(db_path=str(tmp_path / "s.db"), context_stack_size=2)
        for i in range(4):
            store.push_context("s-1", ContextFrame(type="query", payload={"i": i}))

        assert len(store.get_or_create("s-1").context_stack) == 2
