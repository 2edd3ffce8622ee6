"""Tests for the read-only context manager and small-talk replies."""

import random

from agents.small_talk import SmallTalkResponder
from memory.context_manager import ConversationContextManager
from memory.models import ContextFrame
from memory.store import InMemorySessionStore


class TestConversationContextManager:
    """Test read access to session context."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = InMemorySessionStore()
        self.manager = ConversationContextManager(self.store)

    def test_empty_session(self):
        """Test context of a new session."""
        assert self.manager.get_context_messages("new") == []
        assert self.manager.get_conversation_context_string("new") == ""

    def test_recent_messages_limited(self):
        """Test that only the last messages are returned, oldest first."""
        for i in range(10):
            self.store.append_message("s-1", "user" if i % 2 == 0 else "assistant", f"msg {i}")

        messages = self.manager.get_context_messages("s-1", limit=4)

        assert [m.content for m in messages] == ["msg 6", "msg 7", "msg 8", "msg 9"]
        assert messages[0].role == "user"

    def test_context_string(self):
        """Test prompt formatting."""
        self.store.append_message("s-1", "user", "quero um drone")
        self.store.append_message("s-1", "assistant", "Separei estas opções")

        context = self.manager.get_conversation_context_string("s-1")

        assert context.startswith("=== Conversa anterior ===")
        assert "USER: quero um drone" in context
        assert "ASSISTANT: Separei estas opções" in context

    def test_relevant_contexts(self):
        """Test ranked context frames."""
        self.store.push_context("s-1", ContextFrame(type="query", payload={"query": "drone"}, relevance=0.6))
        self.store.push_context("s-1", ContextFrame(type="product", payload={"id": "p-2001"}, relevance=1.0))

        frames = self.manager.get_relevant_contexts("s-1")

        assert frames[0].type == "product"

    def test_reads_do_not_mutate(self):
        """Test that consumers cannot change stored memory through results."""
        self.store.append_message("s-1", "user", "perfume barato")

        signals = self.manager.get_behavior_signals("s-1")
        signals.clear()

        assert self.manager.get_behavior_signals("s-1")[0].pattern == "price_sensitive"


class TestSmallTalkResponder:
    """Test non-product replies."""

    def setup_method(self):
        """Set up test fixtures."""
        self.responder = SmallTalkResponder(rng=random.Random(0))

    def test_greeting(self):
        """Test greeting replies."""
        assert self.responder.reply("bom dia") in SmallTalkResponder.GREETINGS

    def test_greeting_with_name(self):
        """Test that a known name is used."""
        reply = self.responder.reply("oi", name="Ana")

        assert "Ana" in reply

    def test_introduction(self):
        """Test that an introduction is answered with the extracted name."""
        assert self.responder.reply("me chamo Ana", name="Ana").startswith("Prazer, Ana!")
        assert self.responder.reply("me chamo Ana") in SmallTalkResponder.GREETINGS

    def test_identity(self):
        """Test identity questions."""
        assert self.responder.reply("quem é você?") == SmallTalkResponder.REPLIES["identity"]

    def test_thanks(self):
        """Test thanks."""
        assert self.responder.reply("valeu") == SmallTalkResponder.REPLIES["thanks"]

    def test_help_fallback(self):
        """Test utterances with no personal pattern."""
        assert self.responder.reply("hmm") == SmallTalkResponder.HELP
