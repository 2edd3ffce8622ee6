"""Tests for the pattern table and focus resolver."""

import pytest
from agents.focus_resolver import FocusResolver
from agents.patterns import PatternTable
from memory.models import ConversationMemory
from retrieval.lexicon import CategoryLexicon
from schemas.catalog import Candidate
from schemas.context import PatternCategory, TurnRoute


def _shown(*ids: str, category: str = "celular") -> list[Candidate]:
    return [
        Candidate(id=cid, title=f"iPhone {cid}", category=category, store=f"Loja {i}")
        for i, cid in enumerate(ids)
    ]


class TestPatternTable:
    """Test pattern classification and precedence."""

    def setup_method(self):
        """Set up test fixtures."""
        self.table = PatternTable()

    @pytest.mark.parametrize("utterance", [
        "bom dia",
        "Oi, tudo bem?",
        "quem é você?",
        "obrigado!",
    ])
    def test_personal(self, utterance):
        """Test personal/small-talk utterances."""
        assert self.table.classify(utterance) == [PatternCategory.PERSONAL]

    def test_deictic_and_product_question(self):
        """Test an utterance matching both deictic and evaluative patterns."""
        result = self.table.classify("e esse aí, vale a pena?")

        assert result == [PatternCategory.DEICTIC, PatternCategory.PRODUCT_QUESTION]

    def test_personal_excludes_deictic(self):
        """Test that personal matches suppress deictic and question matches."""
        result = self.table.classify("oi, esse é bom?")

        assert result == [PatternCategory.PERSONAL]

    def test_no_match(self):
        """Test plain product search."""
        assert self.table.classify("iphone 15 128gb") == []

    def test_first_rule(self):
        """Test rule lookup used for small-talk replies."""
        rule = self.table.first_rule("valeu!", PatternCategory.PERSONAL)

        assert rule is not None
        assert rule.name == "thanks"


class TestFocusResolver:
    """Test focus and deixis resolution."""

    def setup_method(self):
        """Set up test fixtures."""
        self.resolver = FocusResolver(CategoryLexicon())
        self.memory = ConversationMemory(
            session_id="s-1",
            last_shown_candidates=_shown("a", "b", "c", "d"),
            current_focus_id="b",
            last_category="celular",
        )

    def test_deictic_uses_focus(self):
        """Test focus shortcut: focus first, then up to 2 other shown entries."""
        resolution = self.resolver.resolve(self.memory, "e esse aí, vale a pena?")

        assert resolution.route == TurnRoute.FOCUS_SHORTCUT
        assert resolution.focus.id == "b"
        assert [c.id for c in resolution.seed] == ["b", "a", "c"]

    def test_small_talk_suppresses_focus(self):
        """Test that a greeting never activates the focus."""
        resolution = self.resolver.resolve(self.memory, "bom dia")

        assert resolution.route == TurnRoute.SMALL_TALK
        assert resolution.focus is None
        assert resolution.seed == []

    def test_personal_with_catalog_term_retrieves(self):
        """Test that a greeting naming a product still searches."""
        resolution = self.resolver.resolve(self.memory, "oi, tem drone?")

        assert resolution.route == TurnRoute.RETRIEVE
        assert resolution.inferred_category == "drone"
        assert resolution.explicit_mention is True

    def test_focus_not_shown_falls_back_to_retrieval(self):
        """Test that a stale focus id is ignored."""
        self.memory.current_focus_id = "zzz"

        resolution = self.resolver.resolve(self.memory, "esse é bom?")

        assert resolution.route == TurnRoute.RETRIEVE
        assert [c.id for c in resolution.carried_seed] == ["a", "b", "c"]

    def test_no_focus_carries_seed(self):
        """Test carry-over of up to 3 prior candidates when no focus is set."""
        self.memory.current_focus_id = None

        resolution = self.resolver.resolve(self.memory, "tem mais barato?")

        assert resolution.route == TurnRoute.RETRIEVE
        assert len(resolution.carried_seed) == 3
        assert resolution.invalidate_focus is False

    def test_same_category_carries_seed(self):
        """Test carry-over when the inferred category matches the last one."""
        resolution = self.resolver.resolve(self.memory, "quero um iphone 15")

        assert resolution.route == TurnRoute.RETRIEVE
        assert resolution.inferred_category == "celular"
        assert len(resolution.carried_seed) == 3

    def test_category_mismatch_drops_seed(self):
        """Test that a new category drops stale candidates and the focus."""
        resolution = self.resolver.resolve(self.memory, "quero um drone")

        assert resolution.route == TurnRoute.RETRIEVE
        assert resolution.carried_seed == []
        assert resolution.invalidate_focus is True

    def test_deictic_with_other_category_retrieves(self):
        """Test that a deictic utterance naming another category is not a shortcut."""
        resolution = self.resolver.resolve(self.memory, "e esse drone?")

        assert resolution.route == TurnRoute.RETRIEVE
        assert resolution.invalidate_focus is True

    def test_memory_is_not_modified(self):
        """Test that resolution leaves memory untouched."""
        before = self.memory.model_dump()

        self.resolver.resolve(self.memory, "e esse aí, vale a pena?")
        self.resolver.resolve(self.memory, "quero um drone")

        assert self.memory.model_dump() == before

    def test_empty_memory(self):
        """Test first turn of a session."""
        resolution = self.resolver.resolve(ConversationMemory(session_id="new"), "esse vale a pena?")

        assert resolution.route == TurnRoute.RETRIEVE
        assert resolution.carried_seed == []
        assert resolution.invalidate_focus is False
