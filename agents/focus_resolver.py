"""Focus & deixis resolver for multi-turn product conversations."""

import logging
from typing import Optional

from memory.models import ConversationMemory
from retrieval.lexicon import CategoryLexicon
from schemas.catalog import Candidate
from schemas.context import PatternCategory, Resolution, TurnRoute
from .patterns import PatternTable

logger = logging.getLogger(__name__)


class FocusResolver:
    """
    Decides whether an utterance refers to a shown product or needs retrieval.

    Precedence: personal/small-talk matches suppress focus and deixis
    handling; deictic references or evaluative questions use the focus
    entity when it is still among the shown candidates.
    """

    SHORTCUT_EXTRA = 2  # shown entries added after the focus entity
    CARRY_LIMIT = 3

    def __init__(
        self,
        lexicon: CategoryLexicon,
        patterns: Optional[PatternTable] = None
    ):
        """
        Initialize resolver.

        Args:
            lexicon: Category lexicon for category inference
            patterns: Pattern table (default table when omitted)
        """
        self.lexicon = lexicon
        self.patterns = patterns or PatternTable()

    def classify(self, utterance: str) -> list[PatternCategory]:
        """Matched pattern categories after precedence and exclusions."""
        return self.patterns.classify(utterance)

    def resolve(self, memory: ConversationMemory, utterance: str) -> Resolution:
        """
        Resolve an utterance against the session's memory.

        Args:
            memory: Session memory (not modified)
            utterance: Raw user utterance

        Returns:
            Resolution describing the route and any seed candidates
        """
        matched = self.classify(utterance)
        inferred = self.lexicon.infer(utterance)
        explicit = inferred is not None

        if PatternCategory.PERSONAL in matched and not explicit:
            logger.debug(f"Personal utterance, focus resolution suppressed: {utterance!r}")
            return Resolution(
                route=TurnRoute.SMALL_TALK,
                matched=matched,
            )

        refers_back = (
            PatternCategory.DEICTIC in matched
            or PatternCategory.PRODUCT_QUESTION in matched
        )
        focus = memory.shown(memory.current_focus_id)

        if refers_back and focus is not None and self._same_category(inferred, focus, memory):
            seed = [focus] + [
                c for c in memory.last_shown_candidates if c.id != focus.id
            ][:self.SHORTCUT_EXTRA]
            logger.info(f"Focus shortcut on {focus.id} ({len(seed)} seed candidates)")
            return Resolution(
                route=TurnRoute.FOCUS_SHORTCUT,
                matched=matched,
                inferred_category=inferred,
                focus=focus.model_copy(),
                seed=[c.model_copy() for c in seed],
            )

        resolution = Resolution(
            route=TurnRoute.RETRIEVE,
            matched=matched,
            inferred_category=inferred,
            explicit_mention=explicit,
        )

        if memory.last_shown_candidates:
            if inferred is None or inferred == memory.last_category:
                resolution.carried_seed = [
                    c.model_copy() for c in memory.last_shown_candidates[:self.CARRY_LIMIT]
                ]
            else:
                logger.info(
                    f"Category changed ({memory.last_category} -> {inferred}), "
                    "dropping prior candidates"
                )
                resolution.invalidate_focus = memory.current_focus_id is not None

        return resolution

    def _same_category(
        self,
        inferred: Optional[str],
        focus: Candidate,
        memory: ConversationMemory
    ) -> bool:
        """An utterance naming another category cannot refer to the focus."""
        if inferred is None:
            return True
        known = {memory.last_category, self.lexicon.infer(focus.category), self.lexicon.infer(focus.title)}
        return inferred in known
