"""Deterministic spelling correction against a small catalog vocabulary."""

import logging
from typing import Optional

from rapidfuzz import fuzz

from .text import tokenize

logger = logging.getLogger(__name__)


def char_jaccard(a: str, b: str) -> float:
    """Jaccard similarity between the character sets of two words."""
    set_a, set_b = set(a), set(b)
    if not set_a and not set_b:
        return 1.0
    return len(set_a & set_b) / len(set_a | set_b)


class SpellingCorrector:
    """
    Replaces misspelled tokens with the nearest vocabulary term.

    A token is replaced only when its character-set Jaccard similarity to
    the nearest term reaches the threshold; ties are broken by
    ``rapidfuzz.fuzz.ratio`` so anagrams of different terms resolve the
    same way every time.
    """

    DEFAULT_THRESHOLD = 0.72
    MIN_TOKEN_LENGTH = 3

    def __init__(self, vocabulary: list[str], threshold: float = DEFAULT_THRESHOLD):
        """
        Initialize corrector.

        Args:
            vocabulary: Known, normalized catalog terms
            threshold: Minimum similarity for a replacement
        """
        self.vocabulary = list(dict.fromkeys(vocabulary))
        self._known = set(self.vocabulary)
        self.threshold = threshold

    def nearest(self, token: str) -> tuple[Optional[str], float]:
        """
        Find the nearest vocabulary term.

        Returns:
            (term, similarity); term is None for an empty vocabulary
        """
        best_term = None
        best_key = (-1.0, -1.0)
        for term in self.vocabulary:
            key = (char_jaccard(token, term), fuzz.ratio(token, term))
            if key > best_key:
                best_term, best_key = term, key
        return best_term, max(best_key[0], 0.0)

    def correct_token(self, token: str) -> str:
        """Correct one normalized token, or return it unchanged."""
        if (
            token in self._known
            or len(token) < self.MIN_TOKEN_LENGTH
            or token.isdigit()
        ):
            return token

        term, similarity = self.nearest(token)
        if term is not None and similarity >= self.threshold:
            logger.debug(f"Corrected '{token}' -> '{term}' (similarity={similarity:.2f})")
            return term
        return token

    def correct(self, text: str) -> str:
        """
        Correct every token of a term.

        Args:
            text: Raw or normalized search term

        Returns:
            Normalized, corrected term
        """
        return " ".join(self.correct_token(tok) for tok in tokenize(text))
