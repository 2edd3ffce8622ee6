"""Category lexicon and correction vocabulary loaded from YAML."""

import yaml
from pathlib import Path
from typing import Optional

from .text import normalize_text

DATA_DIR = Path(__file__).parent.parent / "data"


def load_vocabulary(path: Optional[str] = None) -> list[str]:
    """Load the spelling-correction vocabulary."""
    if path is None:
        path = DATA_DIR / "vocabulary.yaml"
    with open(path, 'r', encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    terms = data.get("terms", []) if isinstance(data, dict) else data
    return [normalize_text(t) for t in terms if normalize_text(t)]


class CategoryLexicon:
    """Maps words and short phrases in an utterance to a canonical category."""

    def __init__(self, categories: Optional[dict[str, list[str]]] = None, path: Optional[str] = None):
        """
        Initialize lexicon.

        Args:
            categories: Mapping of canonical category to synonyms
            path: Path to categories.yaml (used when categories is None)
        """
        if categories is None:
            categories = self._load(path)

        # phrase -> canonical, longest phrases first so "caixa de som" beats "som"
        self._phrases: list[tuple[str, str]] = []
        for canonical, synonyms in categories.items():
            for phrase in [canonical] + list(synonyms or []):
                normalized = normalize_text(phrase)
                if normalized:
                    self._phrases.append((normalized, canonical))
        self._phrases.sort(key=lambda x: len(x[0]), reverse=True)

    def _load(self, path: Optional[str]) -> dict:
        if path is None:
            path = DATA_DIR / "categories.yaml"
        with open(path, 'r', encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def infer(self, text: str) -> Optional[str]:
        """
        Infer the category an utterance talks about.

        Args:
            text: Raw utterance

        Returns:
            Canonical category, or None when no catalog word is present
        """
        padded = f" {normalize_text(text)} "
        for phrase, canonical in self._phrases:
            if f" {phrase} " in padded:
                return canonical
        return None

    def categories(self) -> list[str]:
        return sorted({canonical for _, canonical in self._phrases})
