"""Behavior signal detection over recent user messages."""

from typing import List, Tuple

from retrieval.text import normalize_text
from .models import ConversationMemory

PRICE_WORDS = ("preco", "caro", "barato", "desconto", "promocao", "quanto custa")

REPEATED_SEARCH_WINDOW = 3


def detect_signals(memory: ConversationMemory) -> List[Tuple[str, float]]:
    """
    Detect behavior patterns triggered by the latest user message.

    Args:
        memory: Session memory (read only)

    Returns:
        List of (pattern, confidence) tuples
    """
    user_texts = [normalize_text(m.content) for m in memory.user_messages()]
    if not user_texts:
        return []

    signals = []

    # Same few terms searched over and over: the user needs guidance
    recent = user_texts[-REPEATED_SEARCH_WINDOW:]
    if len(recent) == REPEATED_SEARCH_WINDOW and len(set(recent)) <= 2:
        signals.append(("repeated_search", 0.8))

    if any(word in user_texts[-1] for word in PRICE_WORDS):
        signals.append(("price_sensitive", 0.7))

    return signals
