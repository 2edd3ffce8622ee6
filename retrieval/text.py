"""Text normalization for Brazilian Portuguese shopping queries."""

import re
import unicodedata

# Common chat abbreviations, applied after accent stripping
CHAT_EXPANSIONS = {
    "vc": "voce",
    "vcs": "voces",
    "q": "que",
    "pra": "para",
    "tb": "tambem",
    "pq": "porque",
    "blz": "beleza",
}

# Filler words ignored when matching catalog records
STOPWORDS = {
    "a", "o", "as", "os", "um", "uma", "uns", "umas", "de", "do", "da", "dos", "das",
    "e", "em", "no", "na", "com", "para", "por", "me", "eu", "que", "tem", "ter",
    "quero", "queria", "procuro", "procurando", "busco", "preciso", "comprar",
    "mostra", "mostre", "ver", "algum", "alguma", "voce", "mais", "ai", "aqui",
}

_NON_WORD = re.compile(r"[^\w\s]", re.UNICODE)
_SPACES = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Remove diacritics ("câmera" -> "camera")."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_text(text: str) -> str:
    """
    Normalize free text for matching.

    Lower-cases, strips accents and punctuation, collapses whitespace and
    expands chat abbreviations.

    Args:
        text: Raw user text

    Returns:
        Normalized text (may be empty)
    """
    base = strip_accents((text or "").lower())
    base = _NON_WORD.sub(" ", base).replace("_", " ")
    base = _SPACES.sub(" ", base).strip()
    if not base:
        return ""
    return " ".join(CHAT_EXPANSIONS.get(tok, tok) for tok in base.split(" "))


def tokenize(text: str) -> list[str]:
    """Split normalized text into tokens."""
    normalized = normalize_text(text)
    return normalized.split(" ") if normalized else []


def keywords(text: str) -> list[str]:
    """Tokens with filler words removed."""
    return [tok for tok in tokenize(text) if tok not in STOPWORDS]
