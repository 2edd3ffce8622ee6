"""Catalog and suggestion provider interfaces with a local implementation."""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from rapidfuzz import fuzz, process

from schemas.catalog import Candidate
from .text import keywords, normalize_text, tokenize

logger = logging.getLogger(__name__)


class CatalogProvider(ABC):
    """Catalog search capability: given a term, return product-like records."""

    @abstractmethod
    def search(self, term: str) -> list[Candidate]:
        """Search the catalog. Records are returned unvalidated."""
        pass


class SuggestionProvider(ABC):
    """Suggestion capability: ranked alternate terms for reformulation."""

    @abstractmethod
    def suggest(self, term: str) -> list[str]:
        """Return alternate search terms, best first."""
        pass


def _first(item: dict, *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


def _word_match(keyword: str, word: str) -> bool:
    # "drones" still matches "drone"
    return word.startswith(keyword) or (keyword.endswith("s") and word == keyword[:-1])


def parse_candidate(item: dict) -> Candidate:
    """
    Map a raw catalog record to a Candidate.

    Handles the field-name variants used by the product and suggestion
    endpoints. Missing fields become empty strings so that the catalog gate,
    not the parser, decides validity.

    Args:
        item: Raw record (dict)

    Returns:
        Candidate (possibly invalid)
    """
    store = item.get("store")
    if isinstance(store, dict):
        store = _first(store, "name", "slug", "id")
    if store in (None, ""):
        store = _first(item, "storeName", "store_name", "storeSlug", "store_slug")

    price = item.get("price")
    if isinstance(price, dict):
        price = _first(price, "USD", "usd", "value")
    if price in (None, ""):
        price = _first(item, "priceUSD", "price_usd")
    try:
        price = float(price) if price is not None else None
    except (TypeError, ValueError):
        price = None

    return Candidate(
        id=str(_first(item, "id", "productId", "product_id") or ""),
        title=str(_first(item, "title", "name") or ""),
        category=str(_first(item, "category") or ""),
        store=str(store or ""),
        price=price,
        image_url=_first(item, "imageUrl", "image_url", "image"),
        link=_first(item, "link", "url"),
    )


class InMemoryCatalogProvider(CatalogProvider, SuggestionProvider):
    """Local catalog with keyword scoring, used by the CLI and tests."""

    def __init__(self, products: Optional[list[dict]] = None, json_path: Optional[str] = None):
        """
        Initialize with product records or a JSON file.

        Args:
            products: Raw product records
            json_path: Path to a JSON array of product records
        """
        if products is None:
            products = self._load_json(json_path) if json_path else []
        self._catalog = [parse_candidate(p) for p in products]
        self._vocabulary = sorted({
            tok
            for c in self._catalog
            for tok in tokenize(f"{c.title} {c.category}")
            if len(tok) > 2 and not tok.isdigit()
        })

    def _load_json(self, path: str) -> list[dict]:
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("products", [])
        logger.info(f"Loaded {len(data)} products from {path}")
        return data

    def search(self, term: str) -> list[Candidate]:
        """
        Search catalog by keyword overlap.

        A record matches when at least one keyword starts a word of its title
        or category; results are ordered by the share of matched keywords,
        then price ascending.
        """
        terms = [k for k in keywords(term) if len(k) > 1]
        if not terms:
            return []

        results = []
        for item in self._catalog:
            title = normalize_text(item.title)
            words = tokenize(f"{title} {item.category}")
            hits = sum(1 for k in terms if any(_word_match(k, w) for w in words))
            if not hits:
                continue
            score = hits / len(terms) + (0.3 if title.startswith(terms[0]) else 0.0)
            results.append((score, item))

        results.sort(key=lambda x: (-x[0], x[1].price if x[1].price is not None else float("inf")))
        return [item.model_copy() for _, item in results]

    def suggest(self, term: str) -> list[str]:
        """Suggest catalog words close to the term's tokens."""
        suggestions = []
        for token in keywords(term):
            matches = process.extract(
                token,
                self._vocabulary,
                scorer=fuzz.ratio,
                limit=3,
                score_cutoff=60
            )
            for word, _, _ in matches:
                if word not in suggestions:
                    suggestions.append(word)
        return suggestions

    def get_by_id(self, candidate_id: str) -> Optional[Candidate]:
        """Get a specific product by id."""
        for item in self._catalog:
            if item.id == candidate_id:
                return item.model_copy()
        return None
