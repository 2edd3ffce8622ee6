"""Retrieval layer: catalog providers, spelling correction and fallback tiers."""

from .catalog_provider import CatalogProvider, SuggestionProvider, InMemoryCatalogProvider
from .catalog_api_provider import CatalogAPIProvider
from .grounding import CatalogGroundingRetriever, RetrievalTier
from .lexicon import CategoryLexicon, load_vocabulary
from .spelling import SpellingCorrector

__all__ = [
    "CatalogProvider",
    "SuggestionProvider",
    "InMemoryCatalogProvider",
    "CatalogAPIProvider",
    "CatalogGroundingRetriever",
    "RetrievalTier",
    "CategoryLexicon",
    "load_vocabulary",
    "SpellingCorrector",
]
