"""Catalog grounding retrieval with ordered fallback tiers."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Optional, TypeVar

from schemas.catalog import Candidate, valid_candidates
from schemas.retrieval import RetrievalOutcome, TierAttempt
from .catalog_provider import CatalogProvider, SuggestionProvider
from .spelling import SpellingCorrector
from .text import normalize_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExternalCallTimeout(Exception):
    """An external capability did not answer within the timeout."""


class RetrievalTier:
    """One named strategy in the fallback chain."""

    def __init__(self, name: str, strategy: Callable[[str], list[Candidate]]):
        """
        Args:
            name: Tier name reported in the retrieval outcome
            strategy: ``(term) -> candidates``; may raise on transport errors
        """
        self.name = name
        self.strategy = strategy

    def __repr__(self) -> str:
        return f"RetrievalTier({self.name!r})"


class CatalogGroundingRetriever:
    """
    Retrieves valid catalog candidates through ordered fallback tiers.

    Tiers run strictly in sequence; the first tier producing at least one
    valid candidate wins and later tiers are never called. A timeout or
    transport failure inside a tier counts as zero candidates for that tier.
    Each tier shares one ``timeout_s`` budget across its external calls, and
    every call runs on its own worker thread so a hung call never delays
    calls made for other turns.

    Default chain:
    1. direct: search the normalized term
    2. reformulated: join the top suggestions and search again
    3. corrected: spell-correct each token and search again
    """

    def __init__(
        self,
        catalog: CatalogProvider,
        suggestions: Optional[SuggestionProvider] = None,
        corrector: Optional[SpellingCorrector] = None,
        timeout_s: float = 8.0,
        suggestion_terms: int = 3,
        tiers: Optional[list[RetrievalTier]] = None
    ):
        """
        Initialize retriever.

        Args:
            catalog: Catalog search capability
            suggestions: Suggestion capability (tier 2 is skipped without it)
            corrector: Spelling corrector (tier 3 is skipped without it)
            timeout_s: Time budget of one tier, shared by its external calls
            suggestion_terms: Number of suggestions joined in tier 2
            tiers: Custom tier chain replacing the default one
        """
        self.catalog = catalog
        self.suggestions = suggestions
        self.corrector = corrector
        self.timeout_s = timeout_s
        self.suggestion_terms = suggestion_terms
        self.tiers = tiers if tiers is not None else self._default_tiers()

    def _default_tiers(self) -> list[RetrievalTier]:
        tiers = [RetrievalTier("direct", self._direct)]
        if self.suggestions is not None:
            tiers.append(RetrievalTier("reformulated", self._reformulated))
        if self.corrector is not None:
            tiers.append(RetrievalTier("corrected", self._corrected))
        return tiers

    def _call(self, fn: Callable[..., T], *args, deadline: Optional[float] = None) -> T:
        """
        Run an external call on a dedicated worker until the deadline.

        Args:
            fn: External capability call
            deadline: ``time.monotonic()`` value ending the tier's budget;
                defaults to a full ``timeout_s`` from now

        Raises:
            ExternalCallTimeout: when the call does not answer in time. The
                worker is abandoned, not joined.
        """
        name = getattr(fn, "__name__", "call")
        if deadline is None:
            deadline = time.monotonic() + self.timeout_s
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ExternalCallTimeout(f"{name} skipped, tier budget of {self.timeout_s}s spent")

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="retrieval")
        future = executor.submit(fn, *args)
        try:
            return future.result(timeout=remaining)
        except FutureTimeout:
            raise ExternalCallTimeout(f"{name} timed out after {self.timeout_s}s")
        finally:
            executor.shutdown(wait=False)

    def _search(self, term: str, deadline: Optional[float] = None) -> list[Candidate]:
        if not term:
            return []
        return self._call(self.catalog.search, term, deadline=deadline) or []

    def _direct(self, term: str) -> list[Candidate]:
        return self._search(term)

    def _reformulated(self, term: str) -> list[Candidate]:
        deadline = time.monotonic() + self.timeout_s
        suggested = self._call(self.suggestions.suggest, term, deadline=deadline) or []
        picked = [s.strip() for s in suggested if s and s.strip()][:self.suggestion_terms]
        if not picked:
            return []
        reformulated = " ".join(picked)
        logger.info(f"Reformulated '{term}' -> '{reformulated}'")
        return self._search(reformulated, deadline=deadline)

    def _corrected(self, term: str) -> list[Candidate]:
        corrected = self.corrector.correct(term)
        if corrected == term:
            logger.debug(f"No correction for '{term}', skipping tier")
            return []
        logger.info(f"Corrected '{term}' -> '{corrected}'")
        return self._search(corrected)

    def retrieve(self, query: str) -> RetrievalOutcome:
        """
        Run the fallback chain for a query.

        Args:
            query: Raw user utterance or search term

        Returns:
            RetrievalOutcome with the winning tier's valid candidates, or an
            empty outcome when every tier came back empty
        """
        term = normalize_text(query)
        outcome = RetrievalOutcome(query=query)

        if not term:
            return outcome

        for tier in self.tiers:
            attempt = TierAttempt(tier=tier.name, term=term)
            try:
                raw = tier.strategy(term) or []
            except Exception as e:
                # Transport errors and timeouts only cost this tier
                attempt.error = str(e) or e.__class__.__name__
                logger.warning(f"Retrieval tier '{tier.name}' failed: {attempt.error}")
                raw = []

            valid = valid_candidates(raw)
            attempt.raw_count = len(raw)
            attempt.valid_count = len(valid)
            outcome.attempts.append(attempt)

            if valid:
                if len(valid) < len(raw):
                    logger.info(
                        f"Catalog gate dropped {len(raw) - len(valid)} invalid "
                        f"candidates in tier '{tier.name}'"
                    )
                outcome.tier = tier.name
                outcome.term = term
                outcome.candidates = valid
                logger.info(f"Tier '{tier.name}' found {len(valid)} candidates for '{term}'")
                return outcome

        logger.info(f"No tier produced candidates for '{term}'")
        return outcome
