"""Diversity-constrained ranking of grounded candidates."""

import logging
from collections import Counter
from typing import Optional

from schemas.catalog import Candidate, GroundedManifest, valid_candidates

logger = logging.getLogger(__name__)


class DiversityRanker:
    """
    Turns valid candidates into a bounded, store-balanced manifest.

    With two or more distinct stores each store gets at most
    ``MULTI_STORE_CAP`` slots in the top 8; a single store may fill all of
    them. When the capped walk leaves free slots and candidates remain, the
    remainder backfills in relevance order regardless of store.
    """

    TOP_N = 8
    HEADLINE_N = 3
    MULTI_STORE_CAP = 2

    def merge(
        self,
        fresh: list[Candidate],
        carried: Optional[list[Candidate]] = None
    ) -> list[Candidate]:
        """
        Merge fresh retrieval results with carried-over candidates.

        Fresh results come first; carried entries follow; duplicate ids keep
        the first (fresh) copy.
        Callers pass candidates that already passed the validity gate, so an
        invalid fresh record never hides a valid carried one.
        """
        merged = []
        seen = set()
        for candidate in list(fresh) + list(carried or []):
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            merged.append(candidate)
        return merged

    def per_store_cap(self, candidates: list[Candidate]) -> int:
        stores = {c.store_key() for c in candidates}
        return self.TOP_N if len(stores) == 1 else self.MULTI_STORE_CAP

    def rank(
        self,
        candidates: list[Candidate],
        carried: Optional[list[Candidate]] = None
    ) -> GroundedManifest:
        """
        Rank candidates into a manifest.

        Args:
            candidates: Candidates in relevance order
            carried: Optional seed from the previous turn

        Returns:
            GroundedManifest with top3, top8 and the full valid set
        """
        pool = self.merge(valid_candidates(candidates), valid_candidates(carried or []))
        if not pool:
            return GroundedManifest()

        cap = self.per_store_cap(pool)
        counts: Counter = Counter()
        admitted: list[Candidate] = []
        remainder: list[Candidate] = []

        for candidate in pool:
            if len(admitted) < self.TOP_N and counts[candidate.store_key()] < cap:
                admitted.append(candidate)
                counts[candidate.store_key()] += 1
            else:
                remainder.append(candidate)

        if len(admitted) < self.TOP_N and remainder:
            backfill = remainder[:self.TOP_N - len(admitted)]
            logger.debug(f"Backfilling {len(backfill)} candidates past the store cap")
            admitted.extend(backfill)

        logger.info(
            f"Ranked {len(pool)} candidates from {len({c.store_key() for c in pool})} stores "
            f"(cap={cap}) into top {len(admitted)}"
        )

        return GroundedManifest(
            top3=admitted[:self.HEADLINE_N],
            top8=admitted,
            all=pool,
        )
