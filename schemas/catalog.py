"""Catalog candidate and manifest schemas."""

from typing import Optional
from pydantic import BaseModel, Field


class Candidate(BaseModel):
    """Raw product-like record returned by a catalog search."""
    id: str = ""
    title: str = ""
    category: str = ""
    store: str = Field("", description="Store name or slug")
    price: Optional[float] = None
    image_url: Optional[str] = None
    link: Optional[str] = None

    def is_valid(self) -> bool:
        """A candidate passes the catalog gate when id, title and store are set."""
        return bool(
            self.id.strip() and self.title.strip() and self.store.strip()
        )

    def store_key(self) -> str:
        """Case-insensitive store identity used for diversity counting."""
        return self.store.strip().lower()


def valid_candidates(candidates: list[Candidate]) -> list[Candidate]:
    """Keep only candidates that pass the catalog gate, preserving order."""
    return [c for c in candidates if c.is_valid()]


class ManifestEntry(BaseModel):
    """Product entry the generation step is allowed to reference."""
    id: str
    title: str
    store: str
    price: Optional[float] = None
    image_url: Optional[str] = None
    link: Optional[str] = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "ManifestEntry":
        return cls(
            id=candidate.id,
            title=candidate.title,
            store=candidate.store,
            price=candidate.price,
            image_url=candidate.image_url,
            link=candidate.link or f"/produto/{candidate.id}",
        )


class GroundedManifest(BaseModel):
    """Ranked, validated candidates for one turn.

    This is the allow-list for the generation step: nothing outside
    ``all`` may be named in a response.
    """
    top3: list[Candidate] = Field(default_factory=list)
    top8: list[Candidate] = Field(default_factory=list)
    all: list[Candidate] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.top8

    def ids(self) -> set[str]:
        """Ids that may be referenced by generated output."""
        return {c.id for c in self.top8}

    def contains(self, candidate_id: str) -> bool:
        return candidate_id in self.ids()

    def get(self, candidate_id: str) -> Optional[Candidate]:
        for candidate in self.top8:
            if candidate.id == candidate_id:
                return candidate
        return None

    def entries(self, limit: int = 8) -> list[ManifestEntry]:
        """Capped manifest entries built from ``top8``."""
        return [ManifestEntry.from_candidate(c) for c in self.top8[:limit]]
