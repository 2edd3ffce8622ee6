"""Retrieval outcome schemas."""

from typing import Optional
from pydantic import BaseModel, Field

from .catalog import Candidate


class TierAttempt(BaseModel):
    """One tier execution inside the fallback chain."""
    tier: str
    term: str
    raw_count: int = 0
    valid_count: int = 0
    error: Optional[str] = None


class RetrievalOutcome(BaseModel):
    """Result of folding the retrieval tiers."""
    query: str
    tier: Optional[str] = Field(None, description="Name of the winning tier")
    term: Optional[str] = Field(None, description="Normalized term the winning tier started from")
    candidates: list[Candidate] = Field(default_factory=list)
    attempts: list[TierAttempt] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.candidates)
