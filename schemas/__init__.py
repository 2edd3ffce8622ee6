"""Pydantic schemas for the grounded shopping assistant."""

from .catalog import Candidate, GroundedManifest, ManifestEntry, valid_candidates
from .context import PatternCategory, Resolution, TurnRoute
from .retrieval import RetrievalOutcome, TierAttempt
from .responses import (
    GateResult,
    GenerationItem,
    GenerationOutput,
    TurnResult,
    TurnState,
)

__all__ = [
    "Candidate",
    "GroundedManifest",
    "ManifestEntry",
    "valid_candidates",
    "PatternCategory",
    "Resolution",
    "TurnRoute",
    "RetrievalOutcome",
    "TierAttempt",
    "GateResult",
    "GenerationItem",
    "GenerationOutput",
    "TurnResult",
    "TurnState",
]
