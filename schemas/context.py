"""Conversational context and resolution schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from .catalog import Candidate


class PatternCategory(str, Enum):
    """Named utterance pattern categories, in precedence order."""
    PERSONAL = "personal"
    DEICTIC = "deictic"
    PRODUCT_QUESTION = "product_question"


class TurnRoute(str, Enum):
    """How a turn is handled after classification."""
    SMALL_TALK = "small_talk"
    FOCUS_SHORTCUT = "focus_shortcut"
    RETRIEVE = "retrieve"


class Resolution(BaseModel):
    """Resolver decision for one utterance."""
    route: TurnRoute
    matched: list[PatternCategory] = Field(default_factory=list)
    inferred_category: Optional[str] = None
    focus: Optional[Candidate] = Field(
        None, description="Focused entity when the shortcut applies"
    )
    seed: list[Candidate] = Field(
        default_factory=list,
        description="Manifest seed for a focus shortcut (focus first)"
    )
    carried_seed: list[Candidate] = Field(
        default_factory=list,
        description="Prior candidates carried into the retrieval ranker"
    )
    invalidate_focus: bool = False
    explicit_mention: bool = False
