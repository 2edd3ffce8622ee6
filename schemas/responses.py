"""Generation and turn response schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from .catalog import ManifestEntry
from .context import TurnRoute


class GenerationItem(BaseModel):
    """A product the generative layer chose to cite."""
    id: str
    reason: str = ""


class GenerationOutput(BaseModel):
    """Required shape of the generative layer's reply."""
    items: list[GenerationItem] = Field(default_factory=list)
    message: str


class GateResult(BaseModel):
    """Validated result of the response gate."""
    items: list[GenerationItem] = Field(default_factory=list)
    message: str
    products: list[ManifestEntry] = Field(
        default_factory=list,
        description="Manifest entries for the surviving item ids"
    )
    refine: bool = False
    generated: bool = Field(False, description="Whether the generator was called")
    dropped_ids: list[str] = Field(default_factory=list)
    malformed: bool = False


class TurnState(str, Enum):
    """States of the per-turn state machine."""
    RECEIVE = "RECEIVE"
    CLASSIFY = "CLASSIFY"
    FOCUS_SHORTCUT = "FOCUS_SHORTCUT"
    RETRIEVE = "RETRIEVE"
    RANK = "RANK"
    BUILD_MANIFEST = "BUILD_MANIFEST"
    GENERATE = "GENERATE"
    VALIDATE = "VALIDATE"
    RESPOND = "RESPOND"
    RESPOND_REFINE = "RESPOND_REFINE"


class TurnResult(BaseModel):
    """Response returned to the caller for one turn."""
    session_id: str
    route: TurnRoute
    message: str
    items: list[GenerationItem] = Field(default_factory=list)
    products: list[ManifestEntry] = Field(default_factory=list)
    refine: bool = False
    focus_id: Optional[str] = None
    tier: Optional[str] = None
    states: list[TurnState] = Field(default_factory=list)

    @property
    def terminal_state(self) -> TurnState:
        return self.states[-1]
