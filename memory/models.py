"""Memory data models."""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from schemas.catalog import Candidate


class ConversationMessage(BaseModel):
    """A single message in a session. Immutable once appended."""
    model_config = ConfigDict(frozen=True)

    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    intent: Optional[str] = None
    sentiment: Optional[str] = None


class ContextFrame(BaseModel):
    """Relevance-scored unit of conversational state."""
    type: str  # "query", "product", "category", ...
    payload: Dict[str, Any] = Field(default_factory=dict)
    relevance: float = Field(1.0, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)


class UserProfile(BaseModel):
    """What the session has learned about the user."""
    name: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    preferred_categories: List[str] = Field(default_factory=list)
    budget: Optional[float] = None
    city: Optional[str] = None


class BehaviorSignal(BaseModel):
    """Observed behavior pattern, read by follow-up consumers."""
    pattern: str  # "repeated_search", "price_sensitive"
    frequency: int = 1
    confidence: float = Field(0.8, ge=0.0, le=1.0)
    last_observed: datetime = Field(default_factory=datetime.now)


class ConversationMemory(BaseModel):
    """Complete conversational state of one session."""
    session_id: str
    messages: List[ConversationMessage] = Field(default_factory=list)
    context_stack: List[ContextFrame] = Field(default_factory=list)
    user_profile: UserProfile = Field(default_factory=UserProfile)
    current_focus_id: Optional[str] = None
    last_shown_candidates: List[Candidate] = Field(default_factory=list)
    last_query: Optional[str] = None
    last_category: Optional[str] = None
    behavior_signals: List[BehaviorSignal] = Field(default_factory=list)
    last_interaction_at: datetime = Field(default_factory=datetime.now)

    def shown(self, candidate_id: Optional[str]) -> Optional[Candidate]:
        """Return the shown candidate with this id, if any."""
        if not candidate_id:
            return None
        for candidate in self.last_shown_candidates:
            if candidate.id == candidate_id:
                return candidate
        return None

    def user_messages(self) -> List[ConversationMessage]:
        return [m for m in self.messages if m.role == "user"]
