"""Session-keyed conversation memory store."""

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from schemas.catalog import Candidate
from .behavior import detect_signals
from .models import (
    BehaviorSignal,
    ContextFrame,
    ConversationMemory,
    ConversationMessage,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Profile fields merged as ordered unions instead of overwritten
_LIST_PROFILE_FIELDS = ("interests", "preferred_categories")


class SessionMemoryStore(ABC):
    """
    Owns every session's ConversationMemory.

    Records are only mutated through the accessors below. Subclasses provide
    persistence through ``_load``/``_save``. Callers serialize turns per
    session, so accessors take no locks.
    """

    DEFAULT_CONTEXT_STACK_SIZE = 10
    RELEVANCE_FLOOR = 0.1

    def __init__(self, context_stack_size: int = DEFAULT_CONTEXT_STACK_SIZE):
        if context_stack_size < 1:
            raise ValueError("context_stack_size must be at least 1")
        self.context_stack_size = context_stack_size

    @abstractmethod
    def _load(self, session_id: str) -> Optional[ConversationMemory]:
        """Load a record, or None if the session is unknown."""
        pass

    @abstractmethod
    def _save(self, memory: ConversationMemory) -> None:
        """Persist a record."""
        pass

    @abstractmethod
    def _delete(self, session_id: str) -> None:
        """Remove a record."""
        pass

    @abstractmethod
    def session_ids(self) -> List[str]:
        """Ids of all stored sessions."""
        pass

    def get_or_create(self, session_id: str) -> ConversationMemory:
        """
        Get a session's memory, initializing an empty record when unknown.

        Args:
            session_id: Session ID

        Returns:
            ConversationMemory for the session
        """
        memory = self._load(session_id)
        if memory is None:
            memory = ConversationMemory(session_id=session_id)
            self._save(memory)
            logger.info(f"Initialized memory for session {session_id}")
        return memory

    def snapshot(self, session_id: str) -> ConversationMemory:
        """Deep copy of a session's memory for read-only consumers."""
        return self.get_or_create(session_id).model_copy(deep=True)

    def append_message(
        self,
        session_id: str,
        role: str,
        content: str,
        meta: Optional[Dict[str, Any]] = None
    ) -> ConversationMessage:
        """
        Append a message to the session history.

        Args:
            session_id: Session ID
            role: "user" or "assistant"
            content: Message text
            meta: Optional ``intent`` and ``sentiment``

        Returns:
            The appended message
        """
        if role not in ("user", "assistant"):
            raise ValueError(f"Unsupported message role: {role}")

        meta = meta or {}
        memory = self.get_or_create(session_id)
        message = ConversationMessage(
            role=role,
            content=content,
            intent=meta.get("intent"),
            sentiment=meta.get("sentiment"),
        )
        memory.messages.append(message)
        memory.last_interaction_at = message.timestamp

        if role == "user":
            for pattern, confidence in detect_signals(memory):
                self._upsert_signal(memory, pattern, confidence)

        self._save(memory)
        return message

    def push_context(self, session_id: str, frame: ContextFrame) -> None:
        """
        Push a context frame, evicting when the stack exceeds its cap.

        The evicted frame is the lowest-relevance one; among equal relevance
        the oldest goes first.
        """
        memory = self.get_or_create(session_id)
        memory.context_stack.append(frame)

        while len(memory.context_stack) > self.context_stack_size:
            victim = min(
                range(len(memory.context_stack)),
                key=lambda i: (
                    memory.context_stack[i].relevance,
                    memory.context_stack[i].timestamp,
                    i,
                )
            )
            evicted = memory.context_stack.pop(victim)
            logger.debug(
                f"Evicted context frame {evicted.type} "
                f"(relevance={evicted.relevance:.2f}) from session {session_id}"
            )

        self._save(memory)

    def merge_profile(self, session_id: str, partial: Dict[str, Any]) -> UserProfile:
        """
        Merge partial profile data into the session's user profile.

        List fields are merged as ordered unions; scalar fields overwrite
        when the new value is not None.
        """
        memory = self.get_or_create(session_id)
        data = memory.user_profile.model_dump()

        for key, value in partial.items():
            if key not in data:
                logger.warning(f"Ignoring unknown profile field: {key}")
                continue
            if key in _LIST_PROFILE_FIELDS:
                data[key] = _ordered_union(data[key], value or [])
            elif value is not None:
                data[key] = value

        memory.user_profile = UserProfile.model_validate(data)
        self._save(memory)
        return memory.user_profile

    def set_focus(self, session_id: str, candidate_id: Optional[str]) -> None:
        """Replace (or clear) the focus entity."""
        memory = self.get_or_create(session_id)
        memory.current_focus_id = candidate_id or None
        self._save(memory)

    def set_shown(
        self,
        session_id: str,
        candidates: List[Candidate],
        query: Optional[str] = None,
        category: Optional[str] = None
    ) -> None:
        """Replace the last shown candidates wholesale."""
        memory = self.get_or_create(session_id)
        memory.last_shown_candidates = [c.model_copy() for c in candidates]
        if query is not None:
            memory.last_query = query
        memory.last_category = category
        self._save(memory)

    def record_signal(self, session_id: str, pattern: str, confidence: float = 0.8) -> None:
        """Record an externally observed behavior signal."""
        memory = self.get_or_create(session_id)
        self._upsert_signal(memory, pattern, confidence)
        self._save(memory)

    def relevant_contexts(self, session_id: str, limit: int = 5) -> List[ContextFrame]:
        """
        Context frames sorted by decayed relevance, most relevant first.

        Decay combines age (30 minute scale) and stack position; frames that
        decay under the floor are omitted. The stored frames are not modified.
        """
        memory = self.get_or_create(session_id)
        now = datetime.now()
        scored = []

        # Position 0 is the newest frame
        for index, frame in enumerate(reversed(memory.context_stack)):
            age_minutes = max((now - frame.timestamp).total_seconds(), 0.0) / 60
            decay = math.exp(-age_minutes / 30) * math.exp(-index * 0.2)
            relevance = min(frame.relevance, decay)
            if relevance > self.RELEVANCE_FLOOR:
                scored.append(frame.model_copy(update={"relevance": relevance}))

        scored.sort(key=lambda f: f.relevance, reverse=True)
        return scored[:limit]

    def expire_inactive(self, max_age: timedelta) -> List[str]:
        """
        Remove sessions idle for longer than ``max_age``.

        Expiry is never triggered by the turn pipeline; an external policy
        calls this.
        """
        cutoff = datetime.now() - max_age
        expired = []
        for session_id in self.session_ids():
            memory = self._load(session_id)
            if memory and memory.last_interaction_at < cutoff:
                self._delete(session_id)
                expired.append(session_id)
        if expired:
            logger.info(f"Expired {len(expired)} inactive sessions")
        return expired

    def _upsert_signal(self, memory: ConversationMemory, pattern: str, confidence: float) -> None:
        now = datetime.now()
        for signal in memory.behavior_signals:
            if signal.pattern == pattern:
                signal.frequency += 1
                signal.confidence = min(1.0, signal.confidence + 0.1)
                signal.last_observed = now
                return
        memory.behavior_signals.append(BehaviorSignal(
            pattern=pattern,
            confidence=confidence,
            last_observed=now
        ))


def _ordered_union(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    merged = []
    seen = set()
    for value in list(existing) + list(new):
        key = value.strip().lower()
        if key and key not in seen:
            seen.add(key)
            merged.append(value.strip())
    return merged


class InMemorySessionStore(SessionMemoryStore):
    """Process-memory store; one instance per engine, injectable in tests."""

    def __init__(self, context_stack_size: int = SessionMemoryStore.DEFAULT_CONTEXT_STACK_SIZE):
        super().__init__(context_stack_size)
        self._sessions: Dict[str, ConversationMemory] = {}

    def _load(self, session_id: str) -> Optional[ConversationMemory]:
        return self._sessions.get(session_id)

    def _save(self, memory: ConversationMemory) -> None:
        self._sessions[memory.session_id] = memory

    def _delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())
