"""Read-only conversation context for consumers and prompts."""

import logging
from typing import List

from .store import SessionMemoryStore
from .models import BehaviorSignal, ContextFrame
from llm.base_client import Message

logger = logging.getLogger(__name__)


class ConversationContextManager:
    """
    Narrow read interface over session memory.

    Used by the response gate for prompt history and by outside consumers
    (tone analysis, follow-up scheduling). Nothing here mutates memory.
    """

    # Configuration
    MAX_CONTEXT_MESSAGES = 6  # Maximum messages to include in context

    def __init__(self, store: SessionMemoryStore):
        """
        Initialize context manager.

        Args:
            store: Session memory store
        """
        self.store = store

    def get_context_messages(self, session_id: str, limit: int = MAX_CONTEXT_MESSAGES) -> List[Message]:
        """
        Get recent messages formatted for an LLM context window.

        Args:
            session_id: Session ID
            limit: Maximum number of messages

        Returns:
            List of Message objects, oldest first
        """
        memory = self.store.snapshot(session_id)
        return [
            Message(role=m.role, content=m.content)
            for m in memory.messages[-limit:]
        ]

    def get_conversation_context_string(self, session_id: str, limit: int = MAX_CONTEXT_MESSAGES) -> str:
        """
        Get recent conversation as a single string.

        Useful for including in prompts.

        Args:
            session_id: Session ID
            limit: Maximum number of messages

        Returns:
            Formatted context string (empty when there is no history)
        """
        messages = self.get_context_messages(session_id, limit)

        if not messages:
            return ""

        parts = ["=== Conversa anterior ==="]
        for msg in messages:
            parts.append(f"{msg.role.upper()}: {msg.content}")
        parts.append("=== Fim da conversa anterior ===")

        return "\n".join(parts)

    def get_relevant_contexts(self, session_id: str, limit: int = 5) -> List[ContextFrame]:
        """Context frames ranked by decayed relevance."""
        return self.store.relevant_contexts(session_id, limit)

    def get_behavior_signals(self, session_id: str) -> List[BehaviorSignal]:
        """Behavior signals recorded for the session."""
        return self.store.snapshot(session_id).behavior_signals
