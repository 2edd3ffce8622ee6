"""Session memory for multi-turn conversations."""

from .models import (
    BehaviorSignal,
    ContextFrame,
    ConversationMemory,
    ConversationMessage,
    UserProfile,
)
from .store import SessionMemoryStore, InMemorySessionStore
from .sqlite_store import SQLiteSessionStore
from .context_manager import ConversationContextManager

__all__ = [
    "BehaviorSignal",
    "ContextFrame",
    "ConversationMemory",
    "ConversationMessage",
    "UserProfile",
    "SessionMemoryStore",
    "InMemorySessionStore",
    "SQLiteSessionStore",
    "ConversationContextManager",
]
