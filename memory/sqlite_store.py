"""SQLite-based session memory store."""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, List

from .models import ConversationMemory
from .store import SessionMemoryStore

logger = logging.getLogger(__name__)


class SQLiteSessionStore(SessionMemoryStore):
    """SQLite-based persistent session store.

    Each session is stored as one JSON document, so a read returns a
    detached record and every accessor writes it back.
    """

    def __init__(
        self,
        db_path: str = "data/sessions.db",
        context_stack_size: int = SessionMemoryStore.DEFAULT_CONTEXT_STACK_SIZE
    ):
        """
        Initialize SQLite session store.

        Args:
            db_path: Path to SQLite database file
            context_stack_size: Maximum number of context frames per session
        """
        super().__init__(context_stack_size)
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                memory TEXT NOT NULL,
                last_interaction_at TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_last_interaction "
            "ON sessions(last_interaction_at)"
        )

        conn.commit()
        conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    def _load(self, session_id: str) -> Optional[ConversationMemory]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(
            "SELECT memory FROM sessions WHERE session_id = ?",
            (session_id,)
        )
        row = cursor.fetchone()
        conn.close()

        if not row:
            return None

        return ConversationMemory.model_validate_json(row["memory"])

    def _save(self, memory: ConversationMemory) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(
            """
            INSERT OR REPLACE INTO sessions
            (session_id, memory, last_interaction_at, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                memory.session_id,
                memory.model_dump_json(),
                memory.last_interaction_at.isoformat(),
                datetime.now().isoformat(),
            )
        )

        conn.commit()
        conn.close()

    def _delete(self, session_id: str) -> None:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))
        conn.commit()
        conn.close()

    def session_ids(self) -> List[str]:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT session_id FROM sessions ORDER BY updated_at DESC")
        rows = cursor.fetchall()
        conn.close()
        return [row["session_id"] for row in rows]
