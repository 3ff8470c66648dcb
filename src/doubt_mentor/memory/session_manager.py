from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from loguru import logger

from doubt_mentor.errors import InvalidInputError
from doubt_mentor.memory.store import MemoryStore
from doubt_mentor.models import ConversationTurn, Role, Session, SessionStatus


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


class SessionManager:
    def __init__(self, store: MemoryStore, *, title_chars: int = 50):
        self._store = store
        self._title_chars = max(1, title_chars)

    def ensure_session(self, user_id: str, session_id: str | None, first_message: str) -> str:
        """Return an appendable session id, creating one when none was supplied."""
        if not session_id:
            return self.create_session(user_id, self.derive_title(first_message))

        if not self.owns(user_id, session_id):
            raise InvalidInputError(f"Unknown session: {session_id}")
        return session_id

    def owns(self, user_id: str, session_id: str) -> bool:
        row = self._store.execute(
            "SELECT user_id FROM sessions WHERE id = ? LIMIT 1",
            (session_id,),
        ).fetchone()
        return row is not None and row["user_id"] == user_id

    def derive_title(self, message: str) -> str:
        return message.strip()[: self._title_chars]

    def create_session(self, user_id: str, title: str) -> str:
        sid = str(uuid4())
        now = utc_now()
        self._store.execute(
            """
            INSERT INTO sessions (id, user_id, title, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (sid, user_id, title, SessionStatus.OPEN.value, now, now),
        )
        logger.info(f"Created session {sid} for user {user_id}")
        return sid

    def append_turn(self, session_id: str, role: Role, content: str) -> tuple[str, int]:
        message_id = str(uuid4())
        now = utc_now()
        with self._store.transaction():
            row = self._store.execute(
                "SELECT COALESCE(MAX(seq), 0) AS max_seq FROM messages WHERE session_id = ?",
                (session_id,),
            ).fetchone()
            next_seq = int(row["max_seq"]) + 1
            self._store.execute(
                """
                INSERT INTO messages (id, session_id, seq, role, content, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (message_id, session_id, next_seq, role.value, content, now),
            )
            self._store.execute(
                "UPDATE sessions SET updated_at = ? WHERE id = ?",
                (now, session_id),
            )
        logger.debug(f"Appended {role.value} turn #{next_seq} to session {session_id}")
        return message_id, next_seq

    def load_turns(self, session_id: str) -> list[ConversationTurn]:
        rows = self._store.execute(
            """
            SELECT role, content
            FROM messages
            WHERE session_id = ?
            ORDER BY seq ASC
            """,
            (session_id,),
        ).fetchall()
        return [ConversationTurn(role=Role(row["role"]), content=row["content"]) for row in rows]

    def get_session(self, session_id: str) -> Session | None:
        row = self._store.execute(
            "SELECT * FROM sessions WHERE id = ? LIMIT 1",
            (session_id,),
        ).fetchone()
        if row is None:
            return None
        return self._to_session(row, tuple(self.load_turns(session_id)))

    def list_sessions(self, user_id: str, *, limit: int = 50) -> list[Session]:
        rows = self._store.execute(
            """
            SELECT id, user_id, title, status, created_at, updated_at
            FROM sessions
            WHERE user_id = ?
            ORDER BY updated_at DESC, created_at DESC
            LIMIT ?
            """,
            (user_id, max(1, limit)),
        ).fetchall()
        return [self._to_session(row) for row in rows]

    def _to_session(self, row, turns: tuple[ConversationTurn, ...] = ()) -> Session:
        return Session(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            status=SessionStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            turns=turns,
        )
