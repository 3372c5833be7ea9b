# app/sessions.py
"""
Durable session storage.

Each user owns exactly one document: the chronological list of messages
[{"role": "user"|"assistant", "content": "..."}, ...] stored as JSON in a
SQLite table keyed by user id, together with a revision counter.

The connection is opened once at startup and must be closed on shutdown
with `close()`. Saves are guarded by the revision counter, so a writer
that read a stale copy gets StorageConflict instead of overwriting
someone else's turn.
"""

import json
import sqlite3
from pathlib import Path
from threading import Lock
from typing import List, Optional, Union
import logging

from pydantic import ValidationError

from app.errors import StorageConflict, StorageCorrupt, StorageUnavailable
from app.models import ConversationSession, Message

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    user_id TEXT PRIMARY KEY,
    messages TEXT NOT NULL DEFAULT '[]',
    version INTEGER NOT NULL DEFAULT 0
)
"""


class SessionStore:
    """
    Persist conversation sessions, one document per user id.

    Parameters
    ----------
    path : str or Path
        SQLite database file. Created if missing.

    Functionality
    -------------
    1. Opens a single connection shared across worker threads.
    2. Serializes access to it with a Lock.
    3. Translates sqlite3 failures into StorageUnavailable and
       unreadable documents into StorageCorrupt.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = str(path)
        self._lock = Lock()
        self._conn: Optional[sqlite3.Connection] = None
        try:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
            with self._conn:
                self._conn.execute(_SCHEMA)
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"cannot open session store at {self._path}: {exc}") from exc
        logger.info("Session store opened at %s", self._path)

    def get_or_create(self, user_id: str) -> ConversationSession:
        """
        Retrieve (or create) the session for a user.

        Parameters
        ----------
        user_id : str
            Identifier provided by the client.

        Returns
        -------
        ConversationSession
            A fresh in-memory copy; mutating it does not touch storage
            until `save` is called.

        Functionality
        -------------
        1. Inserts an empty document if the user id is unseen. The
           primary key makes concurrent first access create one row.
        2. Reads the stored document back.
        """
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    cursor = conn.execute(
                        "INSERT OR IGNORE INTO sessions (user_id, messages, version) VALUES (?, '[]', 0)",
                        (user_id,),
                    )
                if cursor.rowcount:
                    logger.info("Created session user=%s", user_id)
                row = conn.execute(
                    "SELECT messages, version FROM sessions WHERE user_id = ?", (user_id,)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StorageUnavailable(str(exc)) from exc
        return ConversationSession(user_id=user_id, messages=_decode(row[0], user_id), version=row[1])

    def save(self, session: ConversationSession) -> None:
        """
        Replace the stored log of `session.user_id` with its current messages.

        Raises StorageConflict if the stored revision moved past
        `session.version`, StorageUnavailable if the backend fails.
        On success `session.version` is advanced to the new revision.
        """
        payload = json.dumps([m.model_dump(mode="json") for m in session.messages], ensure_ascii=False)
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    cursor = conn.execute(
                        "UPDATE sessions SET messages = ?, version = version + 1 "
                        "WHERE user_id = ? AND version = ?",
                        (payload, session.user_id, session.version),
                    )
            except sqlite3.Error as exc:
                raise StorageUnavailable(str(exc)) from exc
        if cursor.rowcount == 0:
            raise StorageConflict(session.user_id, session.version)
        session.version += 1
        logger.debug("Saved session user=%s messages=%d version=%d",
                     session.user_id, len(session.messages), session.version)

    def get_history(self, user_id: str) -> List[Message]:
        """Return the stored log for a user, or [] if there is none. Never creates a session."""
        with self._lock:
            conn = self._connection()
            try:
                row = conn.execute(
                    "SELECT messages FROM sessions WHERE user_id = ?", (user_id,)
                ).fetchone()
            except sqlite3.Error as exc:
                raise StorageUnavailable(str(exc)) from exc
        return _decode(row[0], user_id) if row else []

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Session store closed")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageUnavailable("session store is closed")
        return self._conn


def _decode(raw: str, user_id: str) -> List[Message]:
    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError(f"expected a list, got {type(items).__name__}")
        return [Message.model_validate(item) for item in items]
    except (ValueError, ValidationError) as exc:
        raise StorageCorrupt(f"stored session {user_id!r} is unreadable: {exc}") from exc
