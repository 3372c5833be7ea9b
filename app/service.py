# app/service.py
"""
Session service: one ask cycle per request.

Flow per ask:
1. Load (or create) the user's session.
2. Append the user message.
3. Select the context window from the updated log.
4. Ask the completion orchestrator for a reply.
5. Append the reply, persist the log, return the reply.

If any step fails nothing is persisted for the cycle, including the user
message, and an AskError wrapping the typed cause is raised.

Cycles for the same user run one at a time (in-process lock per user
id); cross-process writers are caught by the store's revision check.
"""

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List, Tuple
import logging

from app import context_window
from app.completion import CompletionOrchestrator
from app.errors import AskError, CompletionError, StorageError
from app.models import Message
from app.sessions import SessionStore

logger = logging.getLogger(__name__)


class SessionService:
    """
    Compose store, selector and orchestrator.

    Parameters
    ----------
    store : SessionStore
        Durable session storage.
    orchestrator : CompletionOrchestrator
        Provider access.
    window_size : int
        Number of recent messages sent with each request.
    """

    def __init__(self, store: SessionStore, orchestrator: CompletionOrchestrator,
                 window_size: int = context_window.DEFAULT_WINDOW_SIZE):
        if window_size < 0:
            raise ValueError(f"window_size must be >= 0, got {window_size}")
        self._store = store
        self._orchestrator = orchestrator
        self._window_size = window_size
        # user id -> (lock, number of callers holding or waiting on it)
        self._user_locks: Dict[str, Tuple[Lock, int]] = {}
        self._locks_guard = Lock()

    def ask(self, user_id: str, prompt: str) -> str:
        """
        Run one ask cycle for a user.

        Parameters
        ----------
        user_id : str
            Trusted user identifier.
        prompt : str
            User message text.

        Returns
        -------
        str
            Assistant reply, already persisted together with the prompt.

        Raises
        ------
        AskError
            Wrapping the StorageError or CompletionError that ended the
            cycle. The stored log is unchanged in that case.
        """
        with self._user_lock(user_id):
            try:
                session = self._store.get_or_create(user_id)
                session.append(Message.user(prompt))

                window = context_window.select(session.messages, self._window_size)
                logger.info("Ask user=%s history=%d window=%d",
                            user_id, len(session.messages), len(window))
                reply = self._orchestrator.complete(window)

                session.append(Message.assistant(reply))
                self._store.save(session)
            except (StorageError, CompletionError) as exc:
                logger.error("Ask failed user=%s: %s: %s", user_id, type(exc).__name__, exc)
                raise AskError(exc) from exc
        return reply

    def history(self, user_id: str) -> List[Message]:
        """Return the stored log for a user; [] for unknown users."""
        return self._store.get_history(user_id)

    @contextmanager
    def _user_lock(self, user_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock, users = self._user_locks.get(user_id, (None, 0))
            if lock is None:
                lock = Lock()
            self._user_locks[user_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                lock, users = self._user_locks[user_id]
                if users == 1:
                    del self._user_locks[user_id]
                else:
                    self._user_locks[user_id] = (lock, users - 1)
