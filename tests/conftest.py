"""
Shared pytest fixtures.

Provides:
- A SessionStore on a temporary SQLite file
- A fake provider client exposing `messages.create`
- A SessionService wired with both
"""

from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from app.completion import CompletionOrchestrator
from app.service import SessionService
from app.sessions import SessionStore


class FakeMessages:
    """Records every `create` call and answers from a script."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.replies: List[Any] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.replies.pop(0) if self.replies else "ok"
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return SimpleNamespace(content=[SimpleNamespace(type="text", text=outcome)])
        return outcome


class FakeClient:
    def __init__(self):
        self.messages = FakeMessages()

    def reply_with(self, *outcomes):
        self.messages.replies.extend(outcomes)


@pytest.fixture
def store(tmp_path):
    s = SessionStore(tmp_path / "sessions.db")
    yield s
    s.close()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def orchestrator(fake_client):
    return CompletionOrchestrator(fake_client, model="test-model", system_prompt="You are a test assistant.")


@pytest.fixture
def service(store, orchestrator):
    return SessionService(store, orchestrator, window_size=5)
