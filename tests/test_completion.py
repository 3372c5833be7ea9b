from types import SimpleNamespace

import anthropic
import httpx
import pytest

from app.completion import CompletionOrchestrator, build_client
from app.errors import ProviderMalformedResponse, ProviderRejected, ProviderUnavailable
from app.models import Message, Role
from app.prompt import DEFAULT_SYSTEM_PROMPT

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(status, cls=anthropic.APIStatusError):
    return cls("rejected", response=httpx.Response(status, request=_REQUEST), body=None)


def test_build_request_prepends_system_message(orchestrator):
    window = [Message.user("a"), Message.assistant("b"), Message.user("c")]
    request = orchestrator.build_request(window)
    assert request[0] == Message.system("You are a test assistant.")
    assert request[1:] == window


def test_default_preamble_used_when_not_configured(fake_client):
    orch = CompletionOrchestrator(fake_client)
    assert orch.build_request([])[0].content == DEFAULT_SYSTEM_PROMPT


def test_complete_sends_system_and_window(orchestrator, fake_client):
    fake_client.reply_with("hi there")
    reply = orchestrator.complete([Message.user("hello")])

    assert reply == "hi there"
    call = fake_client.messages.calls[0]
    assert call["model"] == "test-model"
    assert call["system"] == "You are a test assistant."
    assert call["messages"] == [{"role": "user", "content": "hello"}]
    assert "temperature" not in call


def test_complete_joins_text_blocks(orchestrator, fake_client):
    fake_client.reply_with(SimpleNamespace(content=[
        SimpleNamespace(type="text", text="first"),
        SimpleNamespace(type="tool_use", name="x"),
        SimpleNamespace(type="text", text="second"),
    ]))
    assert orchestrator.complete([Message.user("q")]) == "first\nsecond"


def test_connection_error_maps_to_unavailable(orchestrator, fake_client):
    fake_client.reply_with(anthropic.APIConnectionError(request=_REQUEST))
    with pytest.raises(ProviderUnavailable):
        orchestrator.complete([Message.user("q")])


def test_timeout_maps_to_unavailable(orchestrator, fake_client):
    fake_client.reply_with(anthropic.APITimeoutError(request=_REQUEST))
    with pytest.raises(ProviderUnavailable):
        orchestrator.complete([Message.user("q")])


@pytest.mark.parametrize("status,cls", [
    (401, anthropic.AuthenticationError),
    (400, anthropic.BadRequestError),
    (429, anthropic.RateLimitError),
    (529, anthropic.APIStatusError),
])
def test_status_error_maps_to_rejected(orchestrator, fake_client, status, cls):
    fake_client.reply_with(_status_error(status, cls))
    with pytest.raises(ProviderRejected) as excinfo:
        orchestrator.complete([Message.user("q")])
    assert excinfo.value.status_code == status


def test_validation_error_maps_to_malformed(orchestrator, fake_client):
    fake_client.reply_with(anthropic.APIResponseValidationError(
        response=httpx.Response(200, request=_REQUEST), body=None))
    with pytest.raises(ProviderMalformedResponse):
        orchestrator.complete([Message.user("q")])


@pytest.mark.parametrize("response", [
    SimpleNamespace(content=[]),
    SimpleNamespace(content=None),
    SimpleNamespace(),
    SimpleNamespace(content=[SimpleNamespace(type="text", text="   ")]),
])
def test_missing_reply_maps_to_malformed(orchestrator, fake_client, response):
    fake_client.reply_with(response)
    with pytest.raises(ProviderMalformedResponse):
        orchestrator.complete([Message.user("q")])


def test_system_messages_in_window_go_to_system_parameter(orchestrator, fake_client):
    orchestrator.complete([Message.system("extra rule"), Message.user("q")])
    call = fake_client.messages.calls[0]
    assert call["system"] == "You are a test assistant.\n\nextra rule"
    assert all(m["role"] != Role.SYSTEM.value for m in call["messages"])


def test_build_client_makes_single_bounded_attempt():
    client = build_client("test-key", 5.0)
    try:
        assert client.max_retries == 0
        assert client.timeout == 5.0
    finally:
        client.close()
