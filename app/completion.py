# app/completion.py
"""
Completion orchestration against the Anthropic Messages API.

One call per `complete()`: the system preamble plus the context window
go out, the reply text comes back. SDK failures are translated into the
CompletionError taxonomy; nothing is retried here.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging

from anthropic import (
    Anthropic,
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
)

from app.errors import ProviderMalformedResponse, ProviderRejected, ProviderUnavailable
from app.models import Message, Role
from app.prompt import build_system_message

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_MAX_TOKENS = 1024


def build_client(api_key: Optional[str], timeout: float) -> Anthropic:
    """
    Create the provider client used by the orchestrator.

    Retries are disabled so every `complete()` is a single attempt, and
    `timeout` bounds how long that attempt may block.
    """
    return Anthropic(api_key=api_key, timeout=timeout, max_retries=0)


def _format_history_for_llm(history: Sequence[Message]) -> List[Dict[str, Any]]:
    """
    Convert messages to Anthropic message objects.

    Parameters
    ----------
    history : sequence of Message
        Context window, oldest first, without system messages.

    Returns
    -------
    list[dict]
        Messages suitable for `client.messages.create`.
    """
    return [{"role": m.role.value, "content": m.content} for m in history]


def _extract_text_from_blocks(blocks: List[Any]) -> str:
    """
    Concatenate all text content blocks from a Claude response.

    Parameters
    ----------
    blocks : list
        Response.content list from Anthropic.

    Returns
    -------
    str
        Concatenated text, stripped.
    """
    texts = []
    for b in blocks:
        if getattr(b, "type", None) == "text":
            texts.append(b.text)
    return "\n".join(texts).strip()


class CompletionOrchestrator:
    """
    Compose provider requests and map provider failures.

    Parameters
    ----------
    client : Anthropic
        Provider client (or any object exposing `messages.create`).
    model : str
        Fixed model identifier.
    system_prompt : str, optional
        Preamble placed before every context window.
    max_tokens : int
        Upper bound on reply length required by the Messages API.
    """

    def __init__(self, client: Anthropic, model: str = DEFAULT_MODEL,
                 system_prompt: Optional[str] = None, max_tokens: int = DEFAULT_MAX_TOKENS):
        self._client = client
        self._model = model
        self._system_message = build_system_message(system_prompt)
        self._max_tokens = max_tokens

    def build_request(self, context_window: Sequence[Message]) -> List[Message]:
        """Return the outbound message list: system preamble first, then the window in order."""
        return [self._system_message, *context_window]

    def complete(self, context_window: Sequence[Message]) -> str:
        """
        Ask the provider for the next assistant reply.

        Parameters
        ----------
        context_window : sequence of Message
            Recent conversation, ending with the new user message.

        Returns
        -------
        str
            The reply text.

        Functionality
        -------------
        1. Builds the request; system messages go to the `system`
           parameter, the rest to `messages`.
        2. Performs a single call with default sampling.
        3. Maps transport errors to ProviderUnavailable, non-2xx to
           ProviderRejected, and unparseable or empty replies to
           ProviderMalformedResponse.
        """
        request = self.build_request(context_window)
        system = "\n\n".join(m.content for m in request if m.role is Role.SYSTEM)
        messages = _format_history_for_llm([m for m in request if m.role is not Role.SYSTEM])

        logger.debug("Completion request model=%s messages=%d", self._model, len(messages))
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=system,
                messages=messages,
            )
        except APIConnectionError as exc:
            # APITimeoutError is a subclass
            raise ProviderUnavailable(f"provider unreachable: {exc}") from exc
        except APIStatusError as exc:
            raise ProviderRejected(f"provider rejected request: {exc.message}",
                                   status_code=exc.status_code) from exc
        except APIResponseValidationError as exc:
            raise ProviderMalformedResponse(f"unexpected provider response: {exc}") from exc

        blocks = getattr(response, "content", None)
        if not isinstance(blocks, list):
            raise ProviderMalformedResponse("provider response has no content blocks")
        reply = _extract_text_from_blocks(blocks)
        if not reply:
            raise ProviderMalformedResponse("provider response has no reply text")
        return reply
