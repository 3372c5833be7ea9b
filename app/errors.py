# app/errors.py
"""
Typed failures raised by the store, the completion orchestrator and the
session service.

The HTTP layer collapses all of them into a generic 500 response; the
types exist so callers and tests can tell the failure kinds apart.
"""

from typing import Optional


class StorageError(Exception):
    """Base class for session store failures."""


class StorageUnavailable(StorageError):
    """The durable backend could not be reached or is closed."""


class StorageCorrupt(StorageError):
    """A stored document is not a valid message log."""


class StorageConflict(StorageError):
    """A concurrent writer changed the session since it was read."""

    def __init__(self, user_id: str, expected_version: int):
        self.user_id = user_id
        self.expected_version = expected_version
        super().__init__(
            f"session {user_id!r} changed since version {expected_version}"
        )


class CompletionError(Exception):
    """Base class for completion provider failures."""


class ProviderUnavailable(CompletionError):
    """Network or transport failure, including timeouts."""


class ProviderRejected(CompletionError):
    """The provider answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ProviderMalformedResponse(CompletionError):
    """The provider response did not carry a reply text."""


class AskError(Exception):
    """
    Failure of one ask cycle.

    Parameters
    ----------
    cause : Exception
        The StorageError or CompletionError that ended the cycle.
    """

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")
