# app/context_window.py
"""
Context window selection.

Only the most recent messages are sent to the provider. Recency is the
sole relevance criterion; the window bounds the token cost of each call.
"""

from typing import List, Sequence

from app.models import Message

DEFAULT_WINDOW_SIZE = 5


def select(full_log: Sequence[Message], window_size: int = DEFAULT_WINDOW_SIZE) -> List[Message]:
    """
    Return the last `window_size` messages of a log in original order.

    Parameters
    ----------
    full_log : sequence of Message
        Complete session log, oldest first.
    window_size : int
        Maximum number of messages to keep (>= 0).

    Returns
    -------
    list[Message]
        A new list; shorter than `window_size` when the log is.

    Functionality
    -------------
    1. Rejects negative sizes with ValueError.
    2. Returns an empty list for a zero window (a `[-0:]` slice would
       return the whole log).
    """
    if window_size < 0:
        raise ValueError(f"window_size must be >= 0, got {window_size}")
    if window_size == 0:
        return []
    return list(full_log[-window_size:])
