# app/prompt.py
"""
System preamble sent ahead of every context window.

The preamble is configurable (see `Settings.system_prompt`); this module
holds the default and the helper turning it into a message.
"""

from typing import Optional

from app.models import Message

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


def build_system_message(preamble: Optional[str] = None) -> Message:
    """
    Build the system message identifying the assistant's role.

    Parameters
    ----------
    preamble : str, optional
        Custom preamble text. Falls back to DEFAULT_SYSTEM_PROMPT when
        empty or None.

    Returns
    -------
    Message
        A message with role="system".
    """
    return Message.system((preamble or "").strip() or DEFAULT_SYSTEM_PROMPT)
