# app/models.py
"""
Conversation data model.

A session is the ordered message log of one user:
[{"role": "user"|"assistant"|"system", "content": "..."}, ...]
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    A single chat message. Immutable once created.

    Attributes
    ----------
    role : Role
        Author of the message.
    content : str
        Plain text content.
    """
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.USER, content=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=text)

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=Role.SYSTEM, content=text)


class ConversationSession(BaseModel):
    """
    Transient copy of one user's stored conversation.

    Attributes
    ----------
    user_id : str
        Opaque identifier, unique per session.
    messages : list[Message]
        Append-only log in creation order.
    version : int
        Stored revision this copy was read at. The store rejects a save
        whose version no longer matches.
    """
    user_id: str
    messages: List[Message] = Field(default_factory=list)
    version: int = 0

    def append(self, message: Message) -> None:
        self.messages.append(message)
