"""
Message data model and storage interface.

Messages form a flat, append-only log within a conversation, ordered by
'timestamp'. 'audio_url' points at a stored recording of the turn and
'emotion_analysis' carries an annotation produced outside the store; both are
optional and passed through untouched.

The 'MessageDatabase' ABC is the pluggable storage backend. Concrete
implementations: 'InMemoryMessageDatabase', 'PostgreSQLMessageDatabase'.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Roles(StrEnum):
    """Who authored a turn: the journaling user or the AI companion."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single turn within a conversation."""

    model_config = ConfigDict(frozen=True)

    id: str
    conversation_id: str
    content: str
    role: Roles
    timestamp: datetime
    audio_url: str | None = None
    emotion_analysis: Any = None


class MessageDatabase(ABC):
    """Abstract repository for 'Message' records."""

    @abstractmethod
    async def create_message(
        self,
        conversation_id: str,
        content: str,
        role: Roles,
        audio_url: str | None = None,
        emotion_analysis: Any = None,
    ) -> Message:
        """Insert a message. Raise 'NotFoundError' if the conversation does not exist."""
        pass

    @abstractmethod
    async def get_messages_by_conversation_id(self, conversation_id: str) -> list[Message]:
        """Return the conversation's messages in ascending 'timestamp' order."""
        pass
