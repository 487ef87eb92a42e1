"""
Conversation data model and storage interface.

The 'ConversationDatabase' ABC is the pluggable storage backend for conversation
records. Concrete implementations ('InMemoryConversationDatabase',
'PostgreSQLConversationDatabase') are interchangeable at construction time,
keeping 'ConversationStore' and the API layer free of storage-specific code.

Identifiers and both timestamps are assigned by the storage backend, which is why
'create_conversation' takes the owner and title rather than a full record.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Conversation(BaseModel):
    """A single journaling conversation owned by a user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    create_timestamp: datetime
    update_timestamp: datetime


class ConversationDatabase(ABC):
    """Abstract repository for 'Conversation' records."""

    @abstractmethod
    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        pass

    @abstractmethod
    async def get_conversations_by_user_id(self, user_id: str) -> list[Conversation]:
        """Return the user's conversations, most recently updated first."""
        pass

    @abstractmethod
    async def get_conversation_by_id(self, conversation_id: str) -> Conversation | None:
        pass

    @abstractmethod
    async def update_conversation_timestamp(self, conversation_id: str, timestamp: datetime) -> Conversation:
        """Set 'update_timestamp'. Raise 'NotFoundError' if the conversation does not exist."""
        pass

    @abstractmethod
    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        """
        Delete the conversation and all of its messages if it belongs to 'user_id'.
        Return False if nothing was deleted.
        """
        pass
