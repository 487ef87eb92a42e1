"""
In-memory repository implementations.

The repositories read and write a shared 'InMemoryTables' instance, which plays
the role of the relational store: message inserts check the conversation foreign
key and conversation deletes cascade to messages. Useful for tests, the
walkthrough script and running the API without a database.

'clock' is injectable so tests can control the server-assigned timestamps.
"""

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from journal_toolkit.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from journal_toolkit.conversation_database.data_models.message import Message, MessageDatabase, Roles
from journal_toolkit.conversation_database.data_models.profile import Profile, ProfileDatabase, ProfileUpdate
from journal_toolkit.conversation_database.errors import NotFoundError
from journal_toolkit.utils.database import generate_uid
from journal_toolkit.utils.time import get_current_timestamp


@dataclass
class InMemoryTables:
    """Rows shared by the in-memory repositories, keyed by id."""

    conversations: dict[str, Conversation] = field(default_factory=dict)
    messages: dict[str, Message] = field(default_factory=dict)
    profiles: dict[str, Profile] = field(default_factory=dict)
    # Sequence numbers break timestamp ties in insertion / touch order.
    conversation_seq: dict[str, int] = field(default_factory=dict)
    message_seq: dict[str, int] = field(default_factory=dict)
    counter: itertools.count = field(default_factory=itertools.count)
    clock: Callable[[], datetime] = get_current_timestamp


class InMemoryConversationDatabase(ConversationDatabase):
    def __init__(self, tables: InMemoryTables | None = None) -> None:
        self.tables = tables or InMemoryTables()

    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        now = self.tables.clock()
        conversation = Conversation(
            id=generate_uid(),
            user_id=user_id,
            title=title,
            create_timestamp=now,
            update_timestamp=now,
        )
        self.tables.conversations[conversation.id] = conversation
        self.tables.conversation_seq[conversation.id] = next(self.tables.counter)
        return conversation

    async def get_conversations_by_user_id(self, user_id: str) -> list[Conversation]:
        owned = [c for c in self.tables.conversations.values() if c.user_id == user_id]
        return sorted(
            owned,
            key=lambda c: (c.update_timestamp, self.tables.conversation_seq[c.id]),
            reverse=True,
        )

    async def get_conversation_by_id(self, conversation_id: str) -> Conversation | None:
        return self.tables.conversations.get(conversation_id)

    async def update_conversation_timestamp(self, conversation_id: str, timestamp: datetime) -> Conversation:
        conversation = self.tables.conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError("conversation", conversation_id)
        updated = conversation.model_copy(update={"update_timestamp": timestamp})
        self.tables.conversations[conversation_id] = updated
        self.tables.conversation_seq[conversation_id] = next(self.tables.counter)
        return updated

    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        conversation = self.tables.conversations.get(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            return False
        del self.tables.conversations[conversation_id]
        self.tables.conversation_seq.pop(conversation_id, None)
        orphaned = [m.id for m in self.tables.messages.values() if m.conversation_id == conversation_id]
        for message_id in orphaned:
            del self.tables.messages[message_id]
            self.tables.message_seq.pop(message_id, None)
        return True


class InMemoryMessageDatabase(MessageDatabase):
    def __init__(self, tables: InMemoryTables | None = None) -> None:
        self.tables = tables or InMemoryTables()

    async def create_message(
        self,
        conversation_id: str,
        content: str,
        role: Roles,
        audio_url: str | None = None,
        emotion_analysis: Any = None,
    ) -> Message:
        if conversation_id not in self.tables.conversations:
            raise NotFoundError("conversation", conversation_id)
        message = Message(
            id=generate_uid(),
            conversation_id=conversation_id,
            content=content,
            role=role,
            timestamp=self.tables.clock(),
            audio_url=audio_url,
            emotion_analysis=emotion_analysis,
        )
        self.tables.messages[message.id] = message
        self.tables.message_seq[message.id] = next(self.tables.counter)
        return message

    async def get_messages_by_conversation_id(self, conversation_id: str) -> list[Message]:
        messages = [m for m in self.tables.messages.values() if m.conversation_id == conversation_id]
        return sorted(messages, key=lambda m: (m.timestamp, self.tables.message_seq[m.id]))


class InMemoryProfileDatabase(ProfileDatabase):
    def __init__(self, tables: InMemoryTables | None = None) -> None:
        self.tables = tables or InMemoryTables()

    async def create_profile(self, user_id: str, email: str | None = None) -> Profile:
        existing = self.tables.profiles.get(user_id)
        if existing is not None:
            return existing
        now = self.tables.clock()
        profile = Profile(user_id=user_id, email=email, create_timestamp=now, update_timestamp=now)
        self.tables.profiles[user_id] = profile
        return profile

    async def get_profile_by_user_id(self, user_id: str) -> Profile | None:
        return self.tables.profiles.get(user_id)

    async def update_profile(self, user_id: str, update: ProfileUpdate, timestamp: datetime) -> Profile:
        profile = self.tables.profiles.get(user_id)
        if profile is None:
            raise NotFoundError("profile", user_id)
        updated = profile.model_copy(update={**update.model_dump(), "update_timestamp": timestamp})
        self.tables.profiles[user_id] = updated
        return updated


def build_in_memory_databases(
    clock: Callable[[], datetime] | None = None,
) -> tuple[InMemoryConversationDatabase, InMemoryMessageDatabase, InMemoryProfileDatabase]:
    """Return the conversation, message and profile repositories sharing one set of tables."""
    tables = InMemoryTables(clock=clock) if clock else InMemoryTables()
    return InMemoryConversationDatabase(tables), InMemoryMessageDatabase(tables), InMemoryProfileDatabase(tables)
