"""
Conversation store.

'ConversationStore' is the single source of truth, for one signed-in session, of
which conversations exist, which one is active, and what the active conversation's
messages are. It coordinates a 'ConversationDatabase' and a 'MessageDatabase' and
only mutates its local state after the corresponding remote call succeeded, so
consumers never observe a half-applied operation.

The one accepted exception is 'append_message': the message insert and the
conversation timestamp update are two separate remote calls. When the second one
fails the message stays appended locally and the failure is reported in the
returned 'AppendResult' instead of being raised.

Consumers read 'conversations', 'active_conversation', 'messages' and 'is_busy',
and call the five async operations. Operations are expected to be awaited one at
a time by a single caller; 'is_busy' is advisory only.
"""

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel

from journal_toolkit.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from journal_toolkit.conversation_database.data_models.message import Message, MessageDatabase, Roles
from journal_toolkit.conversation_database.errors import (
    JournalError,
    NoActiveConversationError,
    NotAuthenticatedError,
    NotFoundError,
    remote_call,
)
from journal_toolkit.conversation_database.identity import IdentityProvider
from journal_toolkit.utils.time import get_current_timestamp


def default_conversation_title(now: datetime) -> str:
    return f"Chat {now:%Y-%m-%d}"


class AppendResult(BaseModel):
    """
    Outcome of the two-phase 'append_message'.

    'message' is always the persisted message. 'conversation' is the conversation
    with its new 'update_timestamp' when the second phase succeeded; otherwise it
    is None and 'timestamp_error' carries the reason.
    """

    message: Message
    conversation: Conversation | None = None
    timestamp_error: str | None = None

    @property
    def fully_committed(self) -> bool:
        return self.timestamp_error is None


class ConversationStore:
    def __init__(
        self,
        conversation_db: ConversationDatabase,
        message_db: MessageDatabase,
        identity: IdentityProvider,
        clock: Callable[[], datetime] = get_current_timestamp,
    ) -> None:
        self.conversation_db = conversation_db
        self.message_db = message_db
        self.identity = identity
        self.clock = clock
        self._conversations: list[Conversation] = []
        self._active_conversation: Conversation | None = None
        self._messages: list[Message] = []
        self._in_flight = 0

    @property
    def conversations(self) -> tuple[Conversation, ...]:
        return tuple(self._conversations)

    @property
    def active_conversation(self) -> Conversation | None:
        return self._active_conversation

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def is_busy(self) -> bool:
        return self._in_flight > 0

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    def _require_user_id(self) -> str:
        user_id = self.identity.current_user_id()
        if not user_id:
            raise NotAuthenticatedError()
        return user_id

    async def load_conversations(self) -> tuple[Conversation, ...]:
        user_id = self._require_user_id()
        with self._busy():
            conversations = await remote_call(
                "get_conversations_by_user_id",
                self.conversation_db.get_conversations_by_user_id(user_id),
            )
        self._conversations = list(conversations)
        logger.debug(f"Loaded {len(self._conversations)} conversations for user {user_id}")
        return self.conversations

    async def create_conversation(self, title: str | None = None) -> Conversation:
        user_id = self._require_user_id()
        if title is None:
            title = default_conversation_title(self.clock())
        if not title.strip():
            raise ValueError("Conversation title must not be empty")

        with self._busy():
            conversation = await remote_call(
                "create_conversation",
                self.conversation_db.create_conversation(user_id, title),
            )
        self._conversations = [conversation, *(c for c in self._conversations if c.id != conversation.id)]
        logger.info(f"Created conversation {conversation.id} ({conversation.title!r})")
        return conversation

    async def select_conversation(self, conversation_id: str) -> Conversation:
        user_id = self._require_user_id()
        with self._busy():
            conversation, messages = await asyncio.gather(
                remote_call(
                    "get_conversation_by_id",
                    self.conversation_db.get_conversation_by_id(conversation_id),
                ),
                remote_call(
                    "get_messages_by_conversation_id",
                    self.message_db.get_messages_by_conversation_id(conversation_id),
                ),
            )
        # Conversations of other users are reported as missing.
        if conversation is None or conversation.user_id != user_id:
            raise NotFoundError("conversation", conversation_id)

        self._active_conversation = conversation
        self._messages = list(messages)
        logger.debug(f"Selected conversation {conversation_id} with {len(self._messages)} messages")
        return conversation

    async def append_message(
        self,
        content: str,
        role: Roles | str,
        audio_url: str | None = None,
        emotion_analysis: Any = None,
    ) -> AppendResult:
        self._require_user_id()
        active = self._active_conversation
        if active is None:
            raise NoActiveConversationError()
        role = Roles(role)

        with self._busy():
            message = await remote_call(
                "create_message",
                self.message_db.create_message(active.id, content, role, audio_url, emotion_analysis),
            )
            # The selection may have moved while the insert was in flight.
            if self._active_conversation is not None and self._active_conversation.id == active.id:
                self._messages = [*self._messages, message]

            try:
                updated = await remote_call(
                    "update_conversation_timestamp",
                    self.conversation_db.update_conversation_timestamp(active.id, self.clock()),
                )
            except JournalError as exc:
                logger.warning(f"Message {message.id} saved but conversation {active.id} timestamp not updated: {exc}")
                return AppendResult(message=message, timestamp_error=str(exc))

        if self._active_conversation is not None and self._active_conversation.id == updated.id:
            self._active_conversation = updated
        self._conversations = [updated, *(c for c in self._conversations if c.id != updated.id)]
        return AppendResult(message=message, conversation=updated)

    async def delete_conversation(self, conversation_id: str) -> None:
        user_id = self._require_user_id()
        with self._busy():
            # Scoped to the owner: conversations of other users are reported as missing.
            deleted = await remote_call(
                "delete_conversation",
                self.conversation_db.delete_conversation(conversation_id, user_id),
            )
        if not deleted:
            raise NotFoundError("conversation", conversation_id)

        self._conversations = [c for c in self._conversations if c.id != conversation_id]
        if self._active_conversation is not None and self._active_conversation.id == conversation_id:
            self._active_conversation = None
            self._messages = []
        logger.info(f"Deleted conversation {conversation_id}")
