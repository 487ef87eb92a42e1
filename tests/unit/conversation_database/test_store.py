"""Unit tests for ConversationStore state transitions and failure handling."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from journal_toolkit.conversation_database.data_models.message import Roles
from journal_toolkit.conversation_database.errors import (
    NoActiveConversationError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteFailureError,
)
from journal_toolkit.conversation_database.identity import SessionIdentity
from journal_toolkit.conversation_database.store import ConversationStore


def _assert_sorted_by_update_desc(store: ConversationStore) -> None:
    timestamps = [c.update_timestamp for c in store.conversations]
    assert timestamps == sorted(timestamps, reverse=True)


class TestLoadConversations:
    @pytest.mark.asyncio
    async def test_orders_most_recently_updated_first(self, store, conversation_db, clock) -> None:
        c1 = await conversation_db.create_conversation("user-1", "C1")
        c2 = await conversation_db.create_conversation("user-1", "C2")
        assert c2.update_timestamp > c1.update_timestamp

        loaded = await store.load_conversations()

        assert [c.id for c in loaded] == [c2.id, c1.id]

    @pytest.mark.asyncio
    async def test_only_returns_current_users_conversations(self, store, conversation_db) -> None:
        await conversation_db.create_conversation("someone-else", "Not mine")
        mine = await conversation_db.create_conversation("user-1", "Mine")

        await store.load_conversations()

        assert [c.id for c in store.conversations] == [mine.id]

    @pytest.mark.asyncio
    async def test_requires_identity(self, conversation_db, message_db) -> None:
        store = ConversationStore(conversation_db, message_db, SessionIdentity())

        with pytest.raises(NotAuthenticatedError):
            await store.load_conversations()

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_list(self, store, conversation_db) -> None:
        await store.create_conversation("Kept")
        before = store.conversations
        conversation_db.get_conversations_by_user_id = AsyncMock(side_effect=ConnectionError("network down"))

        with pytest.raises(RemoteFailureError, match="network down"):
            await store.load_conversations()

        assert store.conversations == before
        assert store.is_busy is False


class TestCreateConversation:
    @pytest.mark.asyncio
    async def test_prepends_and_keeps_order(self, store) -> None:
        for title in ["First", "Second", "Third"]:
            created = await store.create_conversation(title)
            assert store.conversations[0] == created
            _assert_sorted_by_update_desc(store)

        assert [c.title for c in store.conversations] == ["Third", "Second", "First"]

    @pytest.mark.asyncio
    async def test_new_conversation_is_empty_with_equal_timestamps(self, store, message_db) -> None:
        conversation = await store.create_conversation("Fresh")

        assert conversation.user_id == "user-1"
        assert conversation.create_timestamp == conversation.update_timestamp
        assert await message_db.get_messages_by_conversation_id(conversation.id) == []

    @pytest.mark.asyncio
    async def test_default_title_uses_date(self, store) -> None:
        conversation = await store.create_conversation()

        assert conversation.title == "Chat 2026-03-01"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["", "   "])
    async def test_rejects_empty_title(self, store, title) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            await store.create_conversation(title)

        assert store.conversations == ()

    @pytest.mark.asyncio
    async def test_requires_identity(self, store, identity) -> None:
        identity.sign_out()

        with pytest.raises(NotAuthenticatedError):
            await store.create_conversation("Nope")

    @pytest.mark.asyncio
    async def test_remote_rejection_leaves_list_unchanged(self, store, conversation_db) -> None:
        conversation_db.create_conversation = AsyncMock(side_effect=RuntimeError("identity invalid"))

        with pytest.raises(RemoteFailureError, match="identity invalid"):
            await store.create_conversation("Broken")

        assert store.conversations == ()


class TestSelectConversation:
    @pytest.mark.asyncio
    async def test_replaces_active_and_messages(self, store) -> None:
        x = await store.create_conversation("X")
        y = await store.create_conversation("Y")
        await store.select_conversation(x.id)
        await store.append_message("in x", Roles.USER)
        await store.select_conversation(y.id)
        await store.append_message("in y", Roles.USER)

        await store.select_conversation(x.id)
        await store.select_conversation(y.id)

        assert store.active_conversation is not None
        assert store.active_conversation.id == y.id
        assert [m.content for m in store.messages] == ["in y"]
        assert all(m.conversation_id == y.id for m in store.messages)

    @pytest.mark.asyncio
    async def test_fetches_conversation_missing_from_local_list(self, store, conversation_db) -> None:
        remote_only = await conversation_db.create_conversation("user-1", "Created elsewhere")

        selected = await store.select_conversation(remote_only.id)

        assert selected.id == remote_only.id
        assert store.conversations == ()

    @pytest.mark.asyncio
    async def test_unknown_id_raises_not_found_and_keeps_selection(self, store) -> None:
        current = await store.create_conversation("Current")
        await store.select_conversation(current.id)
        await store.append_message("keep me", Roles.USER)

        with pytest.raises(NotFoundError):
            await store.select_conversation("does-not-exist")

        assert store.active_conversation is not None
        assert store.active_conversation.id == current.id
        assert [m.content for m in store.messages] == ["keep me"]

    @pytest.mark.asyncio
    async def test_other_users_conversation_is_not_found(self, store, conversation_db) -> None:
        foreign = await conversation_db.create_conversation("someone-else", "Private")

        with pytest.raises(NotFoundError):
            await store.select_conversation(foreign.id)

        assert store.active_conversation is None

    @pytest.mark.asyncio
    async def test_message_read_failure_aborts_whole_selection(self, store, message_db) -> None:
        first = await store.create_conversation("First")
        second = await store.create_conversation("Second")
        await store.select_conversation(first.id)
        message_db.get_messages_by_conversation_id = AsyncMock(side_effect=TimeoutError())

        with pytest.raises(RemoteFailureError, match="TimeoutError"):
            await store.select_conversation(second.id)

        assert store.active_conversation is not None
        assert store.active_conversation.id == first.id


class TestAppendMessage:
    @pytest.mark.asyncio
    async def test_without_selection_raises_and_changes_nothing(self, store) -> None:
        await store.create_conversation("Unselected")
        conversations_before = store.conversations

        with pytest.raises(NoActiveConversationError):
            await store.append_message("hello", Roles.USER)

        assert store.messages == ()
        assert store.conversations == conversations_before

    @pytest.mark.asyncio
    async def test_appends_in_confirmation_order(self, store) -> None:
        conversation = await store.create_conversation("Chat")
        await store.select_conversation(conversation.id)

        await store.append_message("hello", "user")
        await store.append_message("hi there", "assistant", audio_url="https://audio.example/1.mp3")

        assert [(m.content, m.role) for m in store.messages] == [
            ("hello", Roles.USER),
            ("hi there", Roles.ASSISTANT),
        ]
        assert store.messages[1].audio_url == "https://audio.example/1.mp3"
        timestamps = [m.timestamp for m in store.messages]
        assert timestamps == sorted(timestamps)

    @pytest.mark.asyncio
    async def test_touches_conversation_and_reorders_list(self, store) -> None:
        older = await store.create_conversation("Older")
        await store.create_conversation("Newer")
        await store.select_conversation(older.id)

        result = await store.append_message("bump", Roles.USER)

        assert result.fully_committed
        assert result.conversation is not None
        assert result.conversation.update_timestamp > older.update_timestamp
        assert store.conversations[0].id == older.id
        assert store.active_conversation == result.conversation
        _assert_sorted_by_update_desc(store)

    @pytest.mark.asyncio
    async def test_reload_after_append_matches_local_order(self, store) -> None:
        older = await store.create_conversation("Older")
        await store.create_conversation("Newer")
        await store.select_conversation(older.id)
        await store.append_message("bump", Roles.USER)
        local_order = [c.id for c in store.conversations]

        await store.load_conversations()

        assert [c.id for c in store.conversations] == local_order

    @pytest.mark.asyncio
    async def test_insert_failure_changes_nothing(self, store, message_db, conversation_db) -> None:
        conversation = await store.create_conversation("Chat")
        await store.select_conversation(conversation.id)
        message_db.create_message = AsyncMock(side_effect=ConnectionError("insert rejected"))
        conversation_db.update_conversation_timestamp = AsyncMock()

        with pytest.raises(RemoteFailureError, match="insert rejected"):
            await store.append_message("lost", Roles.USER)

        assert store.messages == ()
        conversation_db.update_conversation_timestamp.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timestamp_failure_keeps_message_and_reports(self, store, conversation_db) -> None:
        conversation = await store.create_conversation("Chat")
        await store.select_conversation(conversation.id)
        conversation_db.update_conversation_timestamp = AsyncMock(side_effect=ConnectionError("update lost"))

        result = await store.append_message("kept", Roles.USER)

        assert not result.fully_committed
        assert result.conversation is None
        assert "update lost" in (result.timestamp_error or "")
        assert [m.content for m in store.messages] == ["kept"]
        assert store.conversations[0].update_timestamp == conversation.update_timestamp

    @pytest.mark.asyncio
    async def test_invalid_role_is_rejected(self, store) -> None:
        conversation = await store.create_conversation("Chat")
        await store.select_conversation(conversation.id)

        with pytest.raises(ValueError):
            await store.append_message("hi", "system")

        assert store.messages == ()


class TestDeleteConversation:
    @pytest.mark.asyncio
    async def test_deleting_active_clears_selection(self, store, message_db) -> None:
        conversation = await store.create_conversation("Doomed")
        await store.select_conversation(conversation.id)
        await store.append_message("bye", Roles.USER)

        await store.delete_conversation(conversation.id)

        assert store.active_conversation is None
        assert store.messages == ()
        assert store.conversations == ()
        assert await message_db.get_messages_by_conversation_id(conversation.id) == []

    @pytest.mark.asyncio
    async def test_deleting_other_keeps_selection(self, store) -> None:
        active = await store.create_conversation("Active")
        other = await store.create_conversation("Other")
        await store.select_conversation(active.id)
        await store.append_message("still here", Roles.USER)

        await store.delete_conversation(other.id)

        assert store.active_conversation is not None
        assert store.active_conversation.id == active.id
        assert [m.content for m in store.messages] == ["still here"]
        assert [c.id for c in store.conversations] == [active.id]

    @pytest.mark.asyncio
    async def test_remote_rejection_changes_nothing(self, store, conversation_db) -> None:
        conversation = await store.create_conversation("Survivor")
        await store.select_conversation(conversation.id)
        conversation_db.delete_conversation = AsyncMock(side_effect=PermissionError("denied"))

        with pytest.raises(RemoteFailureError, match="denied"):
            await store.delete_conversation(conversation.id)

        assert store.active_conversation is not None
        assert [c.id for c in store.conversations] == [conversation.id]

    @pytest.mark.asyncio
    async def test_missing_conversation_raises_not_found(self, store) -> None:
        with pytest.raises(NotFoundError):
            await store.delete_conversation("missing")

    @pytest.mark.asyncio
    async def test_other_users_conversation_is_not_found_and_survives(
        self, conversation_db, message_db, clock
    ) -> None:
        bob = ConversationStore(conversation_db, message_db, SessionIdentity("bob"), clock=clock)
        private = await bob.create_conversation("Bob private")
        await bob.select_conversation(private.id)
        await bob.append_message("secret", Roles.USER)
        alice = ConversationStore(conversation_db, message_db, SessionIdentity("alice"), clock=clock)

        with pytest.raises(NotFoundError):
            await alice.delete_conversation(private.id)

        assert await conversation_db.get_conversation_by_id(private.id) is not None
        assert [m.content for m in await message_db.get_messages_by_conversation_id(private.id)] == ["secret"]


@pytest.mark.asyncio
async def test_round_trip_through_fresh_store(store, conversation_db, message_db, identity, clock) -> None:
    """A fresh store over the same backend sees the messages in append order."""
    conversation = await store.create_conversation("Chat A")
    await store.select_conversation(conversation.id)
    await store.append_message("hello", Roles.USER)
    await store.append_message("hi there", Roles.ASSISTANT)

    fresh = ConversationStore(conversation_db, message_db, identity, clock=clock)
    await fresh.select_conversation(conversation.id)

    assert [(m.content, m.role) for m in fresh.messages] == [
        ("hello", Roles.USER),
        ("hi there", Roles.ASSISTANT),
    ]


@pytest.mark.asyncio
async def test_is_busy_while_remote_call_in_flight(store, conversation_db) -> None:
    observed: list[bool] = []
    original = conversation_db.get_conversations_by_user_id

    async def spying_list(user_id: str):
        observed.append(store.is_busy)
        return await original(user_id)

    conversation_db.get_conversations_by_user_id = spying_list

    await store.load_conversations()

    assert observed == [True]
    assert store.is_busy is False
