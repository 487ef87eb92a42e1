"""
Pytest configuration and shared fixtures.

The in-memory backend and the store share a 'FakeClock' so server-assigned and
client-assigned timestamps are deterministic and strictly increasing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from journal_toolkit.conversation_database.identity import SessionIdentity
from journal_toolkit.conversation_database.in_memory import (
    InMemoryConversationDatabase,
    InMemoryMessageDatabase,
    InMemoryProfileDatabase,
    InMemoryTables,
)
from journal_toolkit.conversation_database.store import ConversationStore

USER_ID = "user-1"


class FakeClock:
    """Returns a new time, one second later, on every call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tables(clock: FakeClock) -> InMemoryTables:
    return InMemoryTables(clock=clock)


@pytest.fixture
def conversation_db(tables: InMemoryTables) -> InMemoryConversationDatabase:
    return InMemoryConversationDatabase(tables)


@pytest.fixture
def message_db(tables: InMemoryTables) -> InMemoryMessageDatabase:
    return InMemoryMessageDatabase(tables)


@pytest.fixture
def profile_db(tables: InMemoryTables) -> InMemoryProfileDatabase:
    return InMemoryProfileDatabase(tables)


@pytest.fixture
def identity() -> SessionIdentity:
    return SessionIdentity(USER_ID)


@pytest.fixture
def store(
    conversation_db: InMemoryConversationDatabase,
    message_db: InMemoryMessageDatabase,
    identity: SessionIdentity,
    clock: FakeClock,
) -> ConversationStore:
    return ConversationStore(conversation_db, message_db, identity, clock=clock)
