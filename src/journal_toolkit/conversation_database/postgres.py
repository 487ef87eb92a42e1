"""
PostgreSQL repository implementations backed by asyncpg.

'PostgreSQLDatabase' owns the connection pool and the schema; the
repositories share it. The schema enforces the store's invariants server-side:

- 'journal_messages.conversation_id' is a foreign key with ON DELETE CASCADE, so
  deleting a conversation removes its messages in the same statement.
- an AFTER INSERT trigger on 'journal_messages' bumps the parent conversation's
  'updated_at', so the append and the timestamp update are atomic on the server
  even when the client-side timestamp update later fails.
- 'touch_seq' and 'insert_seq' break timestamp ties in insert / touch order,
  the same order the in-memory repositories use.

Driver, transport and row-validation errors are translated into
'RemoteFailureError'; a foreign key violation on message insert becomes
'NotFoundError'.
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import asyncpg
from loguru import logger
from pydantic import ValidationError

from journal_toolkit.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from journal_toolkit.conversation_database.data_models.message import Message, MessageDatabase, Roles
from journal_toolkit.conversation_database.data_models.profile import Profile, ProfileDatabase, ProfileUpdate
from journal_toolkit.conversation_database.errors import NotFoundError, RemoteFailureError

_CREATE_TOUCH_SEQUENCE = "CREATE SEQUENCE IF NOT EXISTS journal_conversation_touch_seq;"

_CREATE_CONVERSATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS journal_conversations (
    id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
    touch_seq BIGINT NOT NULL DEFAULT nextval('journal_conversation_touch_seq')
);
"""

_CREATE_CONVERSATIONS_OWNER_INDEX = """
CREATE INDEX IF NOT EXISTS journal_conversations_user_updated_idx
ON journal_conversations (user_id, updated_at DESC, touch_seq DESC);
"""

_CREATE_MESSAGES_TABLE = """
CREATE TABLE IF NOT EXISTS journal_messages (
    id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    conversation_id TEXT NOT NULL REFERENCES journal_conversations (id) ON DELETE CASCADE,
    content TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    "timestamp" TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
    audio_url TEXT,
    emotion_analysis JSONB,
    insert_seq BIGSERIAL
);
"""

_CREATE_MESSAGES_CONVERSATION_INDEX = """
CREATE INDEX IF NOT EXISTS journal_messages_conversation_ts_idx
ON journal_messages (conversation_id, "timestamp", insert_seq);
"""

_CREATE_TOUCH_FUNCTION = """
CREATE OR REPLACE FUNCTION journal_touch_conversation() RETURNS trigger AS $$
BEGIN
    UPDATE journal_conversations
    SET updated_at = NEW."timestamp", touch_seq = nextval('journal_conversation_touch_seq')
    WHERE id = NEW.conversation_id;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

_CREATE_TOUCH_TRIGGER = """
DROP TRIGGER IF EXISTS journal_messages_touch_conversation ON journal_messages;
CREATE TRIGGER journal_messages_touch_conversation
AFTER INSERT ON journal_messages
FOR EACH ROW EXECUTE FUNCTION journal_touch_conversation();
"""

_CREATE_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS journal_profiles (
    user_id TEXT PRIMARY KEY,
    email TEXT,
    full_name TEXT,
    diagnosis_age INTEGER CHECK (diagnosis_age >= 0),
    diagnosis_type TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

_SCHEMA = (
    _CREATE_TOUCH_SEQUENCE,
    _CREATE_CONVERSATIONS_TABLE,
    _CREATE_CONVERSATIONS_OWNER_INDEX,
    _CREATE_MESSAGES_TABLE,
    _CREATE_MESSAGES_CONVERSATION_INDEX,
    _CREATE_TOUCH_FUNCTION,
    _CREATE_TOUCH_TRIGGER,
    _CREATE_PROFILES_TABLE,
)

_CONVERSATION_COLUMNS = "id, user_id, title, created_at, updated_at"
_MESSAGE_COLUMNS = 'id, conversation_id, content, role, "timestamp", audio_url, emotion_analysis'
_PROFILE_COLUMNS = "user_id, email, full_name, diagnosis_age, diagnosis_type, created_at, updated_at"


@asynccontextmanager
async def _remote_call(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError, ValidationError) as exc:
        raise RemoteFailureError(operation, str(exc)) from exc


class PostgreSQLDatabase:
    """Connection pool and schema shared by the PostgreSQL repositories."""

    def __init__(self, database_url: str, min_size: int = 1, max_size: int = 5) -> None:
        self._database_url = database_url
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    async def initialize(self) -> None:
        if self._pool is None:
            dsn = self._normalize_postgres_url(self._database_url)
            async with _remote_call("connect"):
                self._pool = await asyncpg.create_pool(dsn=dsn, min_size=self._min_size, max_size=self._max_size)
        async with _remote_call("create_schema"):
            for statement in _SCHEMA:
                await self._pool.execute(statement)
        logger.info("PostgreSQL journal schema ready")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("PostgreSQLDatabase not initialized")
        return self._pool

    @staticmethod
    def _normalize_postgres_url(url: str) -> str:
        if url.startswith("postgresql+asyncpg://"):
            return "postgresql://" + url[len("postgresql+asyncpg://") :]
        return url


def _decode_json_field(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None
    return value


def _row_to_conversation(row: asyncpg.Record) -> Conversation:
    return Conversation(
        id=str(row["id"]),
        user_id=row["user_id"],
        title=row["title"],
        create_timestamp=row["created_at"],
        update_timestamp=row["updated_at"],
    )


def _row_to_message(row: asyncpg.Record) -> Message:
    return Message(
        id=str(row["id"]),
        conversation_id=str(row["conversation_id"]),
        content=row["content"],
        role=row["role"],
        timestamp=row["timestamp"],
        audio_url=row["audio_url"],
        emotion_analysis=_decode_json_field(row["emotion_analysis"]),
    )


def _row_to_profile(row: asyncpg.Record) -> Profile:
    return Profile(
        user_id=row["user_id"],
        email=row["email"],
        full_name=row["full_name"],
        diagnosis_age=row["diagnosis_age"],
        diagnosis_type=row["diagnosis_type"],
        create_timestamp=row["created_at"],
        update_timestamp=row["updated_at"],
    )


class PostgreSQLConversationDatabase(ConversationDatabase):
    def __init__(self, database: PostgreSQLDatabase) -> None:
        self.database = database

    async def create_conversation(self, user_id: str, title: str) -> Conversation:
        async with _remote_call("create_conversation"):
            row = await self.database.pool.fetchrow(
                f"""
                INSERT INTO journal_conversations (user_id, title)
                VALUES ($1, $2)
                RETURNING {_CONVERSATION_COLUMNS}
                """,
                user_id,
                title,
            )
            if row is None:
                raise RemoteFailureError("create_conversation", "insert returned no row")
            return _row_to_conversation(row)

    async def get_conversations_by_user_id(self, user_id: str) -> list[Conversation]:
        async with _remote_call("get_conversations_by_user_id"):
            rows = await self.database.pool.fetch(
                f"""
                SELECT {_CONVERSATION_COLUMNS}
                FROM journal_conversations
                WHERE user_id = $1
                ORDER BY updated_at DESC, touch_seq DESC
                """,
                user_id,
            )
            return [_row_to_conversation(row) for row in rows]

    async def get_conversation_by_id(self, conversation_id: str) -> Conversation | None:
        async with _remote_call("get_conversation_by_id"):
            row = await self.database.pool.fetchrow(
                f"SELECT {_CONVERSATION_COLUMNS} FROM journal_conversations WHERE id = $1",
                conversation_id,
            )
            return _row_to_conversation(row) if row is not None else None

    async def update_conversation_timestamp(self, conversation_id: str, timestamp: datetime) -> Conversation:
        async with _remote_call("update_conversation_timestamp"):
            row = await self.database.pool.fetchrow(
                f"""
                UPDATE journal_conversations
                SET updated_at = GREATEST(updated_at, $2),
                    touch_seq = nextval('journal_conversation_touch_seq')
                WHERE id = $1
                RETURNING {_CONVERSATION_COLUMNS}
                """,
                conversation_id,
                timestamp,
            )
        if row is None:
            raise NotFoundError("conversation", conversation_id)
        return _row_to_conversation(row)

    async def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        async with _remote_call("delete_conversation"):
            result = await self.database.pool.execute(
                "DELETE FROM journal_conversations WHERE id = $1 AND user_id = $2",
                conversation_id,
                user_id,
            )
        try:
            deleted_count = int(str(result).split()[-1])
        except (ValueError, IndexError):
            deleted_count = 0
        return deleted_count > 0


class PostgreSQLMessageDatabase(MessageDatabase):
    def __init__(self, database: PostgreSQLDatabase) -> None:
        self.database = database

    async def create_message(
        self,
        conversation_id: str,
        content: str,
        role: Roles,
        audio_url: str | None = None,
        emotion_analysis: Any = None,
    ) -> Message:
        encoded_analysis = json.dumps(emotion_analysis) if emotion_analysis is not None else None
        async with _remote_call("create_message"):
            try:
                row = await self.database.pool.fetchrow(
                    f"""
                    INSERT INTO journal_messages (conversation_id, content, role, audio_url, emotion_analysis)
                    VALUES ($1, $2, $3, $4, $5::jsonb)
                    RETURNING {_MESSAGE_COLUMNS}
                    """,
                    conversation_id,
                    content,
                    str(role),
                    audio_url,
                    encoded_analysis,
                )
            except asyncpg.ForeignKeyViolationError as exc:
                raise NotFoundError("conversation", conversation_id) from exc
            if row is None:
                raise RemoteFailureError("create_message", "insert returned no row")
            return _row_to_message(row)

    async def get_messages_by_conversation_id(self, conversation_id: str) -> list[Message]:
        async with _remote_call("get_messages_by_conversation_id"):
            rows = await self.database.pool.fetch(
                f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM journal_messages
                WHERE conversation_id = $1
                ORDER BY "timestamp" ASC, insert_seq ASC
                """,
                conversation_id,
            )
            return [_row_to_message(row) for row in rows]


class PostgreSQLProfileDatabase(ProfileDatabase):
    def __init__(self, database: PostgreSQLDatabase) -> None:
        self.database = database

    async def create_profile(self, user_id: str, email: str | None = None) -> Profile:
        async with _remote_call("create_profile"):
            # The no-op update makes RETURNING yield the existing row on conflict.
            row = await self.database.pool.fetchrow(
                f"""
                INSERT INTO journal_profiles (user_id, email)
                VALUES ($1, $2)
                ON CONFLICT (user_id) DO UPDATE SET user_id = EXCLUDED.user_id
                RETURNING {_PROFILE_COLUMNS}
                """,
                user_id,
                email,
            )
            if row is None:
                raise RemoteFailureError("create_profile", "insert returned no row")
            return _row_to_profile(row)

    async def get_profile_by_user_id(self, user_id: str) -> Profile | None:
        async with _remote_call("get_profile_by_user_id"):
            row = await self.database.pool.fetchrow(
                f"SELECT {_PROFILE_COLUMNS} FROM journal_profiles WHERE user_id = $1",
                user_id,
            )
            return _row_to_profile(row) if row is not None else None

    async def update_profile(self, user_id: str, update: ProfileUpdate, timestamp: datetime) -> Profile:
        async with _remote_call("update_profile"):
            row = await self.database.pool.fetchrow(
                f"""
                UPDATE journal_profiles
                SET full_name = $2, diagnosis_age = $3, diagnosis_type = $4, updated_at = $5
                WHERE user_id = $1
                RETURNING {_PROFILE_COLUMNS}
                """,
                user_id,
                update.full_name,
                update.diagnosis_age,
                update.diagnosis_type,
                timestamp,
            )
            if row is None:
                raise NotFoundError("profile", user_id)
            return _row_to_profile(row)


def build_postgres_databases(
    database_url: str,
) -> tuple[PostgreSQLDatabase, PostgreSQLConversationDatabase, PostgreSQLMessageDatabase, PostgreSQLProfileDatabase]:
    """Return the shared pool holder and the repositories. Call 'initialize()' before use."""
    database = PostgreSQLDatabase(database_url)
    return (
        database,
        PostgreSQLConversationDatabase(database),
        PostgreSQLMessageDatabase(database),
        PostgreSQLProfileDatabase(database),
    )
