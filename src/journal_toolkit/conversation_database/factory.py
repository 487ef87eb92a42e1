"""
Backend selection.

'build_databases' turns 'JournalSettings' into ready-to-use repositories.
The PostgreSQL pool is opened here, so callers must 'await close()' on the
returned 'Databases' when the process shuts down.
"""

from dataclasses import dataclass

from loguru import logger

from journal_toolkit.config import JournalSettings
from journal_toolkit.conversation_database.data_models.conversation import ConversationDatabase
from journal_toolkit.conversation_database.data_models.message import MessageDatabase
from journal_toolkit.conversation_database.data_models.profile import ProfileDatabase
from journal_toolkit.conversation_database.in_memory import build_in_memory_databases
from journal_toolkit.conversation_database.postgres import PostgreSQLDatabase, build_postgres_databases


@dataclass
class Databases:
    conversation_db: ConversationDatabase
    message_db: MessageDatabase
    profile_db: ProfileDatabase
    postgres: PostgreSQLDatabase | None = None

    async def close(self) -> None:
        if self.postgres is not None:
            await self.postgres.close()


async def build_databases(settings: JournalSettings) -> Databases:
    if settings.storage_backend == "postgres":
        assert settings.database_url is not None
        postgres, conversation_db, message_db, profile_db = build_postgres_databases(settings.database_url)
        await postgres.initialize()
        logger.info("Storage backend: PostgreSQL")
        return Databases(conversation_db, message_db, profile_db, postgres)

    conversation_db, message_db, profile_db = build_in_memory_databases()
    logger.info("Storage backend: in-memory")
    return Databases(conversation_db, message_db, profile_db)
