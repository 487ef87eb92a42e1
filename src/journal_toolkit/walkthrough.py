"""
End-to-end walkthrough of the conversation store.

Each stage is an independent coroutine so you can run and inspect individual
steps on their own. loguru logs the store's state after every stage.

Usage
-----
Run against the in-memory backend (default):

    python -m journal_toolkit.walkthrough

Run against PostgreSQL:

    STORAGE_BACKEND=postgres DATABASE_URL=postgresql://localhost/journal \\
    python -m journal_toolkit.walkthrough

Steps at a glance
-----------------
1  step1_sign_in()           - Open a session and load the conversation list.
2  step2_start_conversation() - Create "Chat A" and select it.
3  step3_exchange()           - Append a user turn and an assistant reply.
4  step4_reopen()             - Reselect the conversation from a fresh session.
5  step5_report()             - Build the analytics report.
"""

import asyncio
import os

from loguru import logger

from journal_toolkit.analytics.report import AnalyticsReport
from journal_toolkit.config import JournalSettings
from journal_toolkit.conversation_database.controller import JournalSession, SessionManager
from journal_toolkit.conversation_database.data_models.conversation import Conversation
from journal_toolkit.conversation_database.data_models.message import Message, Roles
from journal_toolkit.conversation_database.factory import build_databases
from journal_toolkit.utils.logging import configure_logging

USER_ID = os.getenv("JOURNAL_USER_ID", "walkthrough-user")
TURNS = [
    ("hello", Roles.USER),
    ("hi there", Roles.ASSISTANT),
]


async def step1_sign_in(manager: SessionManager, user_id: str) -> JournalSession:
    session = await manager.sign_in(user_id)
    logger.info(f"Signed in as {user_id}; {len(session.store.conversations)} existing conversations")
    return session


async def step2_start_conversation(session: JournalSession, title: str = "Chat A") -> Conversation:
    conversation = await session.new_conversation(title)
    logger.info(f"Active conversation: {conversation.title!r} ({conversation.id})")
    return conversation


async def step3_exchange(session: JournalSession) -> list[Message]:
    for content, role in TURNS:
        result = await session.store.append_message(content, role)
        if not result.fully_committed:
            logger.warning(f"Timestamp update pending for message {result.message.id}: {result.timestamp_error}")
    for message in session.store.messages:
        logger.info(f"[{message.timestamp:%H:%M:%S}] {message.role}: {message.content}")
    return list(session.store.messages)


async def step4_reopen(manager: SessionManager, user_id: str, conversation_id: str) -> list[Message]:
    manager.sign_out(user_id)
    session = await manager.sign_in(user_id)
    await session.store.select_conversation(conversation_id)
    logger.info(f"Reopened conversation with {len(session.store.messages)} messages")
    return list(session.store.messages)


async def step5_report(session: JournalSession) -> AnalyticsReport:
    report = await session.analytics("week")
    logger.info(
        f"{report.total_conversations} conversations, {report.total_messages} messages, "
        f"topics: {[(t.topic, t.count) for t in report.topic_distribution]}"
    )
    return report


async def run_walkthrough(settings: JournalSettings, user_id: str = USER_ID) -> list[Message]:
    configure_logging(settings.log_level)
    logger.info("======= Journal walkthrough =======")
    databases = await build_databases(settings)
    try:
        manager = SessionManager(databases.conversation_db, databases.message_db, databases.profile_db)

        # Step 1: Sign in
        session = await step1_sign_in(manager, user_id)

        # Step 2: Create and select a conversation
        conversation = await step2_start_conversation(session)

        # Step 3: Exchange two turns
        await step3_exchange(session)

        # Step 4: Read the log back from a fresh session
        messages = await step4_reopen(manager, user_id, conversation.id)

        # Step 5: Analytics over everything the user has
        await step5_report(manager.get(user_id))

        logger.info("======= Journal walkthrough - done =======")
        return messages
    finally:
        await databases.close()


if __name__ == "__main__":
    asyncio.run(run_walkthrough(JournalSettings()))
