"""
Journal session controller (Facade).

A 'JournalSession' is the context object owned by one authenticated session: it
wraps the session's 'ConversationStore' together with the identity it was opened
for, the user's profile and the optional speech service. There is no
process-wide store; consumers receive the session they were given and talk to
its 'store'.

'SessionManager' ties session lifetime to authentication:

    'sign_in'  - create the session, make sure the user has a profile, run the
                 initial 'load_conversations' and keep the session until
                 sign-out (signing in again reuses it).
    'sign_out' - drop the session and its in-memory state.

The API layer keeps one 'SessionManager' and looks sessions up by user id.
"""

import asyncio

from loguru import logger

from journal_toolkit.analytics.report import AnalyticsReport, TimeRange, build_report
from journal_toolkit.conversation_database.data_models.conversation import Conversation, ConversationDatabase
from journal_toolkit.conversation_database.data_models.message import MessageDatabase
from journal_toolkit.conversation_database.data_models.profile import Profile, ProfileDatabase, ProfileUpdate
from journal_toolkit.conversation_database.errors import NotAuthenticatedError, remote_call
from journal_toolkit.conversation_database.identity import SessionIdentity
from journal_toolkit.conversation_database.store import ConversationStore
from journal_toolkit.utils.time import get_current_timestamp
from journal_toolkit.voice.base import SpeechService, SpeechServiceError, Voice


class JournalSession:
    def __init__(
        self,
        user_id: str,
        conversation_db: ConversationDatabase,
        message_db: MessageDatabase,
        profile_db: ProfileDatabase,
        speech_service: SpeechService | None = None,
    ) -> None:
        self.identity = SessionIdentity(user_id)
        self.store = ConversationStore(conversation_db, message_db, self.identity)
        self.profile_db = profile_db
        self.speech_service = speech_service
        self.profile: Profile | None = None

    @property
    def user_id(self) -> str | None:
        return self.identity.current_user_id()

    def _require_user_id(self) -> str:
        user_id = self.identity.current_user_id()
        if not user_id:
            raise NotAuthenticatedError()
        return user_id

    async def start(self) -> None:
        await self.load_profile()
        await self.store.load_conversations()

    def close(self) -> None:
        self.identity.sign_out()
        self.profile = None

    async def load_profile(self) -> Profile:
        """Return the user's profile, creating an empty one on first use."""
        user_id = self._require_user_id()
        profile = await remote_call("get_profile_by_user_id", self.profile_db.get_profile_by_user_id(user_id))
        if profile is None:
            profile = await remote_call("create_profile", self.profile_db.create_profile(user_id))
            logger.info(f"Created profile for user {user_id}")
        self.profile = profile
        return profile

    async def update_profile(self, update: ProfileUpdate) -> Profile:
        user_id = self._require_user_id()
        self.profile = await remote_call(
            "update_profile",
            self.profile_db.update_profile(user_id, update, get_current_timestamp()),
        )
        logger.info(f"Updated profile for user {user_id}")
        return self.profile

    async def new_conversation(self, title: str | None = None) -> Conversation:
        """Create a conversation and make it the active one."""
        conversation = await self.store.create_conversation(title)
        return await self.store.select_conversation(conversation.id)

    def _require_speech_service(self) -> SpeechService:
        if self.speech_service is None:
            raise SpeechServiceError("No speech service configured")
        return self.speech_service

    async def speak(self, text: str) -> bytes:
        return await self._require_speech_service().text_to_speech(text)

    async def voices(self) -> list[Voice]:
        return await self._require_speech_service().list_voices()

    async def analytics(self, time_range: TimeRange = "month") -> AnalyticsReport:
        """Build a report over the loaded conversation list and all of their messages."""
        conversations = self.store.conversations
        message_logs = await asyncio.gather(
            *(
                remote_call(
                    "get_messages_by_conversation_id",
                    self.store.message_db.get_messages_by_conversation_id(c.id),
                )
                for c in conversations
            )
        )
        messages = [message for log in message_logs for message in log]
        return build_report(conversations, messages, time_range)


class SessionManager:
    def __init__(
        self,
        conversation_db: ConversationDatabase,
        message_db: MessageDatabase,
        profile_db: ProfileDatabase,
        speech_service: SpeechService | None = None,
    ) -> None:
        self.conversation_db = conversation_db
        self.message_db = message_db
        self.profile_db = profile_db
        self.speech_service = speech_service
        self._sessions: dict[str, JournalSession] = {}

    async def sign_in(self, user_id: str) -> JournalSession:
        if not user_id:
            raise NotAuthenticatedError()
        session = self._sessions.get(user_id)
        if session is not None:
            return session

        session = JournalSession(user_id, self.conversation_db, self.message_db, self.profile_db, self.speech_service)
        await session.start()
        self._sessions[user_id] = session
        logger.info(f"Session opened for user {user_id}")
        return session

    def sign_out(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.close()
        logger.info(f"Session closed for user {user_id}")
        return True

    def get(self, user_id: str) -> JournalSession:
        session = self._sessions.get(user_id)
        if session is None:
            raise NotAuthenticatedError(f"No open session for user {user_id}")
        return session
