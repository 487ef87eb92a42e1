"""
HTTP API over the journal session controller.

The API is a consumer of 'ConversationStore': every route resolves the caller's
'JournalSession' through the 'AuthProvider' and the 'SessionManager', calls one
store operation and returns the store's resulting state. Store errors are mapped
to HTTP status codes in one place ('_JOURNAL_ERROR_STATUS').

'create_app' accepts a ready 'SessionManager' (tests, embedding) or builds one
from 'JournalSettings' inside the application lifespan.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel

from journal_toolkit.analytics.report import AnalyticsReport, TimeRange
from journal_toolkit.api.auth.base import AuthProvider
from journal_toolkit.api.auth.header import HeaderAuthProvider
from journal_toolkit.config import JournalSettings
from journal_toolkit.conversation_database.controller import JournalSession, SessionManager
from journal_toolkit.conversation_database.data_models.conversation import Conversation
from journal_toolkit.conversation_database.data_models.message import Message, Roles
from journal_toolkit.conversation_database.data_models.profile import Profile, ProfileUpdate
from journal_toolkit.conversation_database.errors import (
    JournalError,
    NoActiveConversationError,
    NotAuthenticatedError,
    NotFoundError,
    RemoteFailureError,
)
from journal_toolkit.conversation_database.factory import build_databases
from journal_toolkit.conversation_database.store import AppendResult
from journal_toolkit.utils.logging import configure_logging
from journal_toolkit.voice.base import SpeechServiceError, Voice
from journal_toolkit.voice.elevenlabs import ElevenLabsSpeechService

_JOURNAL_ERROR_STATUS: dict[type[JournalError], int] = {
    NotAuthenticatedError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    NoActiveConversationError: status.HTTP_409_CONFLICT,
    RemoteFailureError: status.HTTP_502_BAD_GATEWAY,
}


class ConversationInput(BaseModel):
    title: str | None = None


class MessageInput(BaseModel):
    content: str
    role: Roles = Roles.USER
    audio_url: str | None = None
    emotion_analysis: Any = None


class SpeechInput(BaseModel):
    text: str


class SessionState(BaseModel):
    """Snapshot of the store as seen by the caller."""

    conversations: list[Conversation]
    active_conversation: Conversation | None
    messages: list[Message]
    is_busy: bool

    @classmethod
    def from_session(cls, session: JournalSession) -> "SessionState":
        store = session.store
        return cls(
            conversations=list(store.conversations),
            active_conversation=store.active_conversation,
            messages=list(store.messages),
            is_busy=store.is_busy,
        )


def _status_for(exc: JournalError) -> int:
    for error_type, status_code in _JOURNAL_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def get_manager(request: Request) -> SessionManager:
    return request.app.state.manager


def create_app(
    manager: SessionManager | None = None,
    auth_provider: AuthProvider | None = None,
    settings: JournalSettings | None = None,
) -> FastAPI:
    auth = auth_provider or HeaderAuthProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if manager is not None:
            yield
            return

        resolved = settings or JournalSettings()
        configure_logging(resolved.log_level)
        databases = await build_databases(resolved)
        speech_service = None
        if resolved.elevenlabs_api_key:
            speech_service = ElevenLabsSpeechService(
                api_key=resolved.elevenlabs_api_key,
                voice_id=resolved.elevenlabs_voice_id,
                model_id=resolved.elevenlabs_model_id,
                base_url=resolved.elevenlabs_base_url,
            )
        app.state.manager = SessionManager(
            databases.conversation_db, databases.message_db, databases.profile_db, speech_service
        )
        try:
            yield
        finally:
            if speech_service is not None:
                await speech_service.aclose()
            await databases.close()

    app = FastAPI(title="knowMe journal", lifespan=lifespan)
    if manager is not None:
        app.state.manager = manager
    auth.bind_to_app(app)

    @app.exception_handler(JournalError)
    async def journal_error_handler(request: Request, exc: JournalError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(SpeechServiceError)
    async def speech_error_handler(request: Request, exc: SpeechServiceError) -> JSONResponse:
        logger.error(f"Speech service failed: {exc}")
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})

    def current_session(
        user_id: str = Depends(auth.get_current_user_id),
        sessions: SessionManager = Depends(get_manager),
    ) -> JournalSession:
        return sessions.get(user_id)

    @app.post("/session")
    async def sign_in(
        user_id: str = Depends(auth.get_current_user_id),
        sessions: SessionManager = Depends(get_manager),
    ) -> SessionState:
        session = await sessions.sign_in(user_id)
        return SessionState.from_session(session)

    @app.delete("/session")
    async def sign_out(
        user_id: str = Depends(auth.get_current_user_id),
        sessions: SessionManager = Depends(get_manager),
    ) -> dict[str, bool]:
        return {"ok": True, "signed_out": sessions.sign_out(user_id)}

    @app.get("/profile")
    async def get_profile(session: JournalSession = Depends(current_session)) -> Profile:
        return await session.load_profile()

    @app.put("/profile")
    async def update_profile(
        profile_update: ProfileUpdate,
        session: JournalSession = Depends(current_session),
    ) -> Profile:
        return await session.update_profile(profile_update)

    @app.get("/conversations")
    async def list_conversations(session: JournalSession = Depends(current_session)) -> list[Conversation]:
        return list(await session.store.load_conversations())

    @app.post("/conversations", status_code=status.HTTP_201_CREATED)
    async def create_conversation(
        conversation_input: ConversationInput,
        select: bool = False,
        session: JournalSession = Depends(current_session),
    ) -> Conversation:
        if select:
            return await session.new_conversation(conversation_input.title)
        return await session.store.create_conversation(conversation_input.title)

    @app.post("/conversations/{conversation_id}/select")
    async def select_conversation(
        conversation_id: str,
        session: JournalSession = Depends(current_session),
    ) -> SessionState:
        await session.store.select_conversation(conversation_id)
        return SessionState.from_session(session)

    @app.delete("/conversations/{conversation_id}")
    async def delete_conversation(
        conversation_id: str,
        session: JournalSession = Depends(current_session),
    ) -> dict[str, bool]:
        await session.store.delete_conversation(conversation_id)
        return {"ok": True}

    @app.get("/messages")
    async def list_messages(session: JournalSession = Depends(current_session)) -> list[Message]:
        return list(session.store.messages)

    @app.post("/messages", status_code=status.HTTP_201_CREATED)
    async def append_message(
        message_input: MessageInput,
        session: JournalSession = Depends(current_session),
    ) -> AppendResult:
        return await session.store.append_message(
            message_input.content,
            message_input.role,
            audio_url=message_input.audio_url,
            emotion_analysis=message_input.emotion_analysis,
        )

    @app.get("/analytics")
    async def analytics(
        time_range: TimeRange = "month",
        session: JournalSession = Depends(current_session),
    ) -> AnalyticsReport:
        return await session.analytics(time_range)

    @app.post("/speech")
    async def speech(speech_input: SpeechInput, session: JournalSession = Depends(current_session)) -> Response:
        audio = await session.speak(speech_input.text)
        return Response(content=audio, media_type="audio/mpeg")

    @app.get("/voices")
    async def voices(session: JournalSession = Depends(current_session)) -> list[Voice]:
        return await session.voices()

    return app
