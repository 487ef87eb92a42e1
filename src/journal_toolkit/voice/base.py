"""
Speech service abstractions.

The speech service turns a companion reply into audio. It is an opaque,
asynchronous collaborator: a call either returns the encoded audio payload or
raises 'SpeechServiceError'. Nothing in the conversation store depends on it.

Concrete implementations: 'ElevenLabsSpeechService'.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class SpeechServiceError(Exception):
    """The speech provider rejected a request or could not be reached."""


class Voice(BaseModel):
    voice_id: str
    name: str
    category: str | None = None


class SpeechService(ABC):
    @abstractmethod
    async def text_to_speech(self, text: str, voice_id: str | None = None) -> bytes:
        """Synthesize 'text' and return the encoded audio (MPEG by default)."""
        pass

    @abstractmethod
    async def list_voices(self) -> list[Voice]:
        pass
