"""
ElevenLabs text-to-speech client.

Thin async wrapper over the ElevenLabs REST API using 'httpx.AsyncClient'. The
API key is taken from configuration ('ELEVENLABS_API_KEY'), never from code. An
'httpx.AsyncClient' can be injected, which is how tests swap in a
'httpx.MockTransport'.
"""

from typing import Any

import httpx
from loguru import logger

from journal_toolkit.config import DEFAULT_ELEVENLABS_BASE_URL, DEFAULT_TTS_MODEL_ID, DEFAULT_VOICE_ID
from journal_toolkit.voice.base import SpeechService, SpeechServiceError, Voice

TIMEOUT = httpx.Timeout(connect=5.0, read=30.0, write=10.0, pool=5.0)
VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.5}


class ElevenLabsSpeechService(SpeechService):
    def __init__(
        self,
        api_key: str,
        voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_TTS_MODEL_ID,
        base_url: str = DEFAULT_ELEVENLABS_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("ElevenLabs API key must not be empty")
        self.voice_id = voice_id
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=TIMEOUT)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"xi-api-key": self._api_key, **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise SpeechServiceError(f"ElevenLabs API request failed: {exc}") from exc
        if response.is_error:
            raise SpeechServiceError(f"ElevenLabs API error: {response.status_code} {response.reason_phrase}")
        return response

    async def text_to_speech(self, text: str, voice_id: str | None = None) -> bytes:
        if not text.strip():
            raise ValueError("Text to synthesize must not be empty")
        voice = voice_id or self.voice_id
        response = await self._request(
            "POST",
            f"/text-to-speech/{voice}",
            headers={"Accept": "audio/mpeg"},
            json={"text": text, "model_id": self.model_id, "voice_settings": VOICE_SETTINGS},
        )
        logger.debug(f"Synthesized {len(text)} characters with voice {voice} ({len(response.content)} bytes)")
        return response.content

    async def list_voices(self) -> list[Voice]:
        response = await self._request("GET", "/voices")
        try:
            payload = response.json()
        except ValueError as exc:
            raise SpeechServiceError("ElevenLabs API returned invalid JSON") from exc
        return [Voice.model_validate(voice) for voice in payload.get("voices", [])]
