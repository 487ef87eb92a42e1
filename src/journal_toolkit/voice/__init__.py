from journal_toolkit.voice.base import SpeechService, SpeechServiceError, Voice
from journal_toolkit.voice.elevenlabs import ElevenLabsSpeechService

__all__ = ["ElevenLabsSpeechService", "SpeechService", "SpeechServiceError", "Voice"]
