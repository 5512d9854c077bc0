"""Services layer for cornerspeech application logic."""

from .speech_service import SpeechService

__all__ = [
    "SpeechService",
]
