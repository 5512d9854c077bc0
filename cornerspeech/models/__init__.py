"""Data models for the cornerspeech pipeline."""

from .audio import AudioStats, InputDeviceInfo
from .events import TranscriptFragment, DownloadProgress
from .transcription import TranscriptionResult

__all__ = [
    "AudioStats",
    "InputDeviceInfo",
    "TranscriptFragment",
    "DownloadProgress",
    "TranscriptionResult",
]
