"""Transcription module for cornerspeech."""

from .base import AbstractTranscriptionBackend
from .aggregator import TranscriptAggregator
from .cleaner import clean_segment_text, join_segments
from .engine import TranscriptionEngine
from .publisher import TranscriptPublisher, TRANSCRIPTION_TOPIC
from .scheduler import ChunkScheduler, SchedulerState

__all__ = [
    "AbstractTranscriptionBackend",
    "ChunkScheduler",
    "SchedulerState",
    "TranscriptAggregator",
    "TranscriptionEngine",
    "TranscriptPublisher",
    "TRANSCRIPTION_TOPIC",
    "clean_segment_text",
    "join_segments",
]
