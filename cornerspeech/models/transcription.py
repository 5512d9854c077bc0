"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass
class TranscriptionResult:
    """Outcome of running inference on one drained chunk."""
    text: str
    raw_segments: List[str]
    processing_time: float
    input_samples: int
    sample_rate: int
    timestamp: datetime = field(default_factory=datetime.now)
    language: str = "en"
