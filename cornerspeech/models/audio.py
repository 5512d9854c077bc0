"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    buffered_samples: int
    sample_rate: int
    chunk_size: int
    total_chunks: int
    dropped_chunks: int = 0
    sample_format: str = ""
    channels: int = 1


@dataclass
class InputDeviceInfo:
    """The default input device as reported by PortAudio."""
    index: int
    name: str
    sample_rate: int
    channels: int
