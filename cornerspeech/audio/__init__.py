"""Audio capture and processing module."""

from .buffer import SampleBuffer
from .capture import AudioCaptureSession
from .state import RecordingState

__all__ = [
    'AudioCaptureSession',
    'RecordingState',
    'SampleBuffer',
]
