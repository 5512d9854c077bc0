"""Callback-driven microphone capture into the shared sample buffer."""

import pyaudio
import logging
import threading
from datetime import datetime
from typing import Optional

from .buffer import SampleBuffer
from .state import RecordingState
from .processing import FORMAT_NAMES, SUPPORTED_FORMATS, to_float_mono
from ..errors import NoInputDeviceError, UnsupportedSampleFormatError
from ..models.audio import AudioStats, InputDeviceInfo


logger = logging.getLogger(__name__)


class AudioCaptureSession:
    """Opens the default input device and appends converted blocks to a SampleBuffer."""

    def __init__(
        self,
        buffer: SampleBuffer,
        recording_state: RecordingState,
        frames_per_buffer: int = 1024,
        max_channels: int = 2,
    ):
        """Initialize capture session.

        Args:
            buffer: Buffer receiving float32 mono samples
            recording_state: Flag gating whether delivered blocks are kept
            frames_per_buffer: PortAudio block size in frames
            max_channels: Upper bound on channels opened from the device
        """
        self.buffer = buffer
        self.recording_state = recording_state
        self.frames_per_buffer = frames_per_buffer
        self.max_channels = max(1, max_channels)

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None
        self.device: Optional[InputDeviceInfo] = None
        self.sample_format: Optional[int] = None
        self.sample_rate = 0
        self.channels = 1
        self.stream_lock = threading.Lock()

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.dropped_chunks = 0
        self.overflow_count = 0

    @property
    def is_open(self) -> bool:
        return self.stream is not None

    def start(self) -> int:
        """Open the default input device and start delivering blocks.

        Returns:
            Sample rate of the opened stream in Hz

        Raises:
            NoInputDeviceError: No default input device exists
            UnsupportedSampleFormatError: Every supported format was rejected
        """
        with self.stream_lock:
            if self.stream is not None:
                logger.warning("Capture stream already open")
                return self.sample_rate

            self.pyaudio_instance = pyaudio.PyAudio()
            try:
                self.device = self._default_input_device()
                self.stream = self._open_stream(self.device)
            except Exception:
                self._terminate()
                raise

            self.start_time = datetime.now()
            self.total_chunks = 0
            self.dropped_chunks = 0
            self.overflow_count = 0

        logger.info(f"Audio stream opened on '{self.device.name}': {self.sample_rate}Hz, "
                    f"{self.channels} channel(s), {FORMAT_NAMES[self.sample_format]}, "
                    f"{self.frames_per_buffer} frames/block")
        return self.sample_rate

    def _default_input_device(self) -> InputDeviceInfo:
        try:
            info = self.pyaudio_instance.get_default_input_device_info()
        except (IOError, OSError) as e:
            raise NoInputDeviceError("No input device found") from e

        max_input_channels = int(info.get("maxInputChannels", 0))
        if max_input_channels < 1:
            raise NoInputDeviceError(f"Default device '{info.get('name')}' has no input channels")

        return InputDeviceInfo(
            index=int(info["index"]),
            name=str(info.get("name", "unknown")),
            sample_rate=int(info["defaultSampleRate"]),
            channels=min(max_input_channels, self.max_channels),
        )

    def _open_stream(self, device: InputDeviceInfo) -> pyaudio.Stream:
        failures = []
        for sample_format in SUPPORTED_FORMATS:
            format_name = FORMAT_NAMES[sample_format]
            try:
                self.pyaudio_instance.is_format_supported(
                    device.sample_rate,
                    input_device=device.index,
                    input_channels=device.channels,
                    input_format=sample_format,
                )
                # Set before open: the callback may fire before open() returns
                self.sample_format = sample_format
                self.sample_rate = device.sample_rate
                self.channels = device.channels
                stream = self.pyaudio_instance.open(
                    format=sample_format,
                    channels=device.channels,
                    rate=device.sample_rate,
                    input=True,
                    input_device_index=device.index,
                    frames_per_buffer=self.frames_per_buffer,
                    stream_callback=self._on_audio_block,
                )
            except (ValueError, IOError, OSError) as e:
                logger.debug(f"Device rejected {format_name}: {e}")
                failures.append(f"{format_name}: {e}")
                continue
            return stream

        self.sample_format = None
        raise UnsupportedSampleFormatError(
            f"Device '{device.name}' rejected all sample formats ({'; '.join(failures)})"
        )

    def _on_audio_block(self, in_data, frame_count, time_info, status_flags):
        """PortAudio callback: convert and append, never block on anything slow."""
        try:
            if status_flags & pyaudio.paInputOverflow:
                self.overflow_count += 1
            if not self.recording_state.is_active:
                self.dropped_chunks += 1
                return (None, pyaudio.paContinue)

            samples = to_float_mono(in_data, self.sample_format, self.channels)
            self.buffer.append(samples)
            self.total_chunks += 1
        except Exception as e:
            logger.error(f"Error in audio callback: {e}", exc_info=True)
        return (None, pyaudio.paContinue)

    def stop(self) -> None:
        """Stop and close the stream; no samples are appended after this returns."""
        with self.stream_lock:
            if self.stream is None:
                self._terminate()
                return
            try:
                # Blocks until any running callback has returned
                self.stream.stop_stream()
                self.stream.close()
            except (IOError, OSError) as e:
                logger.warning(f"Error closing audio stream: {e}")
            finally:
                self.stream = None
                self._terminate()

        logger.info(f"Audio stream closed. Blocks kept: {self.total_chunks}, "
                    f"dropped: {self.dropped_chunks}, overflows: {self.overflow_count}")

    def _terminate(self) -> None:
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time and self.is_open:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.recording_state.is_active and self.is_open,
            duration_seconds=duration,
            buffered_samples=len(self.buffer),
            sample_rate=self.sample_rate,
            chunk_size=self.frames_per_buffer,
            total_chunks=self.total_chunks,
            dropped_chunks=self.dropped_chunks,
            sample_format=FORMAT_NAMES.get(self.sample_format, ""),
            channels=self.channels,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if getattr(self, "stream", None) is not None:
            self.stop()
