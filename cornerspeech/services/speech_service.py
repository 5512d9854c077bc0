"""Speech service: the command surface for recording and model management."""

import logging
import threading
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..audio.buffer import SampleBuffer
from ..audio.capture import AudioCaptureSession
from ..audio.state import RecordingState
from ..config import CornerSpeechConfig
from ..errors import RecordingError
from ..storage.model_store import ModelStore
from ..storage.progress_pub import DownloadProgressPublisher, DOWNLOAD_PROGRESS_TOPIC
from ..transcription.engine import TranscriptionEngine
from ..transcription.publisher import TranscriptPublisher, TRANSCRIPTION_TOPIC
from ..transcription.scheduler import ChunkScheduler

logger = logging.getLogger(__name__)


def load_whisper_backend(model_path: Path, language: str = "en", n_threads: int = 4):
    """Default model loader: a whisper.cpp backend for the given file."""
    from ..transcription.whisper_backend import WhisperCppBackend
    return WhisperCppBackend.from_file(model_path, language=language, n_threads=n_threads)


class SpeechService:
    """Owns the shared session state and exposes the recording/model commands.

    The sample buffer, recording flag and model handle are created once here
    and handed to the capture session, scheduler and engine.
    """

    def __init__(self,
                 config: Optional[CornerSpeechConfig] = None,
                 loader: Optional[Callable[[Path], Any]] = None,
                 transcript_topic: str = TRANSCRIPTION_TOPIC,
                 progress_topic: str = DOWNLOAD_PROGRESS_TOPIC):
        """Initialize speech service.

        Args:
            config: Application configuration (defaults when None)
            loader: Builds an inference backend from a model path
            transcript_topic: Pub/sub topic for transcript fragments
            progress_topic: Pub/sub topic for download progress
        """
        self.config = config or CornerSpeechConfig()

        if loader is None:
            loader = partial(
                load_whisper_backend,
                language=self.config.get('transcription.language', 'en'),
                n_threads=self.config.get('transcription.n_threads', 4),
            )

        self.buffer = SampleBuffer()
        self.recording_state = RecordingState()
        self.command_lock = threading.Lock()
        self.sample_rate = 0

        self.transcript_publisher = TranscriptPublisher(transcript_topic)
        self.progress_publisher = DownloadProgressPublisher(progress_topic)

        self.model_store = ModelStore.from_config(self.config, loader=loader)
        self.engine = TranscriptionEngine(
            buffer=self.buffer,
            model_store=self.model_store,
            result_callback=self.transcript_publisher.get_callback(),
            target_sample_rate=self.config.get('transcription.target_sample_rate', 16000),
        )
        self.capture = AudioCaptureSession(
            buffer=self.buffer,
            recording_state=self.recording_state,
            frames_per_buffer=self.config.get('audio.frames_per_buffer', 1024),
            max_channels=self.config.get('audio.max_channels', 2),
        )
        self.scheduler = ChunkScheduler(
            engine=self.engine,
            recording_state=self.recording_state,
            chunk_duration=self.config.get('transcription.chunk_duration_seconds', 3.0),
            poll_interval=self.config.get('transcription.poll_interval_seconds', 0.1),
        )

    @property
    def is_recording(self) -> bool:
        return self.recording_state.is_active

    def start_recording(self) -> None:
        """Open the microphone and start periodic transcription.

        Raises:
            RecordingError: Already recording
            AudioDeviceError: No usable input device; the service stays idle
        """
        with self.command_lock:
            if not self.recording_state.activate():
                raise RecordingError("Recording already in progress")

            logger.info("Starting recording")
            self.buffer.clear()
            try:
                self.sample_rate = self.capture.start()
            except Exception as e:
                logger.error(f"Failed to start recording: {e}")
                self.recording_state.deactivate()
                raise

            self.scheduler.start(self.sample_rate)
            logger.info("Recording started successfully")

    def stop_recording(self) -> None:
        """Stop capture, flush the remainder and emit the final fragment.

        Raises:
            RecordingError: Not recording
        """
        with self.command_lock:
            if not self.recording_state.deactivate():
                raise RecordingError("No recording in progress")

            logger.info("Stopping recording...")
            self.capture.stop()
            # Let an in-flight chunk finish so the final fragment stays last
            self.scheduler.stop()
            self.engine.finish(self.sample_rate)
            logger.info("Recording stopped successfully")

    async def download_model(self, progress_callback: Optional[Callable[[float], None]] = None) -> Path:
        """Download and verify the model, publishing progress events.

        Raises:
            RecordingError: A recording is in progress
            ModelDownloadError: The download or verification failed
        """
        if self.is_recording:
            raise RecordingError("Cannot download the model while recording")

        def report(progress: float) -> None:
            self.progress_publisher.publish_progress(progress)
            if progress_callback:
                progress_callback(progress)

        logger.info("Starting Whisper model download")
        try:
            return await self.model_store.download(report)
        finally:
            # The file on disk was replaced or removed
            self.engine.invalidate_model()

    def check_model(self) -> bool:
        """Verify the model file, removing it if corrupt.

        Runs under the inference lock so a repair never races an in-progress load.
        """
        with self.engine.lock:
            valid = self.model_store.is_present_and_valid()
        if not valid:
            self.engine.invalidate_model()
        return valid

    def get_model_size(self) -> int:
        return self.model_store.size()

    def delete_model(self) -> None:
        """Delete the model file and unload any loaded handle.

        Raises:
            RecordingError: A recording is in progress
            ModelStoreError: The file could not be removed
        """
        if self.is_recording:
            raise RecordingError("Cannot delete the model while recording")
        self.engine.invalidate_model()
        self.model_store.delete()

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_recording": self.is_recording,
            "sample_rate": self.sample_rate,
            "model_path": str(self.model_store.model_path()),
            "model_size": self.model_store.size(),
            "engine": self.engine.get_engine_stats(),
            "scheduler": self.scheduler.get_stats(),
            "capture": self.capture.get_recording_stats(),
        }

    def shutdown(self) -> None:
        """Stop recording if needed and release the model."""
        if self.is_recording:
            self.stop_recording()
        self.engine.invalidate_model()
