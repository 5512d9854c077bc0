"""Transcription engine: drains buffered audio, runs inference and emits fragments."""

import time
import logging
import threading
from typing import Optional, Callable, Dict, Any

import numpy as np

from .base import AbstractTranscriptionBackend
from .cleaner import join_segments
from ..audio.buffer import SampleBuffer
from ..audio.processing import decimate, normalize
from ..errors import TranscriptionError
from ..models.events import TranscriptFragment
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class TranscriptionEngine:
    """Turns drained sample slices into cleaned transcript fragments.

    The model handle is loaded lazily on the first non-empty chunk and reused
    afterwards. Loading and inference share one lock, so concurrent process()
    calls run one at a time and never load the model twice.
    """

    def __init__(self,
                 buffer: SampleBuffer,
                 model_store,
                 result_callback: Optional[Callable[[TranscriptFragment], None]] = None,
                 target_sample_rate: int = 16000):
        """Initialize transcription engine.

        Args:
            buffer: Shared buffer filled by the capture session
            model_store: ModelStore providing load() for the backend
            result_callback: Receives every emitted TranscriptFragment
            target_sample_rate: Sample rate the model expects
        """
        self.buffer = buffer
        self.model_store = model_store
        self.result_callback = result_callback
        self.target_sample_rate = target_sample_rate

        self.model: Optional[AbstractTranscriptionBackend] = None
        self.lock = threading.Lock()
        self.last_result: Optional[TranscriptionResult] = None

        self.stats = {
            "chunks_processed": 0,
            "empty_chunks": 0,
            "fragments_emitted": 0,
            "last_inference_seconds": 0.0,
        }

    @property
    def is_model_loaded(self) -> bool:
        return self.model is not None

    def prepare_samples(self, samples: np.ndarray, sample_rate: int) -> np.ndarray:
        """Decimate to the target rate and normalize amplitude."""
        if sample_rate != self.target_sample_rate:
            before = len(samples)
            samples = decimate(samples, sample_rate, self.target_sample_rate)
            logger.debug(f"Resampled {sample_rate}Hz -> {self.target_sample_rate}Hz "
                         f"({before} -> {len(samples)} samples)")
        return normalize(samples)

    def process(self, sample_rate: int) -> Optional[TranscriptFragment]:
        """Transcribe everything buffered so far.

        Args:
            sample_rate: Rate at which the buffered samples were captured

        Returns:
            The emitted non-final fragment, or None when nothing was emitted

        Raises:
            TranscriptionError: Inference failed
            ModelStoreError: The model could not be found or loaded
        """
        samples = self.buffer.drain()
        if len(samples) == 0:
            logger.debug("No samples to process")
            return None

        logger.debug(f"Processing {len(samples)} samples "
                     f"({len(samples) / sample_rate:.2f}s) at {sample_rate}Hz")
        prepared = self.prepare_samples(samples, sample_rate)

        with self.lock:
            model = self._ensure_model()
            start = time.time()
            try:
                segments = model.transcribe_segments(prepared)
            except TranscriptionError:
                raise
            except Exception as e:
                raise TranscriptionError(f"Inference failed: {e}") from e
            elapsed = time.time() - start

        text = join_segments(segments)
        self.last_result = TranscriptionResult(
            text=text,
            raw_segments=list(segments),
            processing_time=elapsed,
            input_samples=len(samples),
            sample_rate=sample_rate,
            language=getattr(model, "language", "en"),
        )
        self.stats["chunks_processed"] += 1
        self.stats["last_inference_seconds"] = elapsed
        logger.debug(f"Got {len(segments)} segments in {elapsed:.2f}s: {segments!r}")

        if not text:
            self.stats["empty_chunks"] += 1
            logger.debug("No transcription to emit (all segments were empty)")
            return None

        fragment = TranscriptFragment(text=text, is_final=False)
        self._emit(fragment)
        return fragment

    def finish(self, sample_rate: int) -> TranscriptFragment:
        """Flush the remaining samples and emit the terminal fragment.

        The terminal fragment is emitted even if the flush produced no text
        or failed.
        """
        try:
            self.process(sample_rate)
        except Exception as e:
            logger.error(f"Error processing final audio chunk: {e}", exc_info=True)

        final = TranscriptFragment(text="", is_final=True)
        self._emit(final)
        return final

    def _ensure_model(self) -> AbstractTranscriptionBackend:
        """Load the model on first use. Caller holds self.lock."""
        if self.model is None:
            logger.info("Loading Whisper model...")
            self.model = self.model_store.load()
            logger.info("Whisper model ready")
        return self.model

    def invalidate_model(self) -> None:
        """Drop the loaded model so the next chunk reloads it from disk."""
        with self.lock:
            if self.model is not None:
                self.model.cleanup()
                self.model = None
                logger.info("Whisper model unloaded")

    def _emit(self, fragment: TranscriptFragment) -> None:
        self.stats["fragments_emitted"] += 1
        if fragment.is_final:
            logger.info("Emitting final transcription")
        else:
            logger.info(f"Emitting transcription: '{fragment.text}'")

        if self.result_callback:
            try:
                self.result_callback(fragment)
            except Exception as e:
                logger.error(f"Error in result callback: {e}", exc_info=True)

    def get_engine_stats(self) -> Dict[str, Any]:
        stats = self.stats.copy()
        stats["model_loaded"] = self.is_model_loaded
        stats["buffered_samples"] = len(self.buffer)
        return stats
