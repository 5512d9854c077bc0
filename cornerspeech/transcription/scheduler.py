"""Periodic background task that drives the transcription engine while recording."""

import time
import logging
import threading
from enum import Enum
from typing import Optional, Callable

from ..audio.state import RecordingState
from ..errors import SchedulerError

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class ChunkScheduler:
    """Polls the recording flag and calls engine.process() on a fixed cadence."""

    def __init__(self,
                 engine,
                 recording_state: RecordingState,
                 chunk_duration: float = 3.0,
                 poll_interval: float = 0.1,
                 error_callback: Optional[Callable[[Exception], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize chunk scheduler.

        Args:
            engine: TranscriptionEngine to drive
            recording_state: Loop runs while this flag is active
            chunk_duration: Seconds between process() calls
            poll_interval: Seconds slept between flag checks
            error_callback: Receives per-chunk exceptions (after logging)
            clock: Monotonic time source
        """
        self.engine = engine
        self.recording_state = recording_state
        self.chunk_duration = chunk_duration
        self.poll_interval = poll_interval
        self.error_callback = error_callback
        self.clock = clock

        self.state = SchedulerState.IDLE
        self.thread: Optional[threading.Thread] = None
        self.sample_rate = 0
        self.last_process_time = 0.0

        self.stats = {
            "ticks": 0,
            "failed_chunks": 0,
            "last_error": None,
        }

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def start(self, sample_rate: int) -> None:
        """Spawn the background loop for a stream captured at sample_rate."""
        if self.is_running:
            raise SchedulerError("Chunk scheduler already running")

        self.sample_rate = sample_rate
        self.last_process_time = self.clock()
        self.state = SchedulerState.RUNNING

        self.thread = threading.Thread(target=self._run, daemon=True)
        self.thread.name = "ChunkSchedulerThread"
        self.thread.start()
        logger.info(f"Chunk scheduler started: every {self.chunk_duration}s at {sample_rate}Hz")

    def _run(self) -> None:
        """Internal method: poll loop in background thread."""
        try:
            while self.recording_state.is_active:
                now = self.clock()
                if now - self.last_process_time >= self.chunk_duration:
                    self.last_process_time = now
                    self._tick()
                time.sleep(self.poll_interval)
        finally:
            logger.debug("Chunk scheduler loop exited")

    def _tick(self) -> None:
        self.stats["ticks"] += 1
        try:
            self.engine.process(self.sample_rate)
        except Exception as e:
            self.stats["failed_chunks"] += 1
            self.stats["last_error"] = str(e)
            logger.error(f"Error processing audio chunk: {e}", exc_info=True)
            if self.error_callback:
                try:
                    self.error_callback(e)
                except Exception as callback_error:
                    logger.error(f"Error in scheduler error callback: {callback_error}")

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop to exit after the recording flag was cleared.

        In-flight inference is allowed to complete.

        Returns:
            True if the thread terminated within timeout
        """
        if self.recording_state.is_active:
            raise SchedulerError("Recording flag must be cleared before stopping the scheduler")

        stopped = True
        if self.thread is not None:
            self.thread.join(timeout)
            if self.thread.is_alive():
                logger.warning("Chunk scheduler thread did not stop cleanly")
                stopped = False
            else:
                self.thread = None

        if stopped:
            self.state = SchedulerState.IDLE
            logger.info(f"Chunk scheduler stopped after {self.stats['ticks']} ticks "
                        f"({self.stats['failed_chunks']} failed)")
        return stopped

    def get_stats(self) -> dict:
        stats = self.stats.copy()
        stats["state"] = self.state.value
        return stats
