"""Thread-shared sample buffer between the capture callback and the transcription engine."""

import time
import logging
import threading
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)


class SampleBuffer:
    """Growable buffer of mono float32 samples.

    The capture callback appends blocks; the engine drains everything at once
    by swapping the block list under the lock, so appends never wait on the
    concatenation or on inference.
    """

    def __init__(self):
        self.blocks: List[np.ndarray] = []
        self.lock = threading.Lock()
        self.total_samples = 0
        self.block_counter = 0
        self.last_append_time: Optional[float] = None

    def append(self, samples: np.ndarray) -> None:
        """Append a block of float32 mono samples."""
        if samples is None or len(samples) == 0:
            return

        block = np.asarray(samples, dtype=np.float32)
        with self.lock:
            self.blocks.append(block)
            self.total_samples += len(block)
            self.block_counter += 1
            self.last_append_time = time.time()

    def drain(self) -> np.ndarray:
        """Take ownership of all buffered samples, leaving the buffer empty.

        Returns:
            The buffered samples in append order (possibly empty)
        """
        with self.lock:
            blocks = self.blocks
            self.blocks = []
            self.total_samples = 0

        if not blocks:
            return np.zeros(0, dtype=np.float32)
        if len(blocks) == 1:
            return blocks[0]

        drained = np.concatenate(blocks)
        logger.debug(f"Drained {len(blocks)} blocks ({len(drained)} samples)")
        return drained

    def __len__(self) -> int:
        with self.lock:
            return self.total_samples

    def get_buffer_stats(self) -> dict:
        """Get buffer statistics."""
        with self.lock:
            return {
                "block_count": len(self.blocks),
                "total_samples": self.total_samples,
                "blocks_appended": self.block_counter,
                "last_append_time": self.last_append_time,
            }

    def clear(self) -> None:
        """Clear the buffer."""
        with self.lock:
            self.blocks = []
            self.total_samples = 0
            logger.debug("Sample buffer cleared")
