"""whisper.cpp transcription backend (via pywhispercpp)."""

import time
import logging
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
from pywhispercpp.model import Model

from .base import AbstractTranscriptionBackend
from ..errors import ModelLoadError, TranscriptionError

logger = logging.getLogger(__name__)

# pywhispercpp sampling strategy constant for greedy decoding
GREEDY_SAMPLING = 0
# Single candidate per decode, also on temperature fallback
GREEDY_PARAMS = {"best_of": 1}


class WhisperCppBackend(AbstractTranscriptionBackend):
    """Offline whisper.cpp backend using a local ggml model file."""

    def __init__(self,
                 model_path: Union[str, Path],
                 language: str = "en",
                 n_threads: int = 4):
        """Initialize whisper.cpp backend.

        Args:
            model_path: Path to a ggml whisper model file
            language: Fixed decoding language
            n_threads: Threads used by whisper.cpp for inference
        """
        super().__init__(language)
        self.model_path = Path(model_path)
        self.n_threads = n_threads
        self.model: Optional[Model] = None
        self.load_time = 0.0

    @classmethod
    def from_file(cls, model_path: Union[str, Path], language: str = "en",
                  n_threads: int = 4) -> "WhisperCppBackend":
        """Load a backend from a model file, raising ModelLoadError on failure."""
        backend = cls(model_path, language=language, n_threads=n_threads)
        if not backend.initialize():
            raise ModelLoadError(f"Failed to load Whisper model: {model_path}")
        return backend

    def initialize(self) -> bool:
        """Load the model into memory."""
        if self.model is not None:
            return True

        logger.info(f"Loading Whisper model from {self.model_path}...")
        start = time.time()
        try:
            self.model = Model(
                str(self.model_path),
                params_sampling_strategy=GREEDY_SAMPLING,
                greedy=dict(GREEDY_PARAMS),
                n_threads=self.n_threads,
                print_realtime=False,
                print_progress=False,
                print_timestamps=False,
                print_special=False,
            )
        except Exception as e:
            logger.error(f"Failed to load Whisper model: {e}")
            self.model = None
            return False

        self.load_time = time.time() - start
        logger.info(f"Whisper model loaded successfully in {self.load_time:.2f}s")
        return True

    def transcribe_segments(self, samples: np.ndarray) -> List[str]:
        if self.model is None:
            raise TranscriptionError("Whisper model is not loaded")

        try:
            segments = self.model.transcribe(
                np.ascontiguousarray(samples, dtype=np.float32),
                language=self.language,
                translate=False,
            )
        except Exception as e:
            raise TranscriptionError(f"Whisper inference failed: {e}") from e

        return [segment.text for segment in segments]

    def cleanup(self) -> None:
        self.model = None
