"""Interface implemented by speech recognition backends."""

from abc import ABC, abstractmethod
from typing import List

import numpy as np


class AbstractTranscriptionBackend(ABC):
    """A loaded acoustic model that turns a sample slice into text segments."""

    def __init__(self, language: str = "en"):
        self.language = language

    @abstractmethod
    def initialize(self) -> bool:
        """Load the model into memory.

        Returns:
            False if the model could not be loaded
        """

    @abstractmethod
    def transcribe_segments(self, samples: np.ndarray) -> List[str]:
        """Run inference over 16 kHz float32 mono samples.

        Args:
            samples: Normalized audio at the backend's native sample rate

        Returns:
            Raw text of every recognized segment, in order
        """

    @abstractmethod
    def cleanup(self) -> None:
        """Release the loaded model."""
