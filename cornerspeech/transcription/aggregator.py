"""Transcript aggregator that collects published fragments into one utterance.

Subscribes to the transcription topic, accumulates every partial
`TranscriptFragment`, and signals when the terminal fragment arrives. The CLI
uses it to print the running transcript; tests use it to observe the event
stream end to end.
"""

import logging
import threading
from typing import Callable, List, Optional
from pubsub import pub
from ..models.events import TranscriptFragment
from .publisher import TRANSCRIPTION_TOPIC

logger = logging.getLogger(__name__)


class TranscriptAggregator:
    """Aggregates transcript fragments until the final fragment is seen."""

    def __init__(self, topic: str = TRANSCRIPTION_TOPIC,
                 on_fragment: Optional[Callable[[TranscriptFragment], None]] = None):
        """Initialize transcript aggregator.

        Args:
            topic: Topic for transcript fragments
            on_fragment: Optional hook called for every fragment received
        """
        self.topic = topic
        self.on_fragment = on_fragment

        self.fragments: List[TranscriptFragment] = []
        self.lock = threading.RLock()
        self.final_event = threading.Event()

        pub.subscribe(self._on_fragment, topic)
        logger.info(f"TranscriptAggregator subscribed to {topic}")

    def _on_fragment(self, fragment: TranscriptFragment) -> None:
        with self.lock:
            self.fragments.append(fragment)

        if self.on_fragment:
            self.on_fragment(fragment)
        if fragment.is_final:
            self.final_event.set()

    def wait_for_final(self, timeout: Optional[float] = None) -> bool:
        """Block until the terminal fragment arrives."""
        return self.final_event.wait(timeout)

    def get_fragments(self) -> List[TranscriptFragment]:
        with self.lock:
            return self.fragments.copy()

    def get_full_transcription(self) -> str:
        """Join the text of every partial fragment received so far."""
        with self.lock:
            return " ".join(f.text for f in self.fragments if f.text and not f.is_final)

    def reset(self) -> None:
        with self.lock:
            self.fragments.clear()
            self.final_event.clear()

    def shutdown(self) -> None:
        """Unsubscribe from the topic."""
        try:
            pub.unsubscribe(self._on_fragment, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
        logger.info("TranscriptAggregator shutdown complete")
