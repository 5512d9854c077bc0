"""Transcript publisher module for pub/sub event publishing."""

import logging
from typing import Callable
from pubsub import pub
from ..models.events import TranscriptFragment

logger = logging.getLogger(__name__)

TRANSCRIPTION_TOPIC = "transcription"


class TranscriptPublisher:
    """Publishes transcript fragments using pubsub.pub for the consuming UI."""

    def __init__(self, topic: str = TRANSCRIPTION_TOPIC):
        """Initialize transcript publisher.

        Args:
            topic: Pub/sub topic name for transcript fragments
        """
        self.topic = topic
        logger.info(f"TranscriptPublisher initialized with topic: {topic}")

    def publish_fragment(self, fragment: TranscriptFragment) -> None:
        """Publish a transcript fragment to the pub/sub topic.

        Args:
            fragment: TranscriptFragment to publish
        """
        pub.sendMessage(self.topic, fragment=fragment)
        logger.debug(f"Published fragment (final={fragment.is_final}): '{fragment.text}'")

    def get_callback(self) -> Callable[[TranscriptFragment], None]:
        """Get callback function for TranscriptionEngine to use.

        Returns:
            Callback function that publishes transcript fragments
        """
        return self.publish_fragment
