"""Download progress publisher module for pub/sub event publishing."""

import logging
from typing import Callable
from pubsub import pub
from ..models.events import DownloadProgress

logger = logging.getLogger(__name__)

DOWNLOAD_PROGRESS_TOPIC = "whisper-download-progress"


class DownloadProgressPublisher:
    """Publishes model download progress using pubsub.pub."""

    def __init__(self, topic: str = DOWNLOAD_PROGRESS_TOPIC):
        self.topic = topic
        logger.info(f"DownloadProgressPublisher initialized with topic: {topic}")

    def publish_progress(self, progress: float) -> None:
        """Publish cumulative download progress (0-100)."""
        pub.sendMessage(self.topic, progress=DownloadProgress(progress=progress))

    def get_callback(self) -> Callable[[float], None]:
        return self.publish_progress
