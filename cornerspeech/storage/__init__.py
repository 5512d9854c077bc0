"""Model storage module."""

from .model_store import ModelStore
from .progress_pub import DownloadProgressPublisher, DOWNLOAD_PROGRESS_TOPIC

__all__ = [
    "ModelStore",
    "DownloadProgressPublisher",
    "DOWNLOAD_PROGRESS_TOPIC",
]
