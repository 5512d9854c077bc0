"""Event models published to the consuming UI."""

from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class TranscriptFragment:
    """One unit of transcript output, partial or final."""
    text: str
    is_final: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DownloadProgress:
    """Cumulative model download progress in percent (0-100)."""
    progress: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
