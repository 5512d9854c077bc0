"""Strips non-speech annotations from whisper segment text."""

import re
from typing import Iterable, List

# Asides whisper emits for non-speech audio: [music], (laughs), ♪ la la ♪, *cough*
NOISE_PATTERNS = [
    re.compile(r"\[.*?\]"),
    re.compile(r"\(.*?\)"),
    re.compile(r"♪.*?♪"),
    re.compile(r"\*.*?\*"),
]
WHITESPACE = re.compile(r"\s+")


def clean_segment_text(text: str) -> str:
    """Remove bracketed/parenthetical/note/asterisk asides and collapse whitespace."""
    cleaned = text.strip()
    for pattern in NOISE_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    return WHITESPACE.sub(" ", cleaned).strip()


def clean_segments(segments: Iterable[str]) -> List[str]:
    """Clean every segment, dropping the ones left empty."""
    cleaned = (clean_segment_text(segment) for segment in segments)
    return [segment for segment in cleaned if segment]


def join_segments(segments: Iterable[str]) -> str:
    """Clean segments and join the survivors with single spaces."""
    return " ".join(clean_segments(segments)).strip()
