"""cornerspeech: local streaming speech-to-text for the Corner assistant."""

__version__ = "0.1.0"
