"""Pytest configuration and fixtures for cornerspeech tests."""

import pytest
import tempfile
import threading
import time
import uuid
import logging
from pathlib import Path
from typing import List
from unittest.mock import Mock, patch
import numpy as np

from cornerspeech.config import CornerSpeechConfig
from cornerspeech.storage.ggml import ModelHeader, pack_model_header
from cornerspeech.transcription.base import AbstractTranscriptionBackend


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Hyper-parameters of ggml-base.en
BASE_EN_HEADER = ModelHeader(
    n_vocab=51864, n_audio_ctx=1500, n_audio_state=512, n_audio_head=8,
    n_audio_layer=6, n_text_ctx=448, n_text_state=512, n_text_head=8,
    n_text_layer=6, n_mels=80, ftype=1,
)


def pytest_configure(config):
    for marker, description in [
        ("unit", "fast isolated tests"),
        ("integration", "multi-component tests with mocked hardware"),
        ("hardware", "tests that need a real microphone"),
        ("slow", "tests that sleep for noticeable time"),
    ]:
        config.addinivalue_line("markers", f"{marker}: {description}")


class FakeBackend(AbstractTranscriptionBackend):
    """Backend returning canned segments; silent input yields a blank-audio marker."""

    def __init__(self, segments=None, fail: bool = False, delay: float = 0.0):
        super().__init__("en")
        self.segments = list(segments or [])
        self.fail = fail
        self.delay = delay
        self.calls: List[np.ndarray] = []
        self.cleaned_up = False

    def transcribe_segments(self, samples: np.ndarray) -> List[str]:
        self.calls.append(np.array(samples, copy=True))
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RuntimeError("simulated inference failure")
        if not np.any(samples):
            return ["[BLANK_AUDIO]"]
        return list(self.segments)

    def initialize(self) -> bool:
        return True

    def cleanup(self) -> None:
        self.cleaned_up = True


class CountingLoader:
    """Model loader that hands out one FakeBackend and counts load calls."""

    def __init__(self, backend: FakeBackend, delay: float = 0.0, fail: bool = False):
        self.backend = backend
        self.delay = delay
        self.fail = fail
        self.paths: List[Path] = []
        self.lock = threading.Lock()

    @property
    def load_count(self) -> int:
        return len(self.paths)

    def __call__(self, path: Path) -> FakeBackend:
        with self.lock:
            self.paths.append(Path(path))
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RuntimeError("simulated load failure")
        return self.backend


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def model_bytes():
    """A file with a valid ggml whisper header followed by filler."""
    return pack_model_header(BASE_EN_HEADER) + b"\x00" * 4096


@pytest.fixture
def write_model(model_bytes):
    """Write a structurally valid (or custom) model file to a path."""
    def _write(path, data: bytes = None) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(model_bytes if data is None else data)
        return path

    return _write


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def make_loader():
    return CountingLoader


@pytest.fixture
def fake_backend():
    return FakeBackend(segments=["[music] Hello  world (laughs)"])


@pytest.fixture
def counting_loader(fake_backend):
    return CountingLoader(fake_backend)


@pytest.fixture
def transcript_topic():
    """Unique pub/sub topic so listeners from other tests never interfere."""
    return f"transcription_test_{uuid.uuid4().hex}"


@pytest.fixture
def test_config(temp_data_dir):
    """Configuration with a temporary model directory and a fast scheduler."""
    return CornerSpeechConfig.from_dict({
        "model": {
            "cache_directory": str(Path(temp_data_dir) / "models"),
            "verify_with_full_load": False,
        },
        "transcription": {
            "chunk_duration_seconds": 0.3,
            "poll_interval_seconds": 0.02,
        },
    })


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware.

    The stream callback passed to open() is captured so tests can deliver
    blocks the way PortAudio would.
    """
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()
        opened = []

        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        def fake_open(**kwargs):
            opened.append(kwargs)
            return mock_stream

        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            "index": 0,
            "name": "Mock Microphone",
            "defaultSampleRate": 16000.0,
            "maxInputChannels": 1,
        }
        mock_pyaudio_instance.is_format_supported.return_value = True
        mock_pyaudio_instance.open.side_effect = fake_open
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        def deliver(samples) -> None:
            """Deliver one block through the captured stream callback."""
            kwargs = opened[-1]
            data = np.asarray(samples).tobytes()
            frames = len(samples) // kwargs["channels"]
            kwargs["stream_callback"](data, frames, {}, 0)

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'opened': opened,
            'deliver': deliver,
        }


@pytest.fixture
def audio_test_data():
    """Generate float32 audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=16000):
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = 0.25 * np.sin(2 * np.pi * 440 * t)
        elif pattern == "noise":
            wave_data = np.random.uniform(-0.5, 0.5, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return wave_data.astype(np.float32)

    return generate_audio


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    def _wait(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait
