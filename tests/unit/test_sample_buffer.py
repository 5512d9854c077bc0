"""Unit tests for SampleBuffer."""

import threading

import numpy as np
import pytest

from cornerspeech.audio.buffer import SampleBuffer


@pytest.mark.unit
class TestSampleBuffer:

    def test_drain_empty_buffer(self):
        buffer = SampleBuffer()

        drained = buffer.drain()

        assert drained.dtype == np.float32
        assert len(drained) == 0

    def test_append_then_drain_preserves_order(self):
        buffer = SampleBuffer()
        buffer.append(np.array([0.1, 0.2], dtype=np.float32))
        buffer.append(np.array([0.3], dtype=np.float32))

        assert len(buffer) == 3
        np.testing.assert_array_equal(buffer.drain(), np.array([0.1, 0.2, 0.3], dtype=np.float32))
        assert len(buffer) == 0
        assert len(buffer.drain()) == 0

    def test_empty_blocks_are_ignored(self):
        buffer = SampleBuffer()
        buffer.append(np.zeros(0, dtype=np.float32))

        assert buffer.get_buffer_stats()["blocks_appended"] == 0

    def test_drained_chunks_reproduce_appended_sequence(self):
        """Concatenating drains in order gives back exactly what was appended."""
        rng = np.random.default_rng(42)
        buffer = SampleBuffer()
        appended = []
        drained = []

        for step in range(200):
            block = rng.uniform(-1, 1, rng.integers(1, 64)).astype(np.float32)
            buffer.append(block)
            appended.append(block)
            if step % 7 == 0:
                drained.append(buffer.drain())
        drained.append(buffer.drain())

        np.testing.assert_array_equal(np.concatenate(drained), np.concatenate(appended))

    def test_concurrent_append_and_drain_loses_nothing(self):
        buffer = SampleBuffer()
        block_count = 2000
        done = threading.Event()
        drained = []

        def producer():
            for i in range(block_count):
                buffer.append(np.full(4, i, dtype=np.float32))
            done.set()

        def consumer():
            while not done.is_set():
                drained.append(buffer.drain())
            drained.append(buffer.drain())

        threads = [threading.Thread(target=producer), threading.Thread(target=consumer)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        result = np.concatenate(drained)
        expected = np.repeat(np.arange(block_count, dtype=np.float32), 4)
        np.testing.assert_array_equal(result, expected)

    def test_clear(self):
        buffer = SampleBuffer()
        buffer.append(np.ones(10, dtype=np.float32))

        buffer.clear()

        assert len(buffer) == 0
        assert buffer.get_buffer_stats()["block_count"] == 0
