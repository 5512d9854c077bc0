"""Sample conversion, decimation and normalization helpers."""

import numpy as np
import pyaudio

# Linear mapping of integer PCM to [-1.0, 1.0]
INT16_SCALE = 32768.0
INT32_SCALE = 2147483648.0

FORMAT_NAMES = {
    pyaudio.paFloat32: "float32",
    pyaudio.paInt32: "int32",
    pyaudio.paInt16: "int16",
}

# Tried in order when opening the input stream
SUPPORTED_FORMATS = (pyaudio.paFloat32, pyaudio.paInt32, pyaudio.paInt16)


def to_float_mono(data: bytes, sample_format: int, channels: int = 1) -> np.ndarray:
    """Convert one interleaved PCM block to float32 mono samples.

    Args:
        data: Raw block as delivered by PortAudio
        sample_format: PyAudio format constant of the block
        channels: Number of interleaved channels in the block

    Returns:
        float32 array with one sample per frame
    """
    if sample_format == pyaudio.paFloat32:
        samples = np.frombuffer(data, dtype="<f4").astype(np.float32)
    elif sample_format == pyaudio.paInt32:
        samples = (np.frombuffer(data, dtype="<i4") / INT32_SCALE).astype(np.float32)
    elif sample_format == pyaudio.paInt16:
        samples = (np.frombuffer(data, dtype="<i2") / INT16_SCALE).astype(np.float32)
    else:
        raise ValueError(f"Unsupported sample format: {sample_format}")

    if channels > 1:
        frames = len(samples) // channels
        samples = samples[:frames * channels].reshape(frames, channels).mean(axis=1, dtype=np.float32)
    return samples


def decimation_step(sample_rate: int, target_rate: int = 16000) -> int:
    """Integer decimation step from sample_rate to target_rate, never below 1."""
    return max(1, int(sample_rate) // int(target_rate))


def decimate(samples: np.ndarray, sample_rate: int, target_rate: int = 16000) -> np.ndarray:
    """Downsample by keeping every Nth sample (no anti-alias filter)."""
    if sample_rate == target_rate:
        return samples
    return samples[::decimation_step(sample_rate, target_rate)]


def normalize(samples: np.ndarray) -> np.ndarray:
    """Scale samples so the peak absolute value is 1.0; silence is returned unchanged."""
    if len(samples) == 0:
        return samples
    peak = float(np.max(np.abs(samples)))
    if peak == 0.0 or not np.isfinite(peak):
        return samples
    return (samples / peak).astype(np.float32)
