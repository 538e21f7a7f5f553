"""Sample format conversion for captured microphone audio."""

from __future__ import annotations

import numpy as np


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Clip float samples to [-1, 1] and encode them as little-endian PCM16."""
    if samples.size == 0:
        return b""
    clipped = np.clip(samples.astype(np.float32, copy=False), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return scaled.astype("<i2").tobytes()


def downmix(samples: np.ndarray) -> np.ndarray:
    """Average interleaved channels of a (frames, channels) block to mono."""
    if samples.ndim == 1:
        return samples
    return samples.mean(axis=1, dtype=np.float32)


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Downsample by averaging each output window of source samples.

    Rates that are equal return the input unchanged; upsampling is not
    supported since capture is always opened at or above the target rate.
    """
    if source_rate <= 0 or target_rate <= 0:
        raise ValueError("sample rates must be positive")
    if source_rate == target_rate or samples.size == 0:
        return samples
    if target_rate > source_rate:
        raise ValueError(
            f"cannot upsample from {source_rate} Hz to {target_rate} Hz"
        )

    ratio = source_rate / target_rate
    out_length = int(samples.size // ratio)
    if out_length == 0:
        return np.zeros(0, dtype=np.float32)

    bounds = np.ceil(np.arange(out_length + 1) * ratio).astype(np.int64)
    bounds[-1] = min(bounds[-1], samples.size)
    sums = np.add.reduceat(samples.astype(np.float64), bounds[:-1])
    counts = np.diff(bounds)
    counts[counts == 0] = 1
    return (sums / counts).astype(np.float32)
