"""RMS loudness helpers and the energy gate used before streaming audio."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

_PCM16_SCALE = 32768.0


def float_rms(samples: np.ndarray) -> float:
    """RMS of float samples in [-1, 1]."""
    if samples.size == 0:
        return 0.0
    data = samples.astype(np.float64, copy=False)
    return float(np.sqrt(np.mean(data * data)))


def pcm16_rms(pcm: bytes) -> float:
    """RMS of little-endian PCM16 bytes, scaled to [0, 1]."""
    usable = len(pcm) - (len(pcm) % 2)
    if usable <= 0:
        return 0.0
    samples = np.frombuffer(pcm[:usable], dtype="<i2")
    return float_rms(samples / _PCM16_SCALE)


class VoiceActivityGate:
    """Energy-based voice activity check on normalized RMS values."""

    def __init__(self, threshold: float, logger: Optional[logging.Logger] = None):
        if threshold < 0:
            raise ValueError("threshold must not be negative")
        self._threshold = threshold
        self._logger = logger or logging.getLogger("audio.vad")
        self._open = False

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def is_open(self) -> bool:
        return self._open

    def update(self, rms: float) -> bool:
        """Record the latest loudness and return whether speech is present."""
        is_speech = rms >= self._threshold
        if is_speech != self._open:
            self._logger.debug(
                "Voice activity %s (rms=%.4f threshold=%.4f)",
                "started" if is_speech else "stopped",
                rms,
                self._threshold,
            )
        self._open = is_speech
        return is_speech

    def reset(self) -> None:
        self._open = False
