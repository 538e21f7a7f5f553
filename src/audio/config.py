from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import AudioConfigurationError


@dataclass(frozen=True)
class AudioConfig:
    """Microphone capture parameters shared by detector and transcriber."""

    device_index: Optional[int] = None
    capture_sample_rate: int = 16000
    target_sample_rate: int = 16000
    block_size: int = 1024
    channels: int = 1
    health_check_interval_ms: float = 5000.0

    def __post_init__(self):
        """Validate configuration on initialization."""
        if self.device_index is not None and self.device_index < 0:
            raise AudioConfigurationError(
                f"device_index must be >= 0, got: {self.device_index}"
            )
        if self.capture_sample_rate <= 0:
            raise AudioConfigurationError("capture_sample_rate must be positive")
        if self.target_sample_rate <= 0:
            raise AudioConfigurationError("target_sample_rate must be positive")
        if self.capture_sample_rate < self.target_sample_rate:
            raise AudioConfigurationError(
                f"capture_sample_rate ({self.capture_sample_rate}) cannot be lower "
                f"than target_sample_rate ({self.target_sample_rate})"
            )
        if self.block_size <= 0:
            raise AudioConfigurationError("block_size must be positive")
        if self.channels < 1:
            raise AudioConfigurationError("channels must be >= 1")
        if self.health_check_interval_ms < 0:
            raise AudioConfigurationError("health_check_interval_ms must not be negative")

    @classmethod
    def from_settings(cls, settings, *, target_sample_rate: int) -> "AudioConfig":
        return cls(
            device_index=settings.device_index,
            capture_sample_rate=settings.capture_sample_rate,
            target_sample_rate=target_sample_rate,
            block_size=settings.block_size,
            channels=settings.channels,
            health_check_interval_ms=settings.health_check_interval_ms,
        )
