from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


class WakeWordConfigurationError(Exception):
    """Raised when wake-word configuration is invalid."""

    pass


@dataclass(frozen=True)
class AutoResetConfig:
    """Re-arms the detector `reset_delay_ms` after each wake."""

    enabled: bool = True
    reset_delay_ms: float = 2000.0

    def __post_init__(self):
        if self.reset_delay_ms < 0:
            raise WakeWordConfigurationError(
                f"reset_delay_ms must not be negative, got: {self.reset_delay_ms}"
            )

    def merged(
        self,
        *,
        enabled: Optional[bool] = None,
        reset_delay_ms: Optional[float] = None,
    ) -> "AutoResetConfig":
        return AutoResetConfig(
            enabled=self.enabled if enabled is None else enabled,
            reset_delay_ms=(
                self.reset_delay_ms if reset_delay_ms is None else reset_delay_ms
            ),
        )

    @classmethod
    def from_settings(cls, settings) -> "AutoResetConfig":
        return cls(enabled=settings.enabled, reset_delay_ms=settings.reset_delay_ms)


@dataclass(frozen=True)
class WakeWordConfig:
    """Wake phrases and the offline recognizer model used to spot them."""

    phrases: tuple[str, ...]
    model_path: str
    sample_rate: int = 16000
    use_partial: bool = True
    validate_paths: bool = True

    def __post_init__(self):
        """Validate configuration on initialization."""
        if not any((phrase or "").strip() for phrase in self.phrases):
            raise WakeWordConfigurationError("at least one wake phrase is required")
        if not self.model_path:
            raise WakeWordConfigurationError("model_path cannot be empty")
        if self.validate_paths and not os.path.isdir(self.model_path):
            raise WakeWordConfigurationError(
                f"model_path is not a directory: {self.model_path}"
            )
        if self.sample_rate <= 0:
            raise WakeWordConfigurationError("sample_rate must be positive")

    @classmethod
    def from_settings(cls, settings) -> "WakeWordConfig":
        return cls(
            phrases=tuple(settings.phrases),
            model_path=settings.model_path,
            sample_rate=settings.sample_rate,
            use_partial=settings.use_partial,
            validate_paths=settings.validate_paths,
        )
