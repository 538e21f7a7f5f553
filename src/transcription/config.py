from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .constants import (
    DEFAULT_ASR_URL,
    DEFAULT_AUTO_STOP_ENABLED,
    DEFAULT_CLOSE_TIMEOUT_MS,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_FRAME_SIZE_BYTES,
    DEFAULT_MAX_DURATION_MS,
    DEFAULT_NO_SPEECH_TIMEOUT_MS,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SEND_INTERVAL_MS,
    DEFAULT_SILENCE_TIMEOUT_MS,
    DEFAULT_VAD_THRESHOLD,
)


class TranscriberConfigurationError(Exception):
    """Raised when transcriber configuration is invalid."""

    pass


@dataclass(frozen=True)
class AutoStopConfig:
    """Session deadlines; a value <= 0 disables that particular timer."""

    enabled: bool = DEFAULT_AUTO_STOP_ENABLED
    silence_timeout_ms: float = DEFAULT_SILENCE_TIMEOUT_MS
    no_speech_timeout_ms: float = DEFAULT_NO_SPEECH_TIMEOUT_MS
    max_duration_ms: float = DEFAULT_MAX_DURATION_MS

    def merged(
        self,
        *,
        enabled: Optional[bool] = None,
        silence_timeout_ms: Optional[float] = None,
        no_speech_timeout_ms: Optional[float] = None,
        max_duration_ms: Optional[float] = None,
    ) -> "AutoStopConfig":
        changes = {
            key: value
            for key, value in (
                ("enabled", enabled),
                ("silence_timeout_ms", silence_timeout_ms),
                ("no_speech_timeout_ms", no_speech_timeout_ms),
                ("max_duration_ms", max_duration_ms),
            )
            if value is not None
        }
        return replace(self, **changes)

    @classmethod
    def from_settings(cls, settings) -> "AutoStopConfig":
        return cls(
            enabled=settings.enabled,
            silence_timeout_ms=settings.silence_timeout_ms,
            no_speech_timeout_ms=settings.no_speech_timeout_ms,
            max_duration_ms=settings.max_duration_ms,
        )


@dataclass(frozen=True)
class TranscriberConfig:
    """Streaming ASR endpoint, credentials and audio framing parameters."""

    app_id: str
    api_key: str
    url: str = DEFAULT_ASR_URL
    sample_rate: int = DEFAULT_SAMPLE_RATE
    frame_size: int = DEFAULT_FRAME_SIZE_BYTES
    vad_threshold: float = DEFAULT_VAD_THRESHOLD
    send_interval_ms: float = DEFAULT_SEND_INTERVAL_MS
    close_timeout_ms: float = DEFAULT_CLOSE_TIMEOUT_MS
    connect_timeout_ms: float = DEFAULT_CONNECT_TIMEOUT_MS

    def __post_init__(self):
        """Validate configuration on initialization."""
        if not self.app_id:
            raise TranscriberConfigurationError("app_id cannot be empty")
        if not self.api_key:
            raise TranscriberConfigurationError("api_key cannot be empty")
        if not self.url.startswith(("ws://", "wss://")):
            raise TranscriberConfigurationError(
                f"url must be a ws:// or wss:// URL, got: {self.url}"
            )
        if self.sample_rate <= 0:
            raise TranscriberConfigurationError("sample_rate must be positive")
        if self.frame_size <= 0 or self.frame_size % 2:
            raise TranscriberConfigurationError(
                f"frame_size must be a positive even byte count, got: {self.frame_size}"
            )
        if self.vad_threshold < 0:
            raise TranscriberConfigurationError("vad_threshold must not be negative")
        if self.send_interval_ms <= 0:
            raise TranscriberConfigurationError("send_interval_ms must be positive")
        if self.close_timeout_ms < 0:
            raise TranscriberConfigurationError("close_timeout_ms must not be negative")
        if self.connect_timeout_ms <= 0:
            raise TranscriberConfigurationError("connect_timeout_ms must be positive")

    def __repr__(self) -> str:
        return (
            f"TranscriberConfig(app_id={self.app_id!r}, api_key='***', url={self.url!r}, "
            f"sample_rate={self.sample_rate}, frame_size={self.frame_size})"
        )

    @classmethod
    def from_settings(cls, settings, *, app_id: str, api_key: str) -> "TranscriberConfig":
        """Combine `[transcriber]` settings with environment-provided credentials.

        Raises:
            TranscriberConfigurationError: If credentials are missing or values are invalid.
        """
        return cls(
            app_id=app_id,
            api_key=api_key,
            url=settings.url,
            sample_rate=settings.sample_rate,
            frame_size=settings.frame_size,
            vad_threshold=settings.vad_threshold,
            send_interval_ms=settings.send_interval_ms,
            close_timeout_ms=settings.close_timeout_ms,
            connect_timeout_ms=settings.connect_timeout_ms,
        )
