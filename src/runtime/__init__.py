"""Runtime wiring of wake-word detection and transcription."""

from .pipeline import (
    WAKE_STATUS_IDLE,
    WAKE_STATUS_LISTENING,
    WAKE_STATUS_WOKE,
    VoicePipeline,
    WakeStatus,
)

__all__ = [
    "VoicePipeline",
    "WAKE_STATUS_IDLE",
    "WAKE_STATUS_LISTENING",
    "WAKE_STATUS_WOKE",
    "WakeStatus",
]
