"""Exceptions raised by audio capture and resource management."""

from __future__ import annotations

from typing import Literal

AudioResourceErrorKind = Literal["permission-denied", "device-unavailable", "unknown"]


class AudioConfigurationError(Exception):
    """Raised when audio capture configuration is invalid."""

    pass


class AudioResourceError(Exception):
    """Raised when the capture device cannot be opened or is lost."""

    def __init__(self, message: str, *, kind: AudioResourceErrorKind = "unknown"):
        super().__init__(message)
        self.kind = kind


def classify_device_error(error: BaseException) -> AudioResourceErrorKind:
    """Map a PortAudio/OS failure onto a coarse, user-actionable kind."""
    if isinstance(error, PermissionError):
        return "permission-denied"
    message = str(error).lower()
    if "permission" in message or "not permitted" in message or "access denied" in message:
        return "permission-denied"
    if (
        "no default input device" in message
        or "invalid device" in message
        or "device unavailable" in message
        or "no such device" in message
        or "error querying device" in message
    ):
        return "device-unavailable"
    return "unknown"
