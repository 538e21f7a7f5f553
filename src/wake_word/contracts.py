"""Recognizer capability consumed by the wake-word detector."""

from __future__ import annotations

from typing import Protocol

from matching import TextEvent


class Recognizer(Protocol):
    """Streaming speech recognizer turning PCM16 audio into text events."""

    def accept_audio(self, pcm: bytes, timestamp_ms: float) -> list[TextEvent]: ...

    def reset(self) -> None: ...
