"""Protocols and payloads shared between capture streams and their consumers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol


@dataclass(frozen=True)
class AudioChunk:
    """Mono PCM16 audio at the target rate with its normalized RMS loudness."""
    pcm: bytes
    rms: float
    timestamp_ms: float


ChunkCallback = Callable[[AudioChunk], None]
FailureCallback = Callable[[Exception], None]


class CaptureStream(Protocol):
    """One open microphone stream; `start` raises `AudioResourceError`."""

    @property
    def active(self) -> bool: ...

    def start(self) -> None: ...

    def close(self) -> None: ...


class StreamFactory(Protocol):
    """Creates a capture stream delivering chunks on the event loop."""

    def __call__(
        self,
        on_chunk: ChunkCallback,
        on_failure: FailureCallback,
    ) -> CaptureStream: ...


class AudioSource(Protocol):
    """Subscription point for consumers of shared microphone audio."""

    def attach(self, name: str, callback: ChunkCallback) -> None: ...

    def detach(self, name: str) -> None: ...
