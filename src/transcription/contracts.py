"""Capability protocols for transcribers and their streaming transports."""

from __future__ import annotations

from typing import Callable, Protocol, Union

from .events import ErrorCallback, ResultCallback

Payload = Union[bytes, str]


class Transcriber(Protocol):
    """Streaming speech-to-text engine driven by a session state machine."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def on_result(self, callback: ResultCallback) -> None: ...

    def on_error(self, callback: ErrorCallback) -> None: ...


class Transport(Protocol):
    """Bidirectional message channel to a streaming ASR service."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def send(self, payload: Payload) -> None: ...

    def on_message(self, callback: Callable[[str], None]) -> None: ...

    def on_error(self, callback: Callable[[Exception], None]) -> None: ...

    def on_close(self, callback: Callable[[], None]) -> None: ...
