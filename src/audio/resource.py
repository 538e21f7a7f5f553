"""Single shared microphone stream fanned out to named subscribers."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from scheduling import Scheduler, TimerHandle

from .contracts import AudioChunk, CaptureStream, ChunkCallback, StreamFactory
from .errors import AudioResourceError

ErrorCallback = Callable[[Exception], None]


class MicrophoneHub:
    """Owns the one capture stream and shares it between consumers.

    The stream opens with the first subscriber and closes with the last.
    Whenever the stream is replaced the previous one is closed first, so at
    most one device handle is ever held.
    """

    def __init__(
        self,
        stream_factory: StreamFactory,
        *,
        scheduler: Optional[Scheduler] = None,
        health_check_interval_ms: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._stream_factory = stream_factory
        self._scheduler = scheduler
        self._health_check_interval_ms = health_check_interval_ms
        self._logger = logger or logging.getLogger("audio.hub")

        self._stream: Optional[CaptureStream] = None
        self._subscribers: dict[str, ChunkCallback] = {}
        self._error_callbacks: list[ErrorCallback] = []
        self._health_timer: Optional[TimerHandle] = None
        self._closed = False

    @property
    def subscribers(self) -> tuple[str, ...]:
        return tuple(self._subscribers)

    @property
    def is_open(self) -> bool:
        return self._stream is not None and self._stream.active

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def attach(self, name: str, callback: ChunkCallback) -> None:
        """Subscribe `name`; opens the device when it is the first subscriber.

        Raises:
            AudioResourceError: If the device cannot be opened.
        """
        replacing = name in self._subscribers
        self._subscribers[name] = callback
        if replacing:
            self._logger.debug("Replaced audio subscriber: %s", name)
            return

        self._logger.debug("Audio subscriber attached: %s", name)
        if self.is_open:
            return
        try:
            self._reopen()
        except AudioResourceError:
            self._subscribers.pop(name, None)
            raise
        self._schedule_health_check()

    def detach(self, name: str) -> None:
        if self._subscribers.pop(name, None) is None:
            return
        self._logger.debug("Audio subscriber detached: %s", name)
        if not self._subscribers:
            self._release()
            self._cancel_health_check()

    def ensure_resources_healthy(self) -> bool:
        """Reopen a dropped stream while subscribers remain; idempotent."""
        if self._closed or not self._subscribers or self.is_open:
            return True
        self._logger.warning("Microphone stream is not active; reopening")
        try:
            self._reopen()
        except AudioResourceError as error:
            self._logger.error("Failed to reopen microphone: %s", error)
            self._emit_error(error)
            return False
        return True

    def notify_device_change(self) -> None:
        """Force a reopen so a newly selected default device is picked up."""
        if not self._subscribers:
            return
        self._logger.info("Audio device change reported; reopening microphone")
        self._release()
        self.ensure_resources_healthy()

    def close(self) -> None:
        self._closed = True
        self._cancel_health_check()
        self._subscribers.clear()
        self._release()

    def _reopen(self) -> None:
        self._release()
        stream = self._stream_factory(self._dispatch, self._on_stream_failure)
        stream.start()
        self._stream = stream
        self._logger.info("Microphone stream opened")

    def _release(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.close()
        except Exception as error:
            self._logger.warning("Error closing microphone stream: %s", error)
        else:
            self._logger.info("Microphone stream closed")

    def _dispatch(self, chunk: AudioChunk) -> None:
        for name, callback in list(self._subscribers.items()):
            try:
                callback(chunk)
            except Exception:
                self._logger.error(
                    "Audio subscriber %s failed to handle chunk", name, exc_info=True
                )

    def _on_stream_failure(self, error: Exception) -> None:
        self._logger.warning("Microphone stream failed: %s", error)
        self._release()
        self._emit_error(error)

    def _emit_error(self, error: Exception) -> None:
        for callback in list(self._error_callbacks):
            try:
                callback(error)
            except Exception:
                self._logger.error("Audio error callback failed", exc_info=True)

    def _schedule_health_check(self) -> None:
        if (
            self._scheduler is None
            or self._health_check_interval_ms <= 0
            or self._health_timer is not None
        ):
            return
        self._health_timer = self._scheduler.schedule(
            self._health_check_interval_ms,
            self._run_health_check,
        )

    def _run_health_check(self) -> None:
        self._health_timer = None
        if not self._subscribers:
            return
        self.ensure_resources_healthy()
        self._schedule_health_check()

    def _cancel_health_check(self) -> None:
        if self._health_timer is not None:
            self._health_timer.cancel()
            self._health_timer = None
