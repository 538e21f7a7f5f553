"""Rate-limited delivery of audio frames to a streaming transport."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Optional, Union

from scheduling import Scheduler, TimerHandle

from .framing import AudioFrame

END_OF_STREAM_MARKER = '{"end": true}'
DEFAULT_SEND_INTERVAL_MS = 40.0

Payload = Union[bytes, str]
PayloadSink = Callable[[Payload], None]


class AudioFramePacer:
    """Releases one queued payload to `sink` every `interval_ms`.

    Payloads are sent in FIFO order and never closer together than
    `interval_ms`; a payload queued after an idle gap goes out at once.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        sink: PayloadSink,
        *,
        interval_ms: float = DEFAULT_SEND_INTERVAL_MS,
        end_marker: str = END_OF_STREAM_MARKER,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be greater than zero")
        self._scheduler = scheduler
        self._sink = sink
        self._interval_ms = interval_ms
        self._end_marker = end_marker
        self._logger = logger or logging.getLogger("audio.pacer")

        self._queue: deque[Payload] = deque()
        self._timer: Optional[TimerHandle] = None
        self._finished = False
        self._drained: Optional[asyncio.Event] = None
        self._last_sent_ms: Optional[float] = None

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def finished(self) -> bool:
        return self._finished

    def push(self, frame: AudioFrame) -> None:
        if self._finished:
            self._logger.warning("Dropping audio frame pushed after end of stream")
            return
        self._enqueue(bytes(frame.data))

    def finish(self) -> None:
        """Queue the end-of-stream marker; later frames are rejected."""
        if self._finished:
            return
        self._finished = True
        self._enqueue(self._end_marker)

    async def wait_drained(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued payload was sent; False on timeout."""
        if not self._queue:
            return True
        if self._drained is None:
            self._drained = asyncio.Event()
        try:
            await asyncio.wait_for(self._drained.wait(), timeout)
        except asyncio.TimeoutError:
            self._logger.warning(
                "Audio pacer not drained after %.2fs (%d payloads left)",
                timeout or 0.0,
                len(self._queue),
            )
            return False
        return True

    def cancel(self) -> None:
        """Drop queued payloads and stop the pacing timer."""
        dropped = len(self._queue)
        self._queue.clear()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if dropped:
            self._logger.debug("Audio pacer cancelled with %d payloads queued", dropped)
        self._signal_drained()

    def _enqueue(self, payload: Payload) -> None:
        self._queue.append(payload)
        if self._timer is not None:
            return
        wait_ms = 0.0
        if self._last_sent_ms is not None:
            wait_ms = self._last_sent_ms + self._interval_ms - self._scheduler.now_ms()
        if wait_ms > 0:
            self._timer = self._scheduler.schedule(wait_ms, self._release)
        else:
            self._release()

    def _release(self) -> None:
        self._timer = None
        if not self._queue:
            self._signal_drained()
            return

        payload = self._queue.popleft()
        self._last_sent_ms = self._scheduler.now_ms()
        try:
            self._sink(payload)
        except Exception:
            self._logger.error("Audio sink failed; dropping pending frames", exc_info=True)
            self._queue.clear()
            self._signal_drained()
            return

        if self._queue:
            self._timer = self._scheduler.schedule(self._interval_ms, self._release)
        else:
            self._signal_drained()

    def _signal_drained(self) -> None:
        if self._drained is not None:
            self._drained.set()
            self._drained = None
