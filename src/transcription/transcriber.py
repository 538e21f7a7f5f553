"""Microphone-to-websocket streaming transcriber."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from audio import (
    AudioChunk,
    AudioFramePacer,
    AudioSource,
    FrameAccumulator,
    VoiceActivityGate,
)
from scheduling import AsyncioScheduler, Scheduler

from .config import TranscriberConfig
from .contracts import Transport
from .errors import MessageParseError, TransportError
from .events import ErrorCallback, ResultCallback, TranscriptionResult
from .transport import RealtimeASRTransport, ResultAssembler

TransportFactory = Callable[[TranscriberConfig], Transport]

DEFAULT_SUBSCRIBER_NAME = "transcriber"


class StreamingTranscriber:
    """Streams voiced microphone frames to a realtime ASR service.

    Frames are forwarded only while the energy gate is open, except for the
    final frame which is always sent ahead of the end-of-stream marker.
    """

    def __init__(
        self,
        config: TranscriberConfig,
        audio_source: AudioSource,
        *,
        transport_factory: Optional[TransportFactory] = None,
        scheduler: Optional[Scheduler] = None,
        subscriber_name: str = DEFAULT_SUBSCRIBER_NAME,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._audio_source = audio_source
        self._logger = logger or logging.getLogger("transcription.transcriber")
        self._transport_factory = transport_factory or (
            lambda cfg: RealtimeASRTransport(cfg, logger=self._logger.getChild("transport"))
        )
        self._scheduler = scheduler or AsyncioScheduler(logger=self._logger.getChild("timers"))
        self._subscriber_name = subscriber_name

        self._assembler = ResultAssembler()
        self._gate = VoiceActivityGate(
            config.vad_threshold,
            logger=self._logger.getChild("vad"),
        )
        self._accumulator = FrameAccumulator(config.frame_size)
        self._transport: Optional[Transport] = None
        self._pacer: Optional[AudioFramePacer] = None
        self._stopping = False
        self._abort_task: Optional[asyncio.Task[None]] = None

        self._result_callback: Optional[ResultCallback] = None
        self._error_callback: Optional[ErrorCallback] = None

    @property
    def is_streaming(self) -> bool:
        return self._transport is not None and not self._stopping

    def on_result(self, callback: ResultCallback) -> None:
        self._result_callback = callback

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callback = callback

    async def start(self) -> None:
        if self._transport is not None:
            self._logger.debug("Transcriber already connected")
            return

        self._assembler.reset()
        self._gate.reset()
        self._accumulator.clear()
        self._stopping = False

        transport = self._transport_factory(self._config)
        transport.on_message(lambda raw: self._on_message(transport, raw))
        transport.on_error(lambda error: self._on_transport_error(transport, error))
        transport.on_close(lambda: self._on_transport_close(transport))
        self._transport = transport
        self._pacer = AudioFramePacer(
            self._scheduler,
            transport.send,
            interval_ms=self._config.send_interval_ms,
            logger=self._logger.getChild("pacer"),
        )

        try:
            await transport.start()
        except Exception:
            if self._transport is transport:
                await self._teardown()
            raise

        if self._transport is not transport:
            self._logger.info("Transcriber stopped while connecting; closing connection")
            await transport.stop()
            return
        if self._stopping:
            return

        try:
            self._audio_source.attach(self._subscriber_name, self._on_audio_chunk)
        except Exception:
            await self._teardown()
            raise
        self._logger.info("Transcriber streaming started")

    async def stop(self) -> None:
        transport = self._transport
        if transport is None:
            if self._abort_task is not None:
                await asyncio.shield(self._abort_task)
            return
        if self._stopping:
            self._logger.debug("Transcriber is already stopping")
            return
        self._stopping = True

        self._audio_source.detach(self._subscriber_name)
        pacer = self._pacer
        if pacer is not None:
            last_frame = self._accumulator.flush()
            if last_frame.data:
                pacer.push(last_frame)
            pacer.finish()
            await pacer.wait_drained(timeout=self._config.close_timeout_ms / 1000.0)
        if self._transport is transport:
            await self._teardown()
        self._logger.info("Transcriber streaming stopped")

    def _on_audio_chunk(self, chunk: AudioChunk) -> None:
        if self._stopping or self._pacer is None:
            return
        is_speech = self._gate.update(chunk.rms)
        for frame in self._accumulator.push(chunk.pcm):
            if is_speech:
                self._pacer.push(frame)

    def _on_message(self, transport: Transport, raw: str) -> None:
        if transport is not self._transport:
            self._logger.debug("Ignoring message from a closed ASR connection")
            return
        try:
            results = self._assembler.feed(raw)
        except MessageParseError as error:
            self._logger.warning("Dropping malformed ASR message: %s", error)
            return
        except TransportError as error:
            self._fail(transport, error)
            return
        for result in results:
            self._emit_result(result)

    def _on_transport_error(self, transport: Transport, error: Exception) -> None:
        self._fail(transport, error)

    def _on_transport_close(self, transport: Transport) -> None:
        if transport is not self._transport or self._stopping:
            return
        self._fail(transport, TransportError("ASR service closed the connection"))

    def _fail(self, transport: Transport, error: Exception) -> None:
        if transport is not self._transport:
            self._logger.debug("Ignoring error from a closed ASR connection: %s", error)
            return
        if self._stopping:
            self._logger.debug("Ignoring transcriber error during shutdown: %s", error)
            return
        self._logger.error("Transcriber aborted: %s", error)
        self._release()
        task = asyncio.create_task(self._close_aborted(transport))
        self._abort_task = task
        task.add_done_callback(self._clear_abort_task)
        if self._error_callback is not None:
            try:
                self._error_callback(error)
            except Exception:
                self._logger.error("Transcriber error callback failed", exc_info=True)

    async def _close_aborted(self, transport: Transport) -> None:
        try:
            await transport.stop()
        except Exception as error:
            self._logger.warning("Error closing aborted ASR connection: %s", error)

    def _clear_abort_task(self, task: asyncio.Task[None]) -> None:
        if self._abort_task is task:
            self._abort_task = None

    def _release(self) -> Optional[Transport]:
        """Drop the microphone, pacer and transport; returns the transport to close."""
        self._audio_source.detach(self._subscriber_name)
        if self._pacer is not None:
            self._pacer.cancel()
        transport = self._transport
        self._transport = None
        self._pacer = None
        self._accumulator.clear()
        self._gate.reset()
        self._stopping = False
        return transport

    async def _teardown(self) -> None:
        transport = self._release()
        if transport is not None:
            await transport.stop()

    def _emit_result(self, result: TranscriptionResult) -> None:
        if self._result_callback is None:
            return
        try:
            self._result_callback(result)
        except Exception:
            self._logger.error("Transcriber result callback failed", exc_info=True)
