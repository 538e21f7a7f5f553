"""Wake-word detector: microphone audio -> recognizer text -> phrase matcher."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from audio import AudioChunk, AudioSource
from matching import MatcherConfig, TextEvent, WakeDecision, WakePhraseMatcher
from scheduling import AsyncioScheduler, Scheduler

from .auto_reset import AutoResetScheduler
from .config import AutoResetConfig, WakeWordConfigurationError
from .contracts import Recognizer
from .events import EventPublisher, WakeWordDetectedEvent, WakeWordErrorEvent

WakeCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]
RecognizerFactory = Callable[[], Recognizer]

DEFAULT_SUBSCRIBER_NAME = "wake_word"
DEFAULT_AUDIO_QUEUE_SIZE = 64


class WakeWordDetector:
    """Listens for configured wake phrases and reports each wake once.

    Without an audio source the detector is transcript driven: callers feed
    text through `inspect()` or `handle_text_event()`.
    """

    def __init__(
        self,
        *,
        recognizer_factory: Optional[RecognizerFactory] = None,
        audio_source: Optional[AudioSource] = None,
        scheduler: Optional[Scheduler] = None,
        matcher: Optional[WakePhraseMatcher] = None,
        matcher_config: Optional[MatcherConfig] = None,
        auto_reset_config: Optional[AutoResetConfig] = None,
        publisher: Optional[EventPublisher] = None,
        subscriber_name: str = DEFAULT_SUBSCRIBER_NAME,
        audio_queue_size: int = DEFAULT_AUDIO_QUEUE_SIZE,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger("wake_word")
        self._recognizer_factory = recognizer_factory
        self._audio_source = audio_source
        self._scheduler = scheduler or AsyncioScheduler(logger=self._logger.getChild("timers"))
        self._matcher = matcher or WakePhraseMatcher(
            config=matcher_config,
            logger=self._logger.getChild("matcher"),
        )
        self._auto_reset = AutoResetScheduler(
            self._scheduler,
            self._auto_reset_fired,
            auto_reset_config,
            logger=self._logger.getChild("auto_reset"),
        )
        self._publisher = publisher
        self._subscriber_name = subscriber_name
        self._audio_queue_size = audio_queue_size

        self._recognizer: Optional[Recognizer] = None
        self._audio_queue: Optional[asyncio.Queue[AudioChunk]] = None
        self._consumer_task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._wake_callback: Optional[WakeCallback] = None
        self._error_callback: Optional[ErrorCallback] = None

    @property
    def is_active(self) -> bool:
        return self._running

    @property
    def matcher(self) -> WakePhraseMatcher:
        return self._matcher

    @property
    def auto_reset(self) -> AutoResetScheduler:
        return self._auto_reset

    def set_wake_word(self, phrase: str) -> None:
        self.set_wake_words([phrase])

    def set_wake_words(self, phrases: Iterable[str]) -> None:
        self._matcher.set_phrases(phrases)

    def on_wake(self, callback: WakeCallback) -> None:
        self._wake_callback = callback

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callback = callback

    def update_auto_reset_config(
        self,
        *,
        enabled: Optional[bool] = None,
        reset_delay_ms: Optional[float] = None,
    ) -> AutoResetConfig:
        return self._auto_reset.update_config(enabled=enabled, reset_delay_ms=reset_delay_ms)

    async def start(self) -> None:
        if self._running:
            self._logger.warning("Wake-word detector already running")
            return

        try:
            if not self._matcher.phrases:
                raise WakeWordConfigurationError(
                    "No wake phrase configured; call set_wake_word() before start()"
                )
            if self._audio_source is not None:
                if self._recognizer is None:
                    if self._recognizer_factory is None:
                        raise WakeWordConfigurationError(
                            "An audio source requires a recognizer factory"
                        )
                    self._recognizer = await asyncio.to_thread(self._recognizer_factory)
                self._audio_queue = asyncio.Queue(maxsize=self._audio_queue_size)
                self._consumer_task = asyncio.create_task(self._consume_audio())
                self._audio_source.attach(self._subscriber_name, self._on_audio_chunk)
        except Exception as error:
            await self._cancel_consumer()
            self._logger.error("Failed to start wake-word detector: %s", error)
            self._emit_error(error)
            raise

        self._running = True
        self._logger.info("Wake-word detector started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._auto_reset.cancel()
        if self._audio_source is not None:
            self._audio_source.detach(self._subscriber_name)
        await self._cancel_consumer()
        if self._recognizer is not None:
            self._recognizer.reset()
        self._matcher.reset()
        self._logger.info("Wake-word detector stopped")

    def reset(self) -> None:
        """Re-arm immediately and cancel any pending auto-reset."""
        self._auto_reset.cancel()
        self._matcher.reset()

    def inspect(self, text: str, is_final: bool) -> bool:
        """Feed external transcript text; True when it produced a wake."""
        event = TextEvent(text=text, is_final=is_final, timestamp_ms=self._scheduler.now_ms())
        return self.handle_text_event(event) is not None

    def handle_text_event(self, event: TextEvent) -> Optional[WakeDecision]:
        decision = self._matcher.process(event)
        if decision is not None:
            self._on_decision(decision)
        return decision

    def _on_audio_chunk(self, chunk: AudioChunk) -> None:
        self._matcher.update_loudness(chunk.rms, chunk.timestamp_ms)
        queue = self._audio_queue
        if queue is None:
            return
        if queue.full():
            queue.get_nowait()
            self._logger.warning("Recognizer is falling behind; dropped oldest audio chunk")
        queue.put_nowait(chunk)

    async def _consume_audio(self) -> None:
        queue = self._audio_queue
        recognizer = self._recognizer
        if queue is None or recognizer is None:
            return
        while True:
            chunk = await queue.get()
            try:
                events = await asyncio.to_thread(
                    recognizer.accept_audio,
                    chunk.pcm,
                    chunk.timestamp_ms,
                )
            except Exception as error:
                self._logger.error("Recognizer failed on audio chunk: %s", error, exc_info=True)
                self._emit_error(error)
                continue
            for event in events:
                self._logger.debug(
                    "Recognizer %s: %s",
                    "final" if event.is_final else "partial",
                    event.text,
                )
                self.handle_text_event(event)

    async def _cancel_consumer(self) -> None:
        task = self._consumer_task
        self._consumer_task = None
        self._audio_queue = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _on_decision(self, decision: WakeDecision) -> None:
        self._logger.info("Wake word detected: %s (score=%.3f)", decision.phrase, decision.score)
        if self._publisher is not None:
            self._publisher.publish(
                WakeWordDetectedEvent(
                    phrase=decision.phrase,
                    score=decision.score,
                    occurred_at=datetime.now(timezone.utc),
                )
            )
        if self._wake_callback is not None:
            try:
                self._wake_callback(decision.phrase)
            except Exception:
                self._logger.error("Wake callback failed", exc_info=True)
        self._auto_reset.arm()

    def _auto_reset_fired(self) -> None:
        self._matcher.reset()

    def _emit_error(self, error: Exception) -> None:
        if self._publisher is not None:
            self._publisher.publish(
                WakeWordErrorEvent(
                    occurred_at=datetime.now(timezone.utc),
                    message=str(error),
                    exception=error,
                )
            )
        if self._error_callback is not None:
            try:
                self._error_callback(error)
            except Exception:
                self._logger.error("Error callback failed", exc_info=True)
