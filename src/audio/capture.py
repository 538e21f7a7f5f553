"""PortAudio microphone stream delivering `AudioChunk`s on the event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import numpy as np
import sounddevice as sd

from .config import AudioConfig
from .contracts import AudioChunk, ChunkCallback, FailureCallback
from .convert import downmix, float_to_pcm16, resample
from .errors import AudioResourceError, classify_device_error
from .loudness import float_rms


class SoundDeviceStream:
    """Float32 `sounddevice.InputStream` converted to PCM16 at the target rate.

    PortAudio invokes the callback on its own thread; every block is handed
    to the loop with `call_soon_threadsafe` and converted there.
    """

    def __init__(
        self,
        config: AudioConfig,
        on_chunk: ChunkCallback,
        on_failure: FailureCallback,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._on_chunk = on_chunk
        self._on_failure = on_failure
        self._loop = loop
        self._logger = logger or logging.getLogger("audio.capture")
        self._stream: Optional[sd.InputStream] = None
        self._closing = False

    @property
    def active(self) -> bool:
        return self._stream is not None and bool(self._stream.active)

    def start(self) -> None:
        if self._stream is not None:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._closing = False
        try:
            stream = sd.InputStream(
                samplerate=self._config.capture_sample_rate,
                blocksize=self._config.block_size,
                device=self._config.device_index,
                channels=self._config.channels,
                dtype="float32",
                callback=self._callback,
                finished_callback=self._finished_callback,
            )
            stream.start()
        except (sd.PortAudioError, OSError, ValueError) as error:
            kind = classify_device_error(error)
            raise AudioResourceError(
                f"Unable to open microphone (device={self._config.device_index!r}): {error}",
                kind=kind,
            ) from error

        self._stream = stream
        self._logger.info(
            "Audio stream started: device=%r rate=%d block=%d",
            self._config.device_index,
            self._config.capture_sample_rate,
            self._config.block_size,
        )

    def close(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        self._closing = True
        try:
            stream.stop()
        finally:
            stream.close()
        self._logger.info("Audio stream stopped")

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            self._logger.debug("Audio stream status: %s", status)
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        samples = downmix(np.array(indata, dtype=np.float32, copy=True))
        loop.call_soon_threadsafe(self._deliver, samples)

    def _deliver(self, samples: np.ndarray) -> None:
        if self._stream is None:
            return
        converted = resample(
            samples,
            self._config.capture_sample_rate,
            self._config.target_sample_rate,
        )
        chunk = AudioChunk(
            pcm=float_to_pcm16(converted),
            rms=float_rms(converted),
            timestamp_ms=self._loop.time() * 1000.0,
        )
        self._on_chunk(chunk)

    def _finished_callback(self) -> None:
        if self._closing:
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        error = AudioResourceError(
            "Microphone stream stopped unexpectedly",
            kind="device-unavailable",
        )
        loop.call_soon_threadsafe(self._on_failure, error)


def sounddevice_stream_factory(
    config: AudioConfig,
    *,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    logger: Optional[logging.Logger] = None,
):
    """Bind `config` into a `StreamFactory` for `MicrophoneHub`."""

    def factory(on_chunk: ChunkCallback, on_failure: FailureCallback) -> SoundDeviceStream:
        return SoundDeviceStream(
            config,
            on_chunk,
            on_failure,
            loop=loop,
            logger=logger,
        )

    return factory
