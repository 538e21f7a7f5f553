"""Vosk (Kaldi) offline recognizer adapter with a bounded model cache."""

from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from typing import Optional, Sequence

import vosk

from matching import TextEvent

MODEL_CACHE_CAPACITY = 2

_model_cache: "OrderedDict[str, vosk.Model]" = OrderedDict()
_model_cache_lock = threading.Lock()
_logger = logging.getLogger("wake_word.recognizer")


def load_model(model_path: str) -> vosk.Model:
    """Return a cached `vosk.Model`, loading it on first use.

    The least recently used model is dropped once more than
    `MODEL_CACHE_CAPACITY` distinct paths have been loaded.
    """
    with _model_cache_lock:
        model = _model_cache.get(model_path)
        if model is not None:
            _model_cache.move_to_end(model_path)
            return model

        _logger.info("Loading Vosk model from %s", model_path)
        model = vosk.Model(model_path)
        _model_cache[model_path] = model
        while len(_model_cache) > MODEL_CACHE_CAPACITY:
            evicted, _ = _model_cache.popitem(last=False)
            _logger.debug("Evicted Vosk model from cache: %s", evicted)
        return model


def clear_model_cache() -> None:
    with _model_cache_lock:
        _model_cache.clear()


def cached_model_paths() -> tuple[str, ...]:
    with _model_cache_lock:
        return tuple(_model_cache)


class VoskRecognizer:
    """Feeds PCM16 audio to a `KaldiRecognizer` and yields text events."""

    def __init__(
        self,
        model_path: str,
        sample_rate: int = 16000,
        *,
        use_partial: bool = True,
        grammar: Optional[Sequence[str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._use_partial = use_partial
        self._logger = logger or _logger
        model = load_model(model_path)
        if grammar:
            self._recognizer = vosk.KaldiRecognizer(
                model,
                sample_rate,
                json.dumps(list(grammar), ensure_ascii=False),
            )
        else:
            self._recognizer = vosk.KaldiRecognizer(model, sample_rate)

    def accept_audio(self, pcm: bytes, timestamp_ms: float) -> list[TextEvent]:
        if not pcm:
            return []
        if self._recognizer.AcceptWaveform(pcm):
            text = self._read_field(self._recognizer.Result(), "text")
            if text:
                return [TextEvent(text=text, is_final=True, timestamp_ms=timestamp_ms)]
            return []

        if not self._use_partial:
            return []
        text = self._read_field(self._recognizer.PartialResult(), "partial")
        if text:
            return [TextEvent(text=text, is_final=False, timestamp_ms=timestamp_ms)]
        return []

    def reset(self) -> None:
        self._recognizer.Reset()

    def _read_field(self, payload: str, field: str) -> str:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError):
            self._logger.warning("Dropping malformed recognizer payload: %r", payload)
            return ""
        if not isinstance(data, dict):
            self._logger.warning("Dropping unexpected recognizer payload: %r", payload)
            return ""
        value = data.get(field, "")
        return value.strip() if isinstance(value, str) else ""
