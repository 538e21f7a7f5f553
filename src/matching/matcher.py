"""Fuzzy wake-phrase matcher driven by streaming recognizer text events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import MatcherConfig
from .constants import GENERIC_WAKE_MARKER
from .normalizer import normalize
from .similarity import score_candidate
from .transliteration import Transliterator, default_transliterator


@dataclass(frozen=True)
class Phrase:
    """Configured wake phrase with its precomputed comparison forms."""
    raw: str
    normalized: str
    phonetic: str


@dataclass(frozen=True)
class TextEvent:
    """Recognizer hypothesis text; partial events may be revised later."""
    text: str
    is_final: bool
    timestamp_ms: float


@dataclass(frozen=True)
class MatchState:
    """Read-only snapshot of the matcher's mutable state."""
    triggered: bool
    consecutive_hits: int
    near_miss_hits: int
    partial_buffer: str
    last_trigger_timestamp_ms: Optional[float]


@dataclass(frozen=True)
class WakeDecision:
    """Emitted once per trigger with the matched phrase (or generic marker)."""
    phrase: str
    score: float
    timestamp_ms: float


class WakePhraseMatcher:
    """Decides when streaming text contains one of the configured wake phrases.

    Final events trigger on a single score at or above `final_threshold`.
    Partial events need `required_consecutive_hits` qualifying scores in a
    row, or `required_near_miss_hits` scores just under the threshold. Once
    triggered the matcher stays silent until `reset()`.
    """

    def __init__(
        self,
        phrases: Iterable[str] = (),
        *,
        config: Optional[MatcherConfig] = None,
        transliterator: Optional[Transliterator] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or MatcherConfig()
        self._transliterator = transliterator or default_transliterator()
        self._logger = logger or logging.getLogger("matching")

        self._phrases: tuple[Phrase, ...] = ()
        self._triggered = False
        self._consecutive_hits = 0
        self._near_miss_hits = 0
        self._partial_buffer = ""
        self._last_trigger_timestamp_ms: Optional[float] = None
        self._loudness_rms: Optional[float] = None
        self._loudness_timestamp_ms: Optional[float] = None

        self.set_phrases(phrases)

    @property
    def config(self) -> MatcherConfig:
        return self._config

    @property
    def phrases(self) -> tuple[Phrase, ...]:
        return self._phrases

    @property
    def state(self) -> MatchState:
        return MatchState(
            triggered=self._triggered,
            consecutive_hits=self._consecutive_hits,
            near_miss_hits=self._near_miss_hits,
            partial_buffer=self._partial_buffer,
            last_trigger_timestamp_ms=self._last_trigger_timestamp_ms,
        )

    def set_phrases(self, phrases: Iterable[str]) -> None:
        """Replace the phrase set; duplicates after normalization collapse."""
        self._transliterator.clear_cache()
        compiled: list[Phrase] = []
        seen: set[str] = set()
        for raw in phrases:
            raw_text = (raw or "").strip()
            normalized = normalize(raw_text)
            if not normalized:
                if raw_text:
                    self._logger.warning("Ignoring wake phrase with no content: %r", raw)
                continue
            if normalized in seen:
                continue
            seen.add(normalized)
            compiled.append(
                Phrase(
                    raw=raw_text,
                    normalized=normalized,
                    phonetic=self._transliterator.transliterate(raw_text),
                )
            )

        self._phrases = tuple(compiled)
        self._partial_buffer = ""
        self._consecutive_hits = 0
        self._near_miss_hits = 0
        self._logger.info(
            "Wake phrases configured: %s",
            ", ".join(phrase.raw for phrase in self._phrases) or "<none>",
        )

    def reset(self, *, keep_refractory: bool = False) -> None:
        """Re-arm the matcher.

        With `keep_refractory` the last trigger timestamp is retained so the
        refractory window still suppresses an immediate re-trigger.
        """
        self._triggered = False
        self._consecutive_hits = 0
        self._near_miss_hits = 0
        self._partial_buffer = ""
        if not keep_refractory:
            self._last_trigger_timestamp_ms = None

    def update_loudness(self, rms: float, timestamp_ms: float) -> None:
        self._loudness_rms = max(0.0, float(rms))
        self._loudness_timestamp_ms = timestamp_ms

    def process(self, event: TextEvent) -> Optional[WakeDecision]:
        if self._triggered or not self._phrases:
            return None
        if (
            self._last_trigger_timestamp_ms is not None
            and event.timestamp_ms - self._last_trigger_timestamp_ms
            < self._config.refractory_ms
        ):
            return None

        normalized = normalize(event.text)
        if event.is_final:
            candidate = normalized
        else:
            self._append_partial(normalized)
            candidate = self._partial_buffer

        best_score, best_phrases = self._score(candidate)
        threshold = self._threshold(event)
        decision = self._decide(event, best_score, best_phrases, threshold)

        if event.is_final:
            self._partial_buffer = ""
        return decision

    def _append_partial(self, normalized: str) -> None:
        if not normalized:
            return
        longest = max(len(phrase.normalized) for phrase in self._phrases)
        limit = max(self._config.partial_buffer_max_chars, 2 * longest)
        self._partial_buffer = (self._partial_buffer + normalized)[-limit:]

    def _score(self, candidate: str) -> tuple[float, list[Phrase]]:
        best_score = 0.0
        best_phrases: list[Phrase] = []
        if not candidate:
            return best_score, best_phrases

        for phrase in self._phrases:
            score = score_candidate(
                candidate,
                phrase.normalized,
                phrase.phonetic if phrase.phonetic != phrase.normalized else None,
                weights=self._config.weights,
                transliterate_fn=self._transliterator.transliterate,
            )
            if score > best_score:
                best_score = score
                best_phrases = [phrase]
            elif score == best_score and score > 0.0:
                best_phrases.append(phrase)
        return best_score, best_phrases

    def _threshold(self, event: TextEvent) -> float:
        config = self._config
        base = config.final_threshold if event.is_final else config.partial_threshold
        return max(0.0, base - self._loudness_relaxation(event.timestamp_ms))

    def _loudness_relaxation(self, now_ms: float) -> float:
        config = self._config
        if self._loudness_rms is None or self._loudness_timestamp_ms is None:
            return 0.0
        if abs(now_ms - self._loudness_timestamp_ms) > config.loudness_window_ms:
            return 0.0
        if self._loudness_rms <= config.loudness_floor:
            return 0.0
        span = config.confident_loudness - config.loudness_floor
        ratio = min(1.0, (self._loudness_rms - config.loudness_floor) / span)
        return config.max_loudness_relaxation * ratio

    def _decide(
        self,
        event: TextEvent,
        score: float,
        phrases: list[Phrase],
        threshold: float,
    ) -> Optional[WakeDecision]:
        config = self._config

        if event.is_final:
            if score >= threshold:
                return self._trigger(event, score, phrases)
            self._consecutive_hits = max(0, self._consecutive_hits - 1)
            self._near_miss_hits = max(0, self._near_miss_hits - 1)
            return None

        if score >= threshold:
            self._consecutive_hits += 1
            self._logger.debug(
                "Partial hit %d/%d (score=%.3f threshold=%.3f)",
                self._consecutive_hits,
                config.required_consecutive_hits,
                score,
                threshold,
            )
            if self._consecutive_hits >= config.required_consecutive_hits:
                return self._trigger(event, score, phrases)
            return None

        if score >= threshold - config.near_miss_slack:
            self._near_miss_hits += 1
            self._consecutive_hits = max(0, self._consecutive_hits - 1)
            self._logger.debug(
                "Near miss %d/%d (score=%.3f threshold=%.3f)",
                self._near_miss_hits,
                config.required_near_miss_hits,
                score,
                threshold,
            )
            if self._near_miss_hits >= config.required_near_miss_hits:
                return self._trigger(event, score, phrases)
            return None

        self._consecutive_hits = max(0, self._consecutive_hits - 1)
        self._near_miss_hits = max(0, self._near_miss_hits - 1)
        return None

    def _trigger(
        self,
        event: TextEvent,
        score: float,
        phrases: list[Phrase],
    ) -> WakeDecision:
        self._triggered = True
        self._last_trigger_timestamp_ms = event.timestamp_ms
        self._consecutive_hits = 0
        self._near_miss_hits = 0
        label = phrases[0].raw if len(phrases) == 1 else GENERIC_WAKE_MARKER
        self._logger.info(
            "Wake phrase matched: phrase=%s score=%.3f final=%s",
            label,
            score,
            event.is_final,
        )
        return WakeDecision(phrase=label, score=score, timestamp_ms=event.timestamp_ms)
