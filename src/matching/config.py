from __future__ import annotations

from dataclasses import dataclass, field

from .constants import (
    DEFAULT_BIGRAM_WEIGHT,
    DEFAULT_CONFIDENT_LOUDNESS,
    DEFAULT_FINAL_THRESHOLD,
    DEFAULT_LCS_WEIGHT,
    DEFAULT_LEVENSHTEIN_WEIGHT,
    DEFAULT_LOUDNESS_FLOOR,
    DEFAULT_LOUDNESS_WINDOW_MS,
    DEFAULT_MAX_LOUDNESS_RELAXATION,
    DEFAULT_NEAR_MISS_SLACK,
    DEFAULT_PARTIAL_BUFFER_MAX_CHARS,
    DEFAULT_PARTIAL_THRESHOLD,
    DEFAULT_PHONETIC_BLEND_TEXT_WEIGHT,
    DEFAULT_PHONETIC_BLEND_THRESHOLD,
    DEFAULT_PHONETIC_STRONG_TEXT_WEIGHT,
    DEFAULT_PHONETIC_STRONG_THRESHOLD,
    DEFAULT_REFRACTORY_MS,
    DEFAULT_REQUIRED_CONSECUTIVE_HITS,
    DEFAULT_REQUIRED_NEAR_MISS_HITS,
)


class MatcherConfigurationError(Exception):
    """Raised when matcher or scoring configuration is invalid."""

    pass


def _require_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise MatcherConfigurationError(f"{name} must be in [0.0, 1.0], got: {value}")


@dataclass(frozen=True)
class ScoringWeights:
    """Similarity blend weights and phonetic blending bands.

    The defaults were tuned by hand against recognizer output and should be
    recalibrated per recognizer model.
    """

    levenshtein: float = DEFAULT_LEVENSHTEIN_WEIGHT
    lcs: float = DEFAULT_LCS_WEIGHT
    bigram: float = DEFAULT_BIGRAM_WEIGHT
    phonetic_strong_threshold: float = DEFAULT_PHONETIC_STRONG_THRESHOLD
    phonetic_strong_text_weight: float = DEFAULT_PHONETIC_STRONG_TEXT_WEIGHT
    phonetic_blend_threshold: float = DEFAULT_PHONETIC_BLEND_THRESHOLD
    phonetic_blend_text_weight: float = DEFAULT_PHONETIC_BLEND_TEXT_WEIGHT

    def __post_init__(self):
        for name in ("levenshtein", "lcs", "bigram"):
            if getattr(self, name) < 0:
                raise MatcherConfigurationError(f"{name} weight must not be negative")
        if self.levenshtein + self.lcs + self.bigram <= 0:
            raise MatcherConfigurationError("at least one similarity weight must be positive")

        _require_unit_interval("phonetic_strong_threshold", self.phonetic_strong_threshold)
        _require_unit_interval("phonetic_strong_text_weight", self.phonetic_strong_text_weight)
        _require_unit_interval("phonetic_blend_threshold", self.phonetic_blend_threshold)
        _require_unit_interval("phonetic_blend_text_weight", self.phonetic_blend_text_weight)
        if self.phonetic_blend_threshold > self.phonetic_strong_threshold:
            raise MatcherConfigurationError(
                "phonetic_blend_threshold cannot exceed phonetic_strong_threshold"
            )


@dataclass(frozen=True)
class MatcherConfig:
    """Decision thresholds and hit counting for the wake-phrase matcher."""

    partial_threshold: float = DEFAULT_PARTIAL_THRESHOLD
    final_threshold: float = DEFAULT_FINAL_THRESHOLD
    near_miss_slack: float = DEFAULT_NEAR_MISS_SLACK
    required_consecutive_hits: int = DEFAULT_REQUIRED_CONSECUTIVE_HITS
    required_near_miss_hits: int = DEFAULT_REQUIRED_NEAR_MISS_HITS
    refractory_ms: float = DEFAULT_REFRACTORY_MS
    partial_buffer_max_chars: int = DEFAULT_PARTIAL_BUFFER_MAX_CHARS
    max_loudness_relaxation: float = DEFAULT_MAX_LOUDNESS_RELAXATION
    loudness_floor: float = DEFAULT_LOUDNESS_FLOOR
    confident_loudness: float = DEFAULT_CONFIDENT_LOUDNESS
    loudness_window_ms: float = DEFAULT_LOUDNESS_WINDOW_MS
    weights: ScoringWeights = field(default_factory=ScoringWeights)

    def __post_init__(self):
        """Validate configuration on initialization."""
        _require_unit_interval("partial_threshold", self.partial_threshold)
        _require_unit_interval("final_threshold", self.final_threshold)
        if self.final_threshold < self.partial_threshold:
            raise MatcherConfigurationError(
                f"final_threshold ({self.final_threshold}) must be >= "
                f"partial_threshold ({self.partial_threshold})"
            )
        _require_unit_interval("near_miss_slack", self.near_miss_slack)

        if self.required_consecutive_hits < 1:
            raise MatcherConfigurationError(
                f"required_consecutive_hits must be >= 1, got: {self.required_consecutive_hits}"
            )
        if self.required_near_miss_hits < 1:
            raise MatcherConfigurationError(
                f"required_near_miss_hits must be >= 1, got: {self.required_near_miss_hits}"
            )
        if self.refractory_ms < 0:
            raise MatcherConfigurationError("refractory_ms must not be negative")
        if self.partial_buffer_max_chars < 1:
            raise MatcherConfigurationError("partial_buffer_max_chars must be >= 1")

        _require_unit_interval("max_loudness_relaxation", self.max_loudness_relaxation)
        if self.loudness_floor < 0:
            raise MatcherConfigurationError("loudness_floor must not be negative")
        if self.confident_loudness <= self.loudness_floor:
            raise MatcherConfigurationError(
                "confident_loudness must be greater than loudness_floor"
            )
        if self.loudness_window_ms <= 0:
            raise MatcherConfigurationError("loudness_window_ms must be positive")

    @classmethod
    def from_settings(cls, settings) -> "MatcherConfig":
        """Build matcher configuration from parsed `[matching]` settings."""
        return cls(
            partial_threshold=settings.partial_threshold,
            final_threshold=settings.final_threshold,
            near_miss_slack=settings.near_miss_slack,
            required_consecutive_hits=settings.required_consecutive_hits,
            required_near_miss_hits=settings.required_near_miss_hits,
            refractory_ms=settings.refractory_ms,
            partial_buffer_max_chars=settings.partial_buffer_max_chars,
            max_loudness_relaxation=settings.max_loudness_relaxation,
            loudness_floor=settings.loudness_floor,
            confident_loudness=settings.confident_loudness,
            loudness_window_ms=settings.loudness_window_ms,
            weights=ScoringWeights(
                levenshtein=settings.levenshtein_weight,
                lcs=settings.lcs_weight,
                bigram=settings.bigram_weight,
                phonetic_strong_threshold=settings.phonetic_strong_threshold,
                phonetic_strong_text_weight=settings.phonetic_strong_text_weight,
                phonetic_blend_threshold=settings.phonetic_blend_threshold,
                phonetic_blend_text_weight=settings.phonetic_blend_text_weight,
            ),
        )
