"""Blended string similarity and sliding-window candidate scoring."""

from __future__ import annotations

from typing import Callable, Optional

from rapidfuzz.distance import LCSseq, Levenshtein

from .config import ScoringWeights
from .constants import EXACT_MATCH_SCORE, WINDOW_SLACK_CHARS
from .transliteration import transliterate

DEFAULT_WEIGHTS = ScoringWeights()


def _bigrams(text: str) -> set[str]:
    if len(text) < 2:
        return {text}
    return {text[i : i + 2] for i in range(len(text) - 1)}


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def similarity(a: str, b: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Blend of normalized edit distance, LCS ratio and bigram Jaccard overlap."""
    if not a or not b:
        return 0.0

    longest = max(len(a), len(b))
    lev_score = 1.0 - Levenshtein.distance(a, b) / longest
    lcs_score = LCSseq.similarity(a, b) / longest

    grams_a = _bigrams(a)
    grams_b = _bigrams(b)
    bigram_score = len(grams_a & grams_b) / len(grams_a | grams_b)

    return _clamp(
        weights.levenshtein * lev_score
        + weights.lcs * lcs_score
        + weights.bigram * bigram_score
    )


def _window_score(
    window: str,
    phrase_norm: str,
    phrase_phonetic: Optional[str],
    weights: ScoringWeights,
    transliterate_fn: Callable[[str], str],
) -> float:
    text_score = similarity(window, phrase_norm, weights)
    if not phrase_phonetic or text_score >= EXACT_MATCH_SCORE:
        return text_score

    phonetic_score = similarity(transliterate_fn(window), phrase_phonetic, weights)
    if phonetic_score >= weights.phonetic_strong_threshold:
        text_weight = weights.phonetic_strong_text_weight
    elif phonetic_score >= weights.phonetic_blend_threshold:
        text_weight = weights.phonetic_blend_text_weight
    else:
        return text_score

    blended = text_weight * text_score + (1.0 - text_weight) * phonetic_score
    return max(text_score, blended)


def score_candidate(
    candidate: str,
    phrase_norm: str,
    phrase_phonetic: Optional[str] = None,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    transliterate_fn: Callable[[str], str] = transliterate,
) -> float:
    """Best window score of `candidate` against one normalized phrase.

    Windows are `len(phrase) +/- 3` characters wide (at least one); a
    candidate shorter than the narrowest window is scored as a whole.
    """
    if not candidate or not phrase_norm:
        return 0.0

    min_width = max(1, len(phrase_norm) - WINDOW_SLACK_CHARS)
    max_width = len(phrase_norm) + WINDOW_SLACK_CHARS
    if len(candidate) <= min_width:
        return _window_score(
            candidate, phrase_norm, phrase_phonetic, weights, transliterate_fn
        )

    best = 0.0
    # Exact-width windows first so an exact hit short-circuits early.
    widths = sorted(
        range(min_width, min(max_width, len(candidate)) + 1),
        key=lambda width: abs(width - len(phrase_norm)),
    )
    for width in widths:
        for start in range(len(candidate) - width + 1):
            score = _window_score(
                candidate[start : start + width],
                phrase_norm,
                phrase_phonetic,
                weights,
                transliterate_fn,
            )
            if score > best:
                best = score
                if best >= EXACT_MATCH_SCORE:
                    return _clamp(best)
    return _clamp(best)
