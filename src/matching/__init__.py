"""Fuzzy wake-phrase matching over streaming recognizer text."""

from .config import MatcherConfig, MatcherConfigurationError, ScoringWeights
from .matcher import MatchState, Phrase, TextEvent, WakeDecision, WakePhraseMatcher
from .normalizer import normalize
from .similarity import score_candidate, similarity
from .transliteration import Transliterator, clear_cache, transliterate

__all__ = [
    "MatchState",
    "MatcherConfig",
    "MatcherConfigurationError",
    "Phrase",
    "ScoringWeights",
    "TextEvent",
    "Transliterator",
    "WakeDecision",
    "WakePhraseMatcher",
    "clear_cache",
    "normalize",
    "score_candidate",
    "similarity",
    "transliterate",
]
