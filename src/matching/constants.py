"""Tuning defaults and character tables used by wake-phrase matching."""

from __future__ import annotations

# Single-character CJK hesitation particles dropped before matching.
CJK_FILLER_PARTICLES: frozenset[str] = frozenset(
    {"嗯", "啊", "呃", "额", "哦", "噢", "呀", "吧", "呢", "嘛", "哎", "唉"}
)

# Whole-word Latin fillers, removed before whitespace is collapsed.
LATIN_FILLER_WORDS: frozenset[str] = frozenset({"um", "uh", "erm", "hmm", "ah"})

CJK_PUNCTUATION = "，。！？、；：“”‘’（）《》【】「」『』〈〉…—～·"

TRANSLITERATION_CACHE_CAPACITY = 512

# Similarity blend (edit distance / LCS / bigram overlap).
DEFAULT_LEVENSHTEIN_WEIGHT = 0.5
DEFAULT_LCS_WEIGHT = 0.3
DEFAULT_BIGRAM_WEIGHT = 0.2

# Phonetic blending inside candidate windows.
DEFAULT_PHONETIC_STRONG_THRESHOLD = 0.9
DEFAULT_PHONETIC_STRONG_TEXT_WEIGHT = 0.2
DEFAULT_PHONETIC_BLEND_THRESHOLD = 0.75
DEFAULT_PHONETIC_BLEND_TEXT_WEIGHT = 0.55

WINDOW_SLACK_CHARS = 3
EXACT_MATCH_SCORE = 0.999

# Matcher decision defaults.
DEFAULT_PARTIAL_THRESHOLD = 0.72
DEFAULT_FINAL_THRESHOLD = 0.80
DEFAULT_NEAR_MISS_SLACK = 0.08
DEFAULT_REQUIRED_CONSECUTIVE_HITS = 2
DEFAULT_REQUIRED_NEAR_MISS_HITS = 3
DEFAULT_REFRACTORY_MS = 1500.0
DEFAULT_PARTIAL_BUFFER_MAX_CHARS = 32
DEFAULT_MAX_LOUDNESS_RELAXATION = 0.05
DEFAULT_LOUDNESS_FLOOR = 0.02
DEFAULT_CONFIDENT_LOUDNESS = 0.1
DEFAULT_LOUDNESS_WINDOW_MS = 1000.0

GENERIC_WAKE_MARKER = "wake"
