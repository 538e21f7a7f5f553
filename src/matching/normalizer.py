"""Text normalization applied to both configured phrases and recognizer output."""

from __future__ import annotations

import re
import string
import unicodedata

from .constants import CJK_FILLER_PARTICLES, CJK_PUNCTUATION, LATIN_FILLER_WORDS

_STRIP_CHARS = frozenset(string.punctuation) | frozenset(CJK_PUNCTUATION)
_LATIN_FILLER_RE = re.compile(
    r"\b(?:" + "|".join(sorted(LATIN_FILLER_WORDS)) + r")\b",
    re.IGNORECASE,
)


def _is_dropped(char: str) -> bool:
    if char.isspace() or char in _STRIP_CHARS or char in CJK_FILLER_PARTICLES:
        return True
    return unicodedata.category(char).startswith("P")


def normalize(text: str) -> str:
    """Case-fold and strip whitespace, punctuation and filler particles."""
    if not text:
        return ""
    folded = _LATIN_FILLER_RE.sub(" ", text.casefold())
    return "".join(char for char in folded if not _is_dropped(char))


def has_non_latin(text: str) -> bool:
    """True when any letter outside the Latin script appears in `text`."""
    for char in text:
        if not char.isalpha() or char.isascii():
            continue
        try:
            name = unicodedata.name(char)
        except ValueError:
            return True
        if not name.startswith("LATIN"):
            return True
    return False
