"""Phonetic romanization used for script-independent phrase matching."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pypinyin import Style, lazy_pinyin

from .constants import TRANSLITERATION_CACHE_CAPACITY
from .normalizer import has_non_latin, normalize

RomanizeFn = Callable[[str], str]


def pinyin_romanize(text: str) -> str:
    """Toneless pinyin for Han characters; other runs pass through unchanged."""
    return "".join(lazy_pinyin(text, style=Style.NORMAL))


class Transliterator:
    """Memoizing wrapper around a romanization backend.

    The cache is bounded: once it holds `capacity` entries it is emptied
    completely before the next insert.
    """

    def __init__(
        self,
        backend: Optional[RomanizeFn] = None,
        capacity: int = TRANSLITERATION_CACHE_CAPACITY,
        logger: Optional[logging.Logger] = None,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be greater than zero")
        self._backend = backend or pinyin_romanize
        self._capacity = capacity
        self._cache: dict[str, str] = {}
        self._logger = logger or logging.getLogger("matching.transliteration")

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def transliterate(self, text: str) -> str:
        if not text:
            return ""
        cached = self._cache.get(text)
        if cached is not None:
            return cached

        normalized = normalize(text)
        if has_non_latin(normalized):
            result = normalize(self._backend(normalized))
        else:
            result = normalized

        if len(self._cache) >= self._capacity:
            self._logger.debug(
                "Transliteration cache full (%d entries), evicting all",
                len(self._cache),
            )
            self._cache.clear()
        self._cache[text] = result
        return result

    def clear_cache(self) -> None:
        self._cache.clear()


_default_transliterator = Transliterator()


def transliterate(text: str) -> str:
    """Romanize `text` with the process-wide cached transliterator."""
    return _default_transliterator.transliterate(text)


def clear_cache() -> None:
    _default_transliterator.clear_cache()


def default_transliterator() -> Transliterator:
    return _default_transliterator
