from __future__ import annotations

import re

KEY_SEPARATOR = "::"

_QUOTES = str.maketrans({"‘": "'", "’": "'", "“": '"', "”": '"'})
_PARENS = re.compile(r"\([^)]*\)")
_DISALLOWED = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def normalize(text: object) -> str:
    """
    Canonical form of an artist or title used for cache keys and matching.

    Never raises; ``None`` and empty input give ``""``.
    """
    if text is None:
        return ""
    s = text if isinstance(text, str) else str(text)
    s = s.strip().lower().translate(_QUOTES)
    s = _PARENS.sub(" ", s)
    s = _DISALLOWED.sub("", s)
    return _SPACES.sub(" ", s).strip()


def cache_key(artist: object, title: object) -> str:
    return f"{normalize(artist)}{KEY_SEPARATOR}{normalize(title)}"
