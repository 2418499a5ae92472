from __future__ import annotations

import unicodedata
from functools import lru_cache

ELLIPSIS = "..."

_ZERO_WIDTH_CATEGORIES = ("Mn", "Me", "Cf")
# control and unassigned characters count as two columns
_UNKNOWN_WIDTH_CATEGORIES = ("Cc", "Cn")
_DOUBLE_WIDTH_CLASSES = ("F", "W")


@lru_cache(maxsize=4096)
def char_width(ch: str) -> int:
    """Return display width of a single Unicode character (0, 1 or 2)."""
    if not ch:
        return 0
    category = unicodedata.category(ch)
    if category in _ZERO_WIDTH_CATEGORIES:
        return 0
    if category in _UNKNOWN_WIDTH_CATEGORIES:
        return 2
    if unicodedata.east_asian_width(ch) in _DOUBLE_WIDTH_CLASSES:
        return 2
    return 1


def display_width(text: str) -> int:
    """Return the number of terminal columns ``text`` occupies."""
    return sum(char_width(ch) for ch in text or "")


def truncate_string(s: str, max_len: int) -> str:
    """Fit ``s`` into ``max_len`` terminal columns.

    Strings that fit are returned unchanged. Longer ones keep the longest prefix
    of whole characters leaving three columns for ``...``. When ``max_len`` is
    below 3 there is no room for a prefix, and the ellipsis itself is cut to
    ``max_len`` dots (nothing at all for ``max_len <= 0``).
    """
    if display_width(s) <= max_len:
        return s
    if max_len < len(ELLIPSIS):
        return ELLIPSIS[:max(0, max_len)]

    budget = max_len - len(ELLIPSIS)
    out = []
    width = 0
    for ch in s:
        w = char_width(ch)
        if width + w > budget:
            break
        out.append(ch)
        width += w
    return "".join(out) + ELLIPSIS
