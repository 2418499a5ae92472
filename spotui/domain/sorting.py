from __future__ import annotations

from enum import Enum
from typing import Any, List

from .entities import Track


class ContextSortOrder(Enum):
    """Criterion for ordering the tracks of the loaded context. All orders are ascending."""

    ADDED_AT = "added_at"
    TRACK_NAME = "track_name"
    ALBUM = "album"
    ARTISTS = "artists"
    DURATION = "duration"

    @classmethod
    def from_name(cls, name: str) -> "ContextSortOrder":
        normalized = (name or "").strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(order.value for order in cls)
            raise ValueError(f"Unknown sort order '{name}' (expected one of: {choices})")

    def key(self, track: Track) -> Any:
        if self is ContextSortOrder.ADDED_AT:
            return track.added_at
        if self is ContextSortOrder.TRACK_NAME:
            return track.name
        if self is ContextSortOrder.ALBUM:
            return track.album.name
        if self is ContextSortOrder.DURATION:
            return track.duration
        return track.artists_info

    def compare(self, x: Track, y: Track) -> int:
        """Three-way comparison: negative, zero or positive like a classic cmp."""
        kx, ky = self.key(x), self.key(y)
        return (kx > ky) - (kx < ky)


def sort_tracks(tracks: List[Track], order: ContextSortOrder) -> None:
    """Sort ``tracks`` in place. Tracks with equal keys keep their relative order."""
    # list.sort is stable
    tracks.sort(key=order.key)
