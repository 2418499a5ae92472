from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Artist:
    """Artist credited on a track."""

    id: Optional[str] = None
    uri: Optional[str] = None
    name: str = ""


@dataclass(frozen=True)
class Album:
    """Album a track belongs to. The default instance stands in for unknown albums."""

    id: Optional[str] = None
    uri: Optional[str] = None
    name: str = ""


@dataclass(frozen=True)
class Track:
    """Canonical track shown in the context table, independent of the upstream shape."""

    id: Optional[str] = None
    uri: str = ""
    name: str = ""
    artists: Tuple[Artist, ...] = ()
    album: Album = field(default_factory=Album)
    duration: int = 0
    # seconds since epoch, 0 when the upstream shape has no add-time
    added_at: int = 0

    def __post_init__(self):
        if not isinstance(self.artists, tuple):
            object.__setattr__(self, 'artists', tuple(self.artists))
        if self.duration < 0:
            raise ValueError(f"Track duration must not be negative: {self.duration}")
        if self.added_at < 0:
            raise ValueError(f"Track added_at must not be negative: {self.added_at}")

    @property
    def artists_info(self) -> str:
        return ",".join(artist.name for artist in self.artists)

    @property
    def basic_info(self) -> str:
        """Name, artists and album in one string, used as the search target."""
        return f"{self.name} {self.artists_info} {self.album.name}"


class ContextType(Enum):
    """Kind of collection driving playback."""

    ALBUM = "album"
    ARTIST = "artist"
    PLAYLIST = "playlist"
    SHOW = "show"
    COLLECTION = "collection"


class EventState(Enum):
    """Input mode deciding how the next key press is interpreted."""

    DEFAULT = "default"
    CONTEXT_SEARCH = "context_search"
    PLAYLIST_SWITCH = "playlist_switch"


@dataclass(frozen=True)
class Device:
    """Playback device known to the account."""

    id: Optional[str] = None
    name: str = ""
    type: str = ""
    is_active: bool = False
    volume_percent: Optional[int] = None


@dataclass(frozen=True)
class Context:
    """Context object of the current playback."""

    type: Optional[ContextType] = None
    uri: Optional[str] = None

    @property
    def id(self) -> Optional[str]:
        if not self.uri:
            return None
        return self.uri.split(':')[-1]


@dataclass(frozen=True)
class PlaybackContext:
    """Snapshot of what is currently playing and where."""

    context: Optional[Context] = None
    device: Optional[Device] = None
    is_playing: bool = False
    progress_ms: int = 0
    item: Optional[Track] = None


@dataclass(frozen=True)
class SimplifiedPlaylist:
    """Playlist entry shown in the sidebar."""

    id: str
    name: str
    uri: Optional[str] = None
    owner: str = ""
    track_count: int = 0


@dataclass(frozen=True)
class FullPlaylist:
    """Playlist metadata of the loaded playlist context."""

    id: str
    name: str
    uri: Optional[str] = None
    owner: str = ""
    description: str = ""


@dataclass(frozen=True)
class FullAlbum:
    """Album metadata of the loaded album context."""

    id: str
    name: str
    uri: Optional[str] = None
    artists: Tuple[Artist, ...] = ()
    release_date: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.artists, tuple):
            object.__setattr__(self, 'artists', tuple(self.artists))


@dataclass
class TableState:
    """Cursor of the context tracks table."""

    selected_index: Optional[int] = None
    offset: int = 0

    def select(self, index: Optional[int]) -> None:
        self.selected_index = index
        if index is None:
            self.offset = 0

    def selected(self) -> Optional[int]:
        return self.selected_index


@dataclass
class ListState:
    """Cursor of the playlists list."""

    selected_index: Optional[int] = None
    offset: int = 0

    def select(self, index: Optional[int]) -> None:
        self.selected_index = index
        if index is None:
            self.offset = 0

    def selected(self) -> Optional[int]:
        return self.selected_index


@dataclass
class KeySequence:
    """Keys typed so far for a multi-key shortcut."""

    keys: List[str] = field(default_factory=list)

    def push(self, key: str) -> None:
        self.keys.append(key)

    def clear(self) -> None:
        self.keys.clear()

    def is_empty(self) -> bool:
        return not self.keys
