from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from spotui.crosscutting.config import AppConfig, KeymapConfig
from spotui.domain.entities import (
    ContextType,
    Device,
    EventState,
    FullAlbum,
    FullPlaylist,
    KeySequence,
    ListState,
    PlaybackContext,
    SimplifiedPlaylist,
    TableState,
    Track,
)
from spotui.domain.sorting import ContextSortOrder, sort_tracks

logger = logging.getLogger(__name__)

CANNOT_INFER_CONTEXT = "Cannot infer the playing context from current playback"
UNKNOWN_CONTEXT_TYPE = "Unknown context type"
LOADING = "loading..."


def matches_query(track: Track, query: str) -> bool:
    """Case-insensitive substring match of ``query`` against the track's basic info."""
    return query.lower() in track.basic_info.lower()


@dataclass
class ContextSearchState:
    """Active search query and the tracks of the context matching it.

    ``tracks`` is only meaningful while ``query`` is not None.
    """

    query: Optional[str] = None
    tracks: List[Track] = field(default_factory=list)

    def is_active(self) -> bool:
        return self.query is not None


@dataclass
class State:
    """Everything the client knows at a point in time.

    A single instance is shared between the render path and the update path
    through :class:`spotui.application.shared.SharedState`; all mutation goes
    through the methods below while holding the write lock.
    """

    app_config: AppConfig = field(default_factory=AppConfig)
    keymap_config: KeymapConfig = field(default_factory=KeymapConfig)

    is_running: bool = True
    auth_token_expires_at: datetime = field(default_factory=datetime.now)

    devices: List[Device] = field(default_factory=list)

    current_playback_context: Optional[PlaybackContext] = None
    current_playlist: Optional[FullPlaylist] = None
    current_album: Optional[FullAlbum] = None
    current_playlists: List[SimplifiedPlaylist] = field(default_factory=list)
    current_context_tracks: List[Track] = field(default_factory=list)

    current_key_prefix: KeySequence = field(default_factory=KeySequence)

    # event states
    current_event_state: EventState = EventState.DEFAULT
    context_search_state: ContextSearchState = field(default_factory=ContextSearchState)

    # UI states
    context_tracks_table_ui_state: TableState = field(default_factory=TableState)
    playlists_list_ui_state: ListState = field(default_factory=ListState)
    shortcuts_help_ui_state: bool = False

    @classmethod
    def new(cls, app_config: Optional[AppConfig] = None,
            keymap_config: Optional[KeymapConfig] = None):
        """Create the process-wide state wrapped in its lock."""
        from spotui.application.shared import SharedState

        state = cls()
        if app_config is not None:
            state.app_config = app_config
        if keymap_config is not None:
            state.keymap_config = keymap_config
        return SharedState(state)

    # derived reads

    def get_context_type(self) -> Optional[ContextType]:
        """Return the type (album, playlist, ...) of the current playback context."""
        if self.current_playback_context is None:
            return None
        context = self.current_playback_context.context
        if context is None:
            return None
        return context.type

    def get_context_description(self) -> str:
        context_type = self.get_context_type()
        if context_type is None:
            return CANNOT_INFER_CONTEXT
        if context_type is ContextType.ALBUM:
            name = self.current_album.name if self.current_album is not None else LOADING
            return f"Album: {name}"
        if context_type is ContextType.PLAYLIST:
            name = self.current_playlist.name if self.current_playlist is not None else LOADING
            return f"Playlist: {name}"
        return UNKNOWN_CONTEXT_TYPE

    def get_context_filtered_tracks(self) -> Tuple[Track, ...]:
        """Return the tracks the user currently sees.

        While a search query is active that is the filtered subsequence, otherwise
        the full context list. The tuple shares the Track objects of the state.
        """
        if self.context_search_state.is_active():
            return tuple(self.context_search_state.tracks)
        return tuple(self.current_context_tracks)

    def get_event_state(self) -> EventState:
        return self.current_event_state

    # mutations, write lock only

    def _refresh_search_results(self) -> None:
        query = self.context_search_state.query
        if query is None:
            return
        self.context_search_state.tracks = [
            t for t in self.current_context_tracks if matches_query(t, query)
        ]

    def set_context_tracks(self, tracks: Sequence[Track]) -> None:
        """Replace the loaded context's tracks wholesale."""
        self.current_context_tracks = list(tracks)
        self._refresh_search_results()
        self.context_tracks_table_ui_state.select(0 if self.current_context_tracks else None)

    def set_search_query(self, query: str) -> None:
        self.context_search_state.query = query
        self._refresh_search_results()
        logger.debug(f"Search query set: {len(self.context_search_state.tracks)} of "
                     f"{len(self.current_context_tracks)} tracks match")

    def clear_search_query(self) -> None:
        self.context_search_state.query = None

    def sort_context_tracks(self, sort_order: ContextSortOrder) -> None:
        """Sort the loaded context's tracks in place by the given criterion."""
        sort_tracks(self.current_context_tracks, sort_order)
        self._refresh_search_results()

    def set_event_state(self, event_state: EventState) -> None:
        self.current_event_state = event_state

    def set_playback_context(self, playback: Optional[PlaybackContext]) -> None:
        self.current_playback_context = playback

    def set_devices(self, devices: Sequence[Device]) -> None:
        self.devices = list(devices)

    def set_playlists(self, playlists: Sequence[SimplifiedPlaylist]) -> None:
        self.current_playlists = list(playlists)
        selected = self.playlists_list_ui_state.selected()
        if selected is None or selected >= len(self.current_playlists):
            self.playlists_list_ui_state.select(0 if self.current_playlists else None)

    def set_current_playlist(self, playlist: Optional[FullPlaylist]) -> None:
        self.current_playlist = playlist
        if playlist is not None:
            self.current_album = None

    def set_current_album(self, album: Optional[FullAlbum]) -> None:
        self.current_album = album
        if album is not None:
            self.current_playlist = None

    def clear_loaded_context(self) -> None:
        """Drop the metadata and tracks of the previously loaded context."""
        self.current_playlist = None
        self.current_album = None
        self.set_context_tracks([])


# Methods that change the state; a read handle refuses to expose them.
MUTATORS = frozenset({
    'set_context_tracks',
    'set_search_query',
    'clear_search_query',
    'sort_context_tracks',
    'set_event_state',
    'set_playback_context',
    'set_devices',
    'set_playlists',
    'set_current_playlist',
    'set_current_album',
    'clear_loaded_context',
    '_refresh_search_results',
})
