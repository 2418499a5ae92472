from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from spotui.application.shared import SharedState
from spotui.crosscutting.logging import CorrelationContext, log_context_loaded
from spotui.domain.entities import ContextType
from spotui.domain.ports import PlaybackProvider
from spotui.domain.sorting import ContextSortOrder

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Outcome of loading the playing context into the state."""

    context_uri: Optional[str]
    context_type: Optional[ContextType]
    track_count: int
    installed: bool


class ContextLoader:
    """Update path: fetches data from a provider and installs it in the shared state.

    Provider calls happen outside the lock. Each result is installed with a single
    write, so readers never observe a half-loaded context.
    """

    def __init__(self, shared: SharedState, provider: PlaybackProvider):
        self.shared = shared
        self.provider = provider

    def refresh_playback(self) -> None:
        """Fetch the current playback and the device list."""
        playback = self.provider.current_playback()
        devices = self.provider.devices()
        with self.shared.write() as state:
            state.set_playback_context(playback)
            state.set_devices(devices)
        logger.debug(f"Playback refreshed: {len(devices)} devices, "
                     f"playing={playback.is_playing if playback else False}")

    def refresh_playlists(self) -> None:
        playlists = self.provider.current_user_playlists()
        with self.shared.write() as state:
            state.set_playlists(playlists)
        logger.debug(f"Loaded {len(playlists)} playlists")

    def load_current_context(self) -> LoadResult:
        """Load metadata and tracks of the context currently driving playback.

        Playlists and albums are supported; for any other context the loaded
        metadata and track list are cleared. If playback moved to another context while fetching, the
        fetched data is discarded.
        """
        with self.shared.read() as state:
            context_type = state.get_context_type()
            playback = state.current_playback_context
            context = playback.context if playback is not None else None
            context_uri = context.uri if context is not None else None
            context_id = context.id if context is not None else None

        with CorrelationContext(context_uri=context_uri, stage='load_context'):
            if context_type is ContextType.PLAYLIST and context_id:
                playlist = self.provider.playlist(context_id)
                tracks = self.provider.playlist_tracks(context_id)
                album = None
            elif context_type is ContextType.ALBUM and context_id:
                album = self.provider.album(context_id)
                tracks = self.provider.album_tracks(context_id)
                playlist = None
            else:
                logger.info(f"No track list for context type {context_type.value if context_type else None}")
                with self.shared.write() as state:
                    if not self._still_playing(state, context_uri):
                        return LoadResult(context_uri, context_type, 0, installed=False)
                    state.clear_loaded_context()
                return LoadResult(context_uri, context_type, 0, installed=True)

            with self.shared.write() as state:
                if not self._still_playing(state, context_uri):
                    return LoadResult(context_uri, context_type, len(tracks), installed=False)

                if playlist is not None:
                    state.set_current_playlist(playlist)
                else:
                    state.set_current_album(album)
                state.set_context_tracks(tracks)

            log_context_loaded(logger, context_uri, context_type.value, len(tracks))
            return LoadResult(context_uri, context_type, len(tracks), installed=True)

    @staticmethod
    def _still_playing(state, context_uri: Optional[str]) -> bool:
        current = state.current_playback_context
        current_uri = current.context.uri if current is not None and current.context is not None else None
        if current_uri != context_uri:
            logger.info(f"Playback moved to {current_uri} while loading; discarding")
            return False
        return True

    def search(self, query: Optional[str]) -> int:
        """Apply a search query, or clear it with None. Returns the visible track count."""
        with self.shared.write() as state:
            if query is None:
                state.clear_search_query()
            else:
                state.set_search_query(query)
            return len(state.get_context_filtered_tracks())

    def sort(self, order: ContextSortOrder) -> None:
        with self.shared.write() as state:
            state.sort_context_tracks(order)
        logger.debug(f"Context tracks sorted by {order.value}")
