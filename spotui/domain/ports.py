from __future__ import annotations

from typing import List, Optional, Protocol

from .entities import Device, FullAlbum, FullPlaylist, PlaybackContext, SimplifiedPlaylist, Track


class PlaybackProvider(Protocol):
    """Port defining what the update path needs from the streaming service.

    Implementations map provider-specific payloads into domain entities before
    returning, so nothing half-converted reaches the shared state.
    """

    def current_playback(self) -> Optional[PlaybackContext]:
        """Return the current playback, or None when nothing is playing."""

    def devices(self) -> List[Device]:
        """Return the playback devices known to the account."""

    def current_user_playlists(self) -> List[SimplifiedPlaylist]:
        """Return the playlists shown in the sidebar."""

    def playlist(self, playlist_id: str) -> FullPlaylist:
        """Return playlist metadata."""

    def playlist_tracks(self, playlist_id: str) -> List[Track]:
        """Return every track of the playlist in playlist order."""

    def album(self, album_id: str) -> FullAlbum:
        """Return album metadata."""

    def album_tracks(self, album_id: str) -> List[Track]:
        """Return every track of the album in album order."""
