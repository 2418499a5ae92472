import logging
from typing import Any, Callable, Dict, List, Optional

import spotipy
from spotipy.exceptions import SpotifyException
from urllib3.exceptions import ReadTimeoutError

from spotui.domain.conversion import (
    device_from_api,
    full_album_from_api,
    full_playlist_from_api,
    playback_context_from_api,
    simplified_playlist_from_api,
    tracks_from_playlist_items,
    tracks_from_simplified_tracks,
)
from spotui.domain.entities import Device, FullAlbum, FullPlaylist, PlaybackContext, SimplifiedPlaylist, Track
from spotui.domain.errors import NotFound, PermanentFailure, RateLimited, TemporaryFailure
from spotui.domain.ports import PlaybackProvider

logger = logging.getLogger(__name__)

_PLAYLIST_ITEM_FIELDS = 'items(added_at,track(id,uri,name,type,duration_ms,artists(id,uri,name),album(id,uri,name))),next'


class SpotifyProvider(PlaybackProvider):
    """Spotify Web API adapter feeding the update path."""

    def __init__(self,
                 access_token: str,
                 market: Optional[str] = None,
                 page_size: int = 50,
                 skip_invalid_tracks: bool = True,
                 requests_timeout: int = 15):
        """Initialize Spotify provider.

        Args:
            access_token: Spotify access token
            market: Market used to relink tracks, None for the account's market
            page_size: Items requested per page when paging through tracks
            skip_invalid_tracks: Drop malformed track entries instead of failing the whole load
            requests_timeout: Timeout in seconds for each HTTP request
        """
        self.access_token = access_token
        self.market = market
        self.page_size = page_size
        self.skip_invalid_tracks = skip_invalid_tracks
        self._client = spotipy.Spotify(auth=access_token, requests_timeout=requests_timeout)

    def _call(self, operation: str, func: Callable, *args, **kwargs) -> Any:
        """Invoke a spotipy call, mapping its failures onto domain errors."""
        try:
            return func(*args, **kwargs)
        except SpotifyException as e:
            status = getattr(e, 'http_status', None)
            if status == 429:
                headers = getattr(e, 'headers', None) or {}
                retry_after = headers.get('Retry-After', '1')
                try:
                    retry_after_ms = int(float(retry_after) * 1000)
                except (TypeError, ValueError):
                    retry_after_ms = 1000
                logger.warning(f"Rate limited during {operation}, retry after {retry_after_ms}ms")
                raise RateLimited(retry_after_ms)
            if status == 404:
                raise NotFound(f"{operation}: {e.msg if hasattr(e, 'msg') else e}")
            if status in (400, 401, 403):
                logger.error(f"Spotify rejected {operation} with status {status}: {e}")
                raise PermanentFailure(f"{operation} failed with status {status}: {e}")
            logger.error(f"Spotify error during {operation}: {e}")
            raise TemporaryFailure(f"{operation} failed: {e}")
        except ReadTimeoutError as e:
            logger.warning(f"Read timeout during {operation}")
            raise TemporaryFailure(f"{operation} timed out: {e}")

    def _collect_pages(self, operation: str, fetch: Callable[[int, int], Optional[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Gather all items of an offset/limit paged endpoint."""
        items = []
        offset = 0
        limit = self.page_size

        while True:
            page = self._call(operation, fetch, limit, offset)
            if not page or 'items' not in page:
                break

            items.extend(page['items'])

            if len(page['items']) < limit or not page.get('next'):
                break

            offset += limit

        return items

    def current_playback(self) -> Optional[PlaybackContext]:
        payload = self._call('current_playback', self._client.current_playback, market=self.market)
        return playback_context_from_api(payload)

    def devices(self) -> List[Device]:
        payload = self._call('devices', self._client.devices) or {}
        return [device_from_api(d) for d in payload.get('devices') or []]

    def current_user_playlists(self) -> List[SimplifiedPlaylist]:
        items = self._collect_pages(
            'current_user_playlists',
            lambda limit, offset: self._client.current_user_playlists(limit=limit, offset=offset),
        )
        return [simplified_playlist_from_api(p) for p in items if p]

    def playlist(self, playlist_id: str) -> FullPlaylist:
        payload = self._call(
            'playlist', self._client.playlist, playlist_id,
            fields='id,uri,name,description,owner(id,display_name)', market=self.market,
        )
        return full_playlist_from_api(payload)

    def playlist_tracks(self, playlist_id: str) -> List[Track]:
        items = self._collect_pages(
            'playlist_items',
            lambda limit, offset: self._client.playlist_items(
                playlist_id, fields=_PLAYLIST_ITEM_FIELDS, limit=limit, offset=offset,
                market=self.market, additional_types=('track',),
            ),
        )
        tracks = tracks_from_playlist_items(items, skip_invalid=self.skip_invalid_tracks)
        logger.debug(f"Fetched {len(tracks)} of {len(items)} items for playlist {playlist_id}")
        return tracks

    def album(self, album_id: str) -> FullAlbum:
        payload = self._call('album', self._client.album, album_id, market=self.market)
        return full_album_from_api(payload)

    def album_tracks(self, album_id: str) -> List[Track]:
        items = self._collect_pages(
            'album_tracks',
            lambda limit, offset: self._client.album_tracks(
                album_id, limit=limit, offset=offset, market=self.market,
            ),
        )
        tracks = tracks_from_simplified_tracks(items, skip_invalid=self.skip_invalid_tracks)
        logger.debug(f"Fetched {len(tracks)} of {len(items)} tracks for album {album_id}")
        return tracks
