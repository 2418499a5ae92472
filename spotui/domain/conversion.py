"""Conversion of Spotify Web API payloads into domain entities.

Payloads are the plain dicts returned by ``spotipy``. Two track shapes reach the
track table: playlist items, which wrap a full track and carry the time the
track was added, and simplified tracks (album tracks), which carry neither an
album nor an add-time.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .entities import (
    Album,
    Artist,
    Context,
    ContextType,
    Device,
    FullAlbum,
    FullPlaylist,
    PlaybackContext,
    SimplifiedPlaylist,
    Track,
)
from .errors import ConversionError, MissingTrackData

logger = logging.getLogger(__name__)


def _require(payload: Dict[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise MissingTrackData(key)
    return value


def _artists_from_api(artists: Optional[Iterable[Dict[str, Any]]]) -> Tuple[Artist, ...]:
    # display order, duplicates kept
    return tuple(
        Artist(id=a.get('id'), uri=a.get('uri'), name=a.get('name') or '')
        for a in artists or []
    )


def _album_from_api(album: Optional[Dict[str, Any]]) -> Album:
    if not album:
        return Album()
    return Album(id=album.get('id'), uri=album.get('uri'), name=album.get('name') or '')


def _duration_from_api(payload: Dict[str, Any]) -> int:
    duration = payload.get('duration_ms') or 0
    try:
        duration = int(duration)
    except (TypeError, ValueError) as e:
        raise ConversionError(f"Invalid duration_ms {duration!r}: {e}")
    return max(0, duration)


def parse_added_at(value: Any) -> int:
    """Convert an ISO-8601 add-time into whole seconds since epoch.

    A missing value (the API sends null for very old playlist entries) means the
    add-time is unknown and maps to 0. Naive timestamps are read as UTC and
    instants before the epoch clamp to 0.
    """
    if value is None:
        return 0
    if not isinstance(value, str) or not value:
        raise ConversionError(f"Invalid added_at timestamp: {value!r}")
    text = value[:-1] + '+00:00' if value.endswith('Z') else value
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as e:
        raise ConversionError(f"Invalid added_at timestamp {value!r}: {e}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(0, int(moment.timestamp()))


def track_from_playlist_item(item: Dict[str, Any]) -> Track:
    """Convert a playlist item into a Track.

    Raises:
        MissingTrackData: the item carries no track payload, or the payload has no uri
        ConversionError: the add-time or duration cannot be read
    """
    payload = item.get('track')
    if payload is None:
        raise MissingTrackData('track', "Playlist item has no track payload")
    return Track(
        id=payload.get('id'),
        uri=_require(payload, 'uri'),
        name=payload.get('name') or '',
        artists=_artists_from_api(payload.get('artists')),
        album=_album_from_api(payload.get('album')),
        duration=_duration_from_api(payload),
        added_at=parse_added_at(item.get('added_at')),
    )


def track_from_simplified_track(payload: Dict[str, Any]) -> Track:
    """Convert a simplified track (no album, no add-time) into a Track."""
    return Track(
        id=payload.get('id'),
        uri=_require(payload, 'uri'),
        name=payload.get('name') or '',
        artists=_artists_from_api(payload.get('artists')),
        album=Album(),
        duration=_duration_from_api(payload),
        added_at=0,
    )


def track_from_full_track(payload: Dict[str, Any]) -> Track:
    """Convert a full track, such as the currently playing item, into a Track."""
    return Track(
        id=payload.get('id'),
        uri=_require(payload, 'uri'),
        name=payload.get('name') or '',
        artists=_artists_from_api(payload.get('artists')),
        album=_album_from_api(payload.get('album')),
        duration=_duration_from_api(payload),
        added_at=0,
    )


def _convert_all(payloads, convert, skip_invalid: bool, shape: str) -> List[Track]:
    tracks = []
    for index, payload in enumerate(payloads or []):
        try:
            tracks.append(convert(payload))
        except ConversionError as e:
            if not skip_invalid:
                raise
            logger.warning(f"Skipping {shape} at index {index}: {e}")
    return tracks


def tracks_from_playlist_items(items: Iterable[Dict[str, Any]], skip_invalid: bool = True) -> List[Track]:
    """Convert a page of playlist items.

    With ``skip_invalid`` the items that fail conversion are dropped and logged;
    otherwise the first failure propagates and no list is returned.
    """
    return _convert_all(items, track_from_playlist_item, skip_invalid, 'playlist item')


def tracks_from_simplified_tracks(payloads: Iterable[Dict[str, Any]], skip_invalid: bool = True) -> List[Track]:
    return _convert_all(payloads, track_from_simplified_track, skip_invalid, 'simplified track')


def context_type_from_tag(tag: Optional[str]) -> Optional[ContextType]:
    if not tag:
        return None
    try:
        return ContextType(tag.lower())
    except ValueError:
        logger.debug(f"Unrecognized context type tag: {tag}")
        return None


def device_from_api(payload: Dict[str, Any]) -> Device:
    volume = payload.get('volume_percent')
    return Device(
        id=payload.get('id'),
        name=payload.get('name') or '',
        type=payload.get('type') or '',
        is_active=bool(payload.get('is_active')),
        volume_percent=int(volume) if volume is not None else None,
    )


def playback_context_from_api(payload: Optional[Dict[str, Any]]) -> Optional[PlaybackContext]:
    """Convert the currently-playing response. An empty response means nothing plays."""
    if not payload:
        return None

    context = None
    context_payload = payload.get('context')
    if context_payload:
        context = Context(
            type=context_type_from_tag(context_payload.get('type')),
            uri=context_payload.get('uri'),
        )

    device_payload = payload.get('device')
    item_payload = payload.get('item')
    item = None
    if item_payload and item_payload.get('type', 'track') == 'track':
        item = track_from_full_track(item_payload)

    return PlaybackContext(
        context=context,
        device=device_from_api(device_payload) if device_payload else None,
        is_playing=bool(payload.get('is_playing')),
        progress_ms=int(payload.get('progress_ms') or 0),
        item=item,
    )


def _owner_name(payload: Dict[str, Any]) -> str:
    owner = payload.get('owner') or {}
    return owner.get('display_name') or owner.get('id') or ''


def _required_field(payload: Dict[str, Any], key: str, shape: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise ConversionError(f"{shape} payload is missing '{key}'")
    return value


def simplified_playlist_from_api(payload: Dict[str, Any]) -> SimplifiedPlaylist:
    tracks = payload.get('tracks') or {}
    return SimplifiedPlaylist(
        id=_required_field(payload, 'id', 'Playlist'),
        name=payload.get('name') or '',
        uri=payload.get('uri'),
        owner=_owner_name(payload),
        track_count=int(tracks.get('total') or 0),
    )


def full_playlist_from_api(payload: Dict[str, Any]) -> FullPlaylist:
    return FullPlaylist(
        id=_required_field(payload, 'id', 'Playlist'),
        name=payload.get('name') or '',
        uri=payload.get('uri'),
        owner=_owner_name(payload),
        description=payload.get('description') or '',
    )


def full_album_from_api(payload: Dict[str, Any]) -> FullAlbum:
    return FullAlbum(
        id=_required_field(payload, 'id', 'Album'),
        name=payload.get('name') or '',
        uri=payload.get('uri'),
        artists=_artists_from_api(payload.get('artists')),
        release_date=payload.get('release_date'),
    )
