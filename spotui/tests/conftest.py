import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


@pytest.fixture(autouse=True)
def _clear_spotify_env():
    """Ensure SPOTIFY_* and SPOTUI_* variables do not leak across tests.
    A developer shell may export real tokens; clear them before each test
    and restore afterwards so tests explicitly setting them remain deterministic.
    """
    keys = [k for k in os.environ if k.startswith('SPOTIFY_') or k.startswith('SPOTUI_')]
    backup = {k: os.environ.get(k) for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


def playlist_item(name="Song", artists=("Artist",), album="Album", duration_ms=180000,
                  added_at="2021-03-04T05:06:07Z", track_id="t1", uri=None):
    """Build a Spotify playlist item payload."""
    return {
        'added_at': added_at,
        'track': {
            'id': track_id,
            'uri': uri or f"spotify:track:{track_id}",
            'name': name,
            'type': 'track',
            'duration_ms': duration_ms,
            'artists': [{'id': f"a{i}", 'uri': f"spotify:artist:a{i}", 'name': a} for i, a in enumerate(artists)],
            'album': {'id': 'al1', 'uri': 'spotify:album:al1', 'name': album},
        },
    }


def simplified_track(name="Song", artists=("Artist",), duration_ms=180000, track_id="t1", uri=None):
    """Build a Spotify simplified track payload (album tracks endpoint)."""
    return {
        'id': track_id,
        'uri': uri or f"spotify:track:{track_id}",
        'name': name,
        'duration_ms': duration_ms,
        'artists': [{'id': None, 'uri': None, 'name': a} for a in artists],
    }


@pytest.fixture
def make_playlist_item():
    return playlist_item


@pytest.fixture
def make_simplified_track():
    return simplified_track
