import argparse
import logging
import signal
import sys
import time
from datetime import datetime
from typing import List, Optional

from spotui.application.loader import ContextLoader
from spotui.application.state import State
from spotui.crosscutting.config import ConfigError, ConfigManager, get_config_manager
from spotui.crosscutting.logging import log_error, setup_logging
from spotui.domain.entities import Track
from spotui.domain.layout import display_width, truncate_string
from spotui.domain.sorting import ContextSortOrder
from spotui.infrastructure.providers.spotify import SpotifyProvider


def format_duration(duration_ms: int) -> str:
    seconds = duration_ms // 1000
    return f"{seconds // 60}:{seconds % 60:02d}"


def format_track_rows(tracks: List[Track], width: int) -> List[str]:
    """Lay out tracks as fixed-width columns fitting ``width`` terminal columns."""
    index_width = max(len(str(len(tracks))), 1)
    duration_width = 6
    # index, three text columns and duration separated by single spaces
    flexible = max(width - index_width - duration_width - 4, 3)
    name_width = flexible * 4 // 10
    artists_width = flexible * 3 // 10
    album_width = flexible - name_width - artists_width

    def cell(text: str, column_width: int) -> str:
        text = truncate_string(text, column_width)
        # pad by display width, not character count
        return text + ' ' * max(column_width - display_width(text), 0)

    rows = []
    for index, track in enumerate(tracks, start=1):
        rows.append(' '.join([
            str(index).rjust(index_width),
            cell(track.name, name_width),
            cell(track.artists_info, artists_width),
            cell(track.album.name, album_width),
            format_duration(track.duration).rjust(duration_width),
        ]))
    return rows


class CLI:
    """Command Line Interface for spotui."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize CLI."""
        self.config_manager = config_manager
        self.parser = self._create_parser()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='spotui',
            description='Inspect Spotify playback from the terminal'
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        tracks_parser = subparsers.add_parser('tracks', help='Show tracks of the playing context')
        tracks_parser.add_argument(
            '--sort',
            choices=[order.value for order in ContextSortOrder],
            help='Sort tracks by this criterion'
        )
        tracks_parser.add_argument(
            '--search',
            help='Only show tracks whose title, artists or album contain this text'
        )
        tracks_parser.add_argument(
            '--width',
            type=int,
            default=100,
            help='Table width in terminal columns (default: 100)'
        )

        subparsers.add_parser('devices', help='List playback devices')
        subparsers.add_parser('playlists', help='List your playlists')

        for sub in subparsers.choices.values():
            sub.add_argument(
                '--log-level',
                choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                default=None,
                help='Set logging level'
            )

        return parser

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger = logging.getLogger(__name__)
            logger.warning(f"Received signal {signum}, shutting down gracefully...")
            self._cleanup_resources()
            sys.exit(130)  # Standard exit code for signal termination

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def _cleanup_resources(self) -> None:
        """Clean up resources on exit."""
        logger = logging.getLogger(__name__)
        if self._start_time:
            duration = time.time() - self._start_time
            logger.debug(f"CLI execution time: {duration:.2f}s")

    def _create_session(self, log_level: Optional[str] = None):
        """Create the shared state and a loader bound to a Spotify provider."""
        manager = self.config_manager or get_config_manager()
        app_config = manager.load_app_config()
        if log_level is None:
            logging.getLogger('spotui').setLevel(getattr(logging, app_config.log_level, logging.INFO))
        keymap_config = manager.load_keymap_config()

        access_token = manager.get_spotify_access_token()
        if not access_token:
            raise ConfigError("SPOTIFY_ACCESS_TOKEN not found in environment or tokens.json")

        shared = State.new(app_config, keymap_config)
        expires_at = manager.get_token_expires_at()
        if expires_at is not None:
            with shared.write() as state:
                state.auth_token_expires_at = datetime.fromtimestamp(expires_at)

        provider = SpotifyProvider(
            access_token,
            market=app_config.market,
            page_size=app_config.page_size,
            skip_invalid_tracks=app_config.skip_invalid_tracks,
        )
        return shared, ContextLoader(shared, provider)

    def _show_tracks(self, args: argparse.Namespace) -> None:
        shared, loader = self._create_session(args.log_level)
        loader.refresh_playback()
        loader.load_current_context()

        if args.sort:
            loader.sort(ContextSortOrder.from_name(args.sort))
        if args.search is not None:
            loader.search(args.search)

        with shared.read() as state:
            description = state.get_context_description()
            tracks = list(state.get_context_filtered_tracks())

        print(truncate_string(description, args.width))
        print("-" * max(args.width, 0))
        for row in format_track_rows(tracks, args.width):
            print(row)

    def _list_devices(self, args: argparse.Namespace) -> None:
        shared, loader = self._create_session(args.log_level)
        loader.refresh_playback()

        with shared.read() as state:
            devices = list(state.devices)

        if not devices:
            print("No devices available")
        for device in devices:
            active_indicator = "[ACTIVE]" if device.is_active else ""
            volume = f"{device.volume_percent}%" if device.volume_percent is not None else "-"
            print(f"{device.name} ({device.type}) volume: {volume} {active_indicator}".rstrip())

    def _list_playlists(self, args: argparse.Namespace) -> None:
        shared, loader = self._create_session(args.log_level)
        loader.refresh_playlists()

        with shared.read() as state:
            playlists = list(state.current_playlists)

        for playlist in playlists:
            print(f"{playlist.id}: {playlist.name} by {playlist.owner} (tracks: {playlist.track_count})")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the process exit code."""
        self._start_time = time.time()
        self._setup_signal_handlers()

        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return 1

        setup_logging(level=args.log_level or 'WARNING')
        logger = logging.getLogger(__name__)

        try:
            if args.command == 'tracks':
                self._show_tracks(args)
            elif args.command == 'devices':
                self._list_devices(args)
            elif args.command == 'playlists':
                self._list_playlists(args)
            return 0
        except KeyboardInterrupt:
            logger.warning("Operation cancelled by user")
            return 130
        except Exception as e:
            log_error(logger, f"Command '{args.command}' failed", e)
            return 1
        finally:
            self._cleanup_resources()


def main():
    """Main entry point."""
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()
