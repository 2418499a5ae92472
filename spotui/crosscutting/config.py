import os
import json
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from pathlib import Path

from dotenv import dotenv_values


class ConfigError(Exception):
    """Configuration error."""
    pass


def _default_keymaps() -> Dict[str, str]:
    return {
        'q': 'Quit',
        'n': 'NextTrack',
        'p': 'PreviousTrack',
        'space': 'ResumePause',
        '/': 'SearchContext',
        'P': 'SwitchPlaylist',
        's a': 'SortTrackByAddedDate',
        's n': 'SortTrackByTitle',
        's A': 'SortTrackByAlbum',
        's r': 'SortTrackByArtists',
        's d': 'SortTrackByDuration',
        'esc': 'Quit',
        '?': 'OpenCommandHelp',
    }


@dataclass
class AppConfig:
    """Application settings. Stored on the state, read by the update path."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: str = 'http://localhost:8888/callback'
    market: Optional[str] = None
    page_size: int = 50
    skip_invalid_tracks: bool = True
    refresh_interval_ms: int = 1000
    log_level: str = 'INFO'


@dataclass
class KeymapConfig:
    """Key sequence to command mapping. Stored opaquely on the state."""

    keymaps: Dict[str, str] = field(default_factory=_default_keymaps)

    def command_for(self, keys: str) -> Optional[str]:
        return self.keymaps.get(keys)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class ConfigManager:
    """Loads application settings, key bindings and tokens."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize config manager."""
        self.config_dir = Path(config_dir) if config_dir else Path.home() / '.spotui'
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.tokens_file = self.config_dir / 'tokens.json'
        self.env_file = self.config_dir / '.env'
        self.keymap_file = self.config_dir / 'keymap.json'

    def load_env_vars(self) -> Dict[str, str]:
        """Load variables from the .env file, overridden by the process environment."""
        env_vars = {}

        if self.env_file.exists():
            try:
                env_vars = {k: v for k, v in dotenv_values(self.env_file).items() if v is not None}
            except (IOError, UnicodeDecodeError) as e:
                raise ConfigError(f"Failed to load .env file {self.env_file}: {e}")

        for key, value in os.environ.items():
            if key.startswith('SPOTUI_') or key.startswith('SPOTIFY_'):
                env_vars[key] = value

        return env_vars

    def load_app_config(self) -> AppConfig:
        """Build AppConfig from .env and environment variables."""
        env_vars = self.load_env_vars()
        config = AppConfig()

        config.client_id = env_vars.get('SPOTIFY_CLIENT_ID') or None
        config.client_secret = env_vars.get('SPOTIFY_CLIENT_SECRET') or None
        config.redirect_uri = env_vars.get('SPOTIFY_REDIRECT_URI') or config.redirect_uri
        config.market = env_vars.get('SPOTUI_MARKET') or None
        config.log_level = (env_vars.get('SPOTUI_LOG_LEVEL') or config.log_level).upper()

        if 'SPOTUI_SKIP_INVALID_TRACKS' in env_vars:
            config.skip_invalid_tracks = _parse_bool(env_vars['SPOTUI_SKIP_INVALID_TRACKS'])

        for key, attr in (('SPOTUI_PAGE_SIZE', 'page_size'),
                          ('SPOTUI_REFRESH_INTERVAL_MS', 'refresh_interval_ms')):
            if key in env_vars:
                try:
                    value = int(env_vars[key])
                except ValueError:
                    raise ConfigError(f"{key} must be an integer, got {env_vars[key]!r}")
                if value <= 0:
                    raise ConfigError(f"{key} must be positive, got {value}")
                setattr(config, attr, value)

        return config

    def load_keymap_config(self) -> KeymapConfig:
        """Build KeymapConfig from defaults overlaid with keymap.json."""
        config = KeymapConfig()
        if not self.keymap_file.exists():
            return config

        try:
            with open(self.keymap_file, 'r') as f:
                overrides = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Failed to load keymap from {self.keymap_file}: {e}")

        if not isinstance(overrides, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in overrides.items()):
            raise ConfigError(f"Keymap file {self.keymap_file} must map key sequences to command names")

        config.keymaps.update(overrides)
        return config

    def load_tokens(self) -> Dict[str, Any]:
        """Load tokens from tokens.json file."""
        if not self.tokens_file.exists():
            return {}

        try:
            with open(self.tokens_file, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Failed to load tokens from {self.tokens_file}: {e}")

    def get_spotify_access_token(self) -> Optional[str]:
        """Get the Spotify access token from the environment, falling back to tokens.json."""
        token = self.load_env_vars().get('SPOTIFY_ACCESS_TOKEN')
        if token and token.strip():
            return token
        spotify_tokens = self.load_tokens().get('spotify') or {}
        return spotify_tokens.get('access_token')

    def get_token_expires_at(self) -> Optional[float]:
        """Get the stored token expiry as epoch seconds, if any."""
        spotify_tokens = self.load_tokens().get('spotify') or {}
        expires_at = spotify_tokens.get('expires_at')
        if expires_at is None:
            return None
        try:
            return float(expires_at)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid expires_at in {self.tokens_file}: {expires_at!r}")


# Global instance, created on first use
config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global config manager instance."""
    global config_manager
    if config_manager is None:
        config_manager = ConfigManager()
    return config_manager


def setup_config(config_dir: Optional[str] = None) -> ConfigManager:
    """Setup configuration with custom directory."""
    global config_manager
    config_manager = ConfigManager(config_dir)
    return config_manager
