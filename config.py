"""Configuration management for the recently played README updater."""

import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


ENV_FILE = ".env"

REQUIRED_VARS = ("CLIENT_ID", "CLIENT_SECRET", "REFRESH_TOKEN")

RENDER_MODES = ("per-date", "combined")

# Spotify endpoints
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_RECENTLY_PLAYED_URL = "https://api.spotify.com/v1/me/player/recently-played"

# Spotify OAuth constants
SPOTIFY_REDIRECT_URI = "https://oauth.pstmn.io/v1/callback"
SPOTIFY_SCOPE = "user-read-recently-played"

# The recently-played endpoint rejects limits above 50
MAX_FETCH_LIMIT = 50


@dataclass
class Config:
    """Settings for a single run, built once at startup."""
    client_id: str
    client_secret: str
    refresh_token: str
    cursor_path: str = "info-schema.json"
    output_path: str = "README.md"
    archive_dir: Optional[str] = None
    fetch_limit: int = MAX_FETCH_LIMIT
    recent_count: int = 10
    render_mode: str = "per-date"
    trim_archive: bool = True


def _parse_int(env: Mapping[str, str], name: str, default: int, low: int, high: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        print(f"ERROR: {name} must be an integer, got '{raw}'")
        sys.exit(1)
    if not low <= value <= high:
        print(f"ERROR: {name} must be between {low} and {high}, got {value}")
        sys.exit(1)
    return value


def _parse_bool(raw: str, default: bool) -> bool:
    raw = raw.strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def load_config(env: Optional[Mapping[str, str]] = None) -> Config:
    """Build the run configuration from environment variables.

    When ``env`` is omitted, ``.env`` is loaded into ``os.environ`` first
    (without overriding variables that are already set). Exits with status 1
    if a required credential is missing or a setting is invalid.
    """
    if env is None:
        load_dotenv(ENV_FILE, override=False)
        env = os.environ

    missing = [name for name in REQUIRED_VARS if not env.get(name, "").strip()]
    if missing:
        print(f"ERROR: Missing environment variables: {', '.join(missing)}")
        print("\nTo set up:")
        print("1. Copy '.env.example' to '.env'")
        print("2. Fill in CLIENT_ID and CLIENT_SECRET from your Spotify app")
        print("3. Run 'python main.py --setup' to get a REFRESH_TOKEN")
        sys.exit(1)

    render_mode = env.get("RENDER_MODE", "").strip() or "per-date"
    if render_mode not in RENDER_MODES:
        print(f"ERROR: RENDER_MODE must be one of {', '.join(RENDER_MODES)}, got '{render_mode}'")
        sys.exit(1)

    return Config(
        client_id=env["CLIENT_ID"].strip(),
        client_secret=env["CLIENT_SECRET"].strip(),
        refresh_token=env["REFRESH_TOKEN"].strip(),
        cursor_path=env.get("CURSOR_PATH", "").strip() or "info-schema.json",
        output_path=env.get("README_PATH", "").strip() or "README.md",
        archive_dir=env.get("ARCHIVE_DIR", "").strip() or None,
        fetch_limit=_parse_int(env, "FETCH_LIMIT", MAX_FETCH_LIMIT, 1, MAX_FETCH_LIMIT),
        recent_count=_parse_int(env, "RECENT_COUNT", 10, 1, MAX_FETCH_LIMIT),
        render_mode=render_mode,
        trim_archive=_parse_bool(env.get("TRIM_ARCHIVE", ""), True),
    )
