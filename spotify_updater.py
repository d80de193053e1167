"""Fetch recently played tracks from Spotify, archive them by date and render README.md."""

import json
import sys
import tempfile
from typing import Dict, List, Optional, Tuple

import requests

from config import Config, SPOTIFY_RECENTLY_PLAYED_URL, SPOTIFY_TOKEN_URL
from database import CursorStore, DateArchive
from models import PayloadError, PlayEvent, RecentlyPlayedPage
from partition import partition_by_date, sort_by_played_at
from renderer import RenderError, render_archive, render_events


def get_access_token(refresh_token: str, client_id: str, client_secret: str) -> Optional[str]:
    """Exchange a refresh token for an access token.

    Returns None when the response carries no ``access_token``.
    """
    headers = {
        "Content-Type": "application/x-www-form-urlencoded"
    }

    data = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": client_id,
        "client_secret": client_secret
    }

    response = requests.post(SPOTIFY_TOKEN_URL, headers=headers, data=data)
    response.raise_for_status()
    return response.json().get("access_token")


def get_recently_played(access_token: str, limit: int = 10, after: Optional[str] = None) -> Dict:
    """Fetch one page of recently played tracks and return the JSON body as is."""
    headers = {
        "Authorization": f"Bearer {access_token}"
    }

    params = {"limit": limit}
    if after is not None:
        params["after"] = after

    response = requests.get(SPOTIFY_RECENTLY_PLAYED_URL, headers=headers, params=params)
    response.raise_for_status()
    return response.json()


def _print_response(e: requests.exceptions.RequestException):
    if getattr(e, 'response', None) is not None:
        print(f"Response status: {e.response.status_code}")
        print(f"Response: {e.response.text}")


class SpotifyUpdater:
    """Runs one pass: fetch new plays, archive them per date, render README.md."""

    def __init__(self, config: Config):
        self.config = config
        self.access_token = None
        self.cursor_store = CursorStore(config.cursor_path)
        self.archive = None

    def refresh_spotify_token(self) -> bool:
        """Refresh the Spotify access token using the refresh token."""
        try:
            self.access_token = get_access_token(
                self.config.refresh_token,
                self.config.client_id,
                self.config.client_secret,
            )
        except requests.exceptions.RequestException as e:
            print(f"✗ Failed to refresh Spotify token: {e}")
            _print_response(e)
            return False

        if not self.access_token:
            print("✗ Token response did not contain an access token")
            return False

        print("✓ Spotify access token refreshed successfully")
        return True

    def fetch_recently_played(self, after: Optional[str]) -> Optional[RecentlyPlayedPage]:
        """Fetch the plays after ``after``, or None if the request or payload failed."""
        try:
            data = get_recently_played(self.access_token, self.config.fetch_limit, after)
            page = RecentlyPlayedPage.from_dict(data)
        except requests.exceptions.RequestException as e:
            print(f"✗ Failed to fetch recently played tracks: {e}")
            _print_response(e)
            return None
        except PayloadError as e:
            print(f"✗ Unexpected recently played response: {e}")
            return None

        print(f"✓ Found {len(page.items)} recently played tracks")
        return page

    def open_archive(self) -> DateArchive:
        directory = self.config.archive_dir
        if directory is None:
            directory = tempfile.mkdtemp()
            print(f"Temporary directory created: {directory}")
        return DateArchive(directory)

    def archive_date_groups(self, groups: Dict[str, List[PlayEvent]]) -> List[Tuple[str, str]]:
        """Append each date group to its archive file; returns (date, path) pairs."""
        archived = []
        for date, events in groups.items():
            path = self.archive.append(date, events)
            print(f"✓ Wrote {len(events)} items to {path}")
            archived.append((date, path))
        return archived

    def render_date(self, path: str) -> bool:
        """Render one date archive; failures are reported and skipped."""
        try:
            render_archive(
                self.archive,
                path,
                self.config.output_path,
                count=self.config.recent_count,
                trim=self.config.trim_archive,
            )
            return True
        except (RenderError, PayloadError, OSError, json.JSONDecodeError) as e:
            print(f"✗ Error generating {self.config.output_path} from {path}: {e}", file=sys.stderr)
            return False

    def render_combined(self, archived: List[Tuple[str, str]]) -> bool:
        """Render the most recent plays across every archive touched in this run."""
        events = []
        for date, path in sorted(archived):
            try:
                loaded = [PlayEvent.from_dict(item) for item in self.archive.load(path)]
            except (PayloadError, OSError, json.JSONDecodeError) as e:
                print(f"✗ Skipping {path}: {e}", file=sys.stderr)
                continue
            events.extend(loaded)

        if not events:
            print(f"✗ No readable archives, leaving {self.config.output_path} unchanged", file=sys.stderr)
            return False

        try:
            shown = render_events(sort_by_played_at(events), self.config.output_path, self.config.recent_count)
        except (RenderError, OSError) as e:
            print(f"✗ Error generating {self.config.output_path}: {e}", file=sys.stderr)
            return False

        print(f"✓ {self.config.output_path} rendered with {len(shown)} tracks from {len(archived)} dates")
        return True

    def render(self, archived: List[Tuple[str, str]]):
        # Archives are only trimmed in per-date mode
        if self.config.render_mode == "combined":
            self.render_combined(archived)
            return

        # Each date overwrites the output, so the last date processed is what remains
        for date, path in archived:
            self.render_date(path)

    def run(self):
        """Main execution flow."""
        print("=" * 50)
        print("Starting Recently Played Update")
        print("=" * 50)

        # Step 1: Refresh Spotify token
        if not self.refresh_spotify_token():
            print("\nFailed to authenticate with Spotify.")
            print("Make sure REFRESH_TOKEN is set correctly.")
            print("Run with --setup to get a new refresh token.")
            sys.exit(1)

        # Step 2: Read the stored cursor and fetch what was played after it
        cursor_after = self.cursor_store.read_after()
        page = self.fetch_recently_played(cursor_after)
        if page is None:
            sys.exit(1)

        if not page.items:
            print("No new tracks found")
            sys.exit(0)

        print(f"previous cursor: {cursor_after}")
        print(f"new cursor: {page.cursor_after}")

        # Step 3: Archive plays per calendar date
        groups = partition_by_date(page.items)
        self.archive = self.open_archive()
        archived = self.archive_date_groups(groups)

        # Step 4: Render README.md
        print(f"\nRendering {self.config.output_path} ({self.config.render_mode})...")
        self.render(archived)

        # Step 5: Store the new cursor
        self.cursor_store.save_after(page.cursor_after)
        print(f"✓ Cursor saved to {self.config.cursor_path}")
