"""Render recently played tracks as the HTML table written into README.md."""

from html import escape
from typing import Any, Dict, List

from database import DateArchive
from models import PayloadError, PlayEvent


ARTWORK_WIDTH = 64

TABLE_OPEN = '<table style="border-collapse: collapse; width: 100%;">'
HEADER_ROW = (
    '<tr style="background-color: #f2f2f2;">'
    '<th style="padding: 8px; text-align: left;">Album Artwork</th>'
    '<th style="padding: 8px; text-align: left;">Track Name</th>'
    '<th style="padding: 8px; text-align: left;">Artists</th>'
    '<th style="padding: 8px; text-align: left;">Album</th>'
    '</tr>'
)
TABLE_CLOSE = '</table>'


class RenderError(Exception):
    """An archive could not be rendered."""


def recent_events(events: List[PlayEvent], count: int = 10) -> List[PlayEvent]:
    """Most recent first, at most ``count`` events. ``events`` is oldest first."""
    return list(reversed(events))[:count]


def render_row(event: PlayEvent, index: int) -> str:
    track = event.track
    album = track.album
    image = album.image_of_width(ARTWORK_WIDTH)
    background = '#ffffff' if index % 2 == 0 else '#f2f2f2'

    return (
        f'<tr style="background-color: {background};">'
        f'<td style="padding: 8px;"><img src="{escape(image.url)}" alt="{escape(album.name)}" '
        f'style="width: {ARTWORK_WIDTH}px; height: {ARTWORK_WIDTH}px;"></td>'
        f'<td style="padding: 8px;">{escape(track.name)}</td>'
        f'<td style="padding: 8px;">{escape(track.artist_names)}</td>'
        f'<td style="padding: 8px;"><a href="{escape(album.url)}" target="_blank">{escape(album.name)}</a></td>'
        '</tr>'
    )


def render_table(events: List[PlayEvent]) -> str:
    """Build the table for ``events`` in the order given."""
    rows = [render_row(event, index) for index, event in enumerate(events)]
    return TABLE_OPEN + HEADER_ROW + ''.join(rows) + TABLE_CLOSE


def _write_output(output_path: str, html: str):
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(html)


def render_events(events: List[PlayEvent], output_path: str, count: int = 10) -> List[PlayEvent]:
    """Render the ``count`` most recent of ``events`` (oldest first) into ``output_path``.

    The whole table is built before the file is opened, so a bad event
    leaves the output untouched. Returns the rendered events, newest first.
    """
    shown = recent_events(events, count)
    try:
        html = render_table(shown)
    except PayloadError as e:
        raise RenderError(str(e)) from e
    _write_output(output_path, html)
    return shown


def decode_items(items: List[Dict[str, Any]], source: str) -> List[PlayEvent]:
    try:
        return [PlayEvent.from_dict(item) for item in items]
    except PayloadError as e:
        raise RenderError(f"Invalid data in {source}: {e}") from e


def render_archive(archive: DateArchive, path: str, output_path: str,
                   count: int = 10, trim: bool = True) -> int:
    """Render the most recent plays stored at ``path`` into ``output_path``.

    With ``trim`` the archive is rewritten to hold only the rendered events,
    oldest first. Any failure happens before either file is written.
    Returns the number of rows rendered.
    """
    try:
        items = archive.load(path)
    except PayloadError as e:
        raise RenderError(f"Invalid data structure in {path}: {e}") from e

    events = decode_items(items, path)
    shown = render_events(events, output_path, count)
    print(f"✓ {output_path} rendered with {len(shown)} tracks from {path}")

    if trim:
        archive.replace(path, [event.to_dict() for event in reversed(shown)])
        print(f"✓ Trimmed {path} to its {len(shown)} most recent tracks")

    return len(shown)
