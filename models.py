"""Typed shapes for the Spotify recently-played payloads."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


class PayloadError(ValueError):
    """A payload is missing a field or has the wrong shape."""


def _require(data: Any, key: str, kind: type, where: str) -> Any:
    if not isinstance(data, dict):
        raise PayloadError(f"{where}: expected an object, got {type(data).__name__}")
    if key not in data:
        raise PayloadError(f"{where}: missing '{key}'")
    value = data[key]
    if not isinstance(value, kind):
        raise PayloadError(f"{where}: '{key}' should be {kind.__name__}, got {type(value).__name__}")
    return value


def parse_played_at(value: str) -> datetime:
    """Parse an ISO 8601 ``played_at`` timestamp such as ``2024-01-01T12:00:00.000Z``."""
    try:
        # fromisoformat only accepts a trailing Z from Python 3.11 on
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise PayloadError(f"play event: bad played_at '{value}'") from e


@dataclass
class Image:
    url: str
    width: Optional[int]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Image":
        return cls(url=_require(data, "url", str, "image"), width=data.get("width"))


@dataclass
class Artist:
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artist":
        return cls(name=_require(data, "name", str, "artist"))


@dataclass
class Album:
    name: str
    images: List[Image]
    url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Album":
        urls = _require(data, "external_urls", dict, "album")
        return cls(
            name=_require(data, "name", str, "album"),
            images=[Image.from_dict(img) for img in _require(data, "images", list, "album")],
            url=_require(urls, "spotify", str, "album.external_urls"),
        )

    def image_of_width(self, width: int) -> Image:
        """Return the image variant whose reported width is exactly ``width``."""
        for image in self.images:
            if image.width == width:
                return image
        raise PayloadError(f"album '{self.name}' has no {width}px image")


@dataclass
class Track:
    name: str
    artists: List[Artist]
    album: Album

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        return cls(
            name=_require(data, "name", str, "track"),
            artists=[Artist.from_dict(a) for a in _require(data, "artists", list, "track")],
            album=Album.from_dict(_require(data, "album", dict, "track")),
        )

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)


@dataclass
class PlayEvent:
    """One play of a track. ``raw`` is the API object, stored verbatim.

    Only ``played_at`` is checked up front. The track is decoded when it is
    read, so a malformed track fails where it is rendered, not where it is
    fetched.
    """
    played_at: str
    raw: Dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayEvent":
        played_at = _require(data, "played_at", str, "play event")
        parse_played_at(played_at)
        return cls(played_at=played_at, raw=data)

    @property
    def track(self) -> Track:
        return Track.from_dict(_require(self.raw, "track", dict, "play event"))

    @property
    def date(self) -> str:
        return self.played_at.split("T")[0]

    @property
    def timestamp(self) -> datetime:
        return parse_played_at(self.played_at)

    def to_dict(self) -> Dict[str, Any]:
        return self.raw


@dataclass
class RecentlyPlayedPage:
    """One page of the recently-played history."""
    items: List[PlayEvent]
    cursor_after: Optional[str]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecentlyPlayedPage":
        items = [PlayEvent.from_dict(item) for item in _require(data, "items", list, "recently played")]
        cursors = data.get("cursors") or {}
        if not isinstance(cursors, dict):
            raise PayloadError("recently played: 'cursors' should be dict")
        after = cursors.get("after")
        return cls(items=items, cursor_after=str(after) if after is not None else None)
