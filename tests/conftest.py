import json

import pytest


def play_item(played_at, name="Song", artists=("Artist",), album="Album", image_widths=(640, 300, 64)):
    """A recently-played item shaped like the Spotify API response."""
    return {
        "played_at": played_at,
        "track": {
            "name": name,
            "artists": [{"name": artist} for artist in artists],
            "album": {
                "name": album,
                "images": [
                    {"url": f"https://i.scdn.co/image/{album}-{width}", "width": width, "height": width}
                    for width in image_widths
                ],
                "external_urls": {"spotify": f"https://open.spotify.com/album/{album}"},
            },
        },
    }


@pytest.fixture
def make_item():
    return play_item


@pytest.fixture
def write_json():
    def write(path, data):
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        return str(path)
    return write


@pytest.fixture
def read_json():
    def read(path):
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    return read


@pytest.fixture
def no_credentials(monkeypatch):
    """Clear the credential variables; anything .env loads is removed after the test."""
    for name in ("CLIENT_ID", "CLIENT_SECRET", "REFRESH_TOKEN"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
