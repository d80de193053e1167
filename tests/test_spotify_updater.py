from unittest.mock import MagicMock, patch

import pytest
import requests

from config import Config, SPOTIFY_RECENTLY_PLAYED_URL, SPOTIFY_TOKEN_URL
from database import DateArchive
from spotify_updater import SpotifyUpdater, get_access_token, get_recently_played


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


@pytest.fixture
def config(tmp_path):
    return Config(
        client_id="id",
        client_secret="secret",
        refresh_token="refresh",
        cursor_path=str(tmp_path / "info-schema.json"),
        output_path=str(tmp_path / "README.md"),
        archive_dir=str(tmp_path / "archive"),
    )


@pytest.fixture
def spotify():
    """Patch the token and history endpoints; the history page is empty by default."""
    with patch("spotify_updater.requests.post") as post, patch("spotify_updater.requests.get") as get:
        post.return_value = _response({"access_token": "token", "token_type": "Bearer"})
        get.return_value = _response({"items": [], "cursors": None})
        yield post, get


def test_get_access_token_posts_form(spotify):
    post, _ = spotify

    assert get_access_token("refresh", "id", "secret") == "token"
    post.assert_called_once_with(
        SPOTIFY_TOKEN_URL,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        data={
            "grant_type": "refresh_token",
            "refresh_token": "refresh",
            "client_id": "id",
            "client_secret": "secret",
        },
    )


def test_get_access_token_without_token_returns_none(spotify):
    post, _ = spotify
    post.return_value = _response({"error": "invalid_grant"})

    assert get_access_token("refresh", "id", "secret") is None


def test_history_request_includes_cursor(spotify):
    _, get = spotify

    get_recently_played("token", 50, "abc123")

    get.assert_called_once_with(
        SPOTIFY_RECENTLY_PLAYED_URL,
        headers={"Authorization": "Bearer token"},
        params={"limit": 50, "after": "abc123"},
    )


def test_history_request_omits_missing_cursor(spotify):
    _, get = spotify

    get_recently_played("token", 50)

    assert get.call_args.kwargs["params"] == {"limit": 50}


def test_run_uses_stored_cursor(spotify, config, write_json):
    _, get = spotify
    write_json(config.cursor_path, {"cursor": {"after": "abc123"}})

    with pytest.raises(SystemExit) as exc:
        SpotifyUpdater(config).run()

    assert exc.value.code == 0
    assert get.call_args.kwargs["params"] == {"limit": 50, "after": "abc123"}


def test_run_without_cursor_omits_after(spotify, config):
    _, get = spotify

    with pytest.raises(SystemExit):
        SpotifyUpdater(config).run()

    assert "after" not in get.call_args.kwargs["params"]


def test_no_new_tracks_exits_cleanly_without_writing(spotify, config, tmp_path):
    with pytest.raises(SystemExit) as exc:
        SpotifyUpdater(config).run()

    assert exc.value.code == 0
    assert not (tmp_path / "info-schema.json").exists()
    assert not (tmp_path / "README.md").exists()
    assert not (tmp_path / "archive").exists()


def test_token_failure_exits_before_fetching(spotify, config, tmp_path):
    post, get = spotify
    post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("400 Client Error")

    with pytest.raises(SystemExit) as exc:
        SpotifyUpdater(config).run()

    assert exc.value.code == 1
    get.assert_not_called()
    assert not (tmp_path / "info-schema.json").exists()


def test_missing_access_token_exits(spotify, config):
    post, get = spotify
    post.return_value = _response({})

    with pytest.raises(SystemExit) as exc:
        SpotifyUpdater(config).run()

    assert exc.value.code == 1
    get.assert_not_called()


def test_history_failure_keeps_cursor(spotify, config, write_json, read_json):
    _, get = spotify
    get.return_value.raise_for_status.side_effect = requests.exceptions.ConnectionError("down")
    write_json(config.cursor_path, {"cursor": {"after": "abc123"}})

    with pytest.raises(SystemExit) as exc:
        SpotifyUpdater(config).run()

    assert exc.value.code == 1
    assert read_json(config.cursor_path) == {"cursor": {"after": "abc123"}}


def test_malformed_history_exits(spotify, config):
    _, get = spotify
    get.return_value = _response({"error": {"status": 401}})

    with pytest.raises(SystemExit) as exc:
        SpotifyUpdater(config).run()

    assert exc.value.code == 1


def test_full_run_last_date_overwrites_readme(spotify, config, make_item, read_json, tmp_path):
    _, get = spotify
    get.return_value = _response({
        "items": [
            make_item("2024-01-02T09:00:00.000Z", name="Tuesday"),
            make_item("2024-01-01T21:00:00.000Z", name="Monday Night"),
            make_item("2024-01-01T08:00:00.000Z", name="Monday Morning"),
        ],
        "cursors": {"after": "1704186000000", "before": "1704096000000"},
    })

    SpotifyUpdater(config).run()

    readme = (tmp_path / "README.md").read_text(encoding="utf-8")
    assert "Tuesday" in readme
    assert "Monday" not in readme
    assert readme.count("<tr") == 2

    archive = tmp_path / "archive"
    monday = read_json(archive / "2024-01-01.json")["items"]
    assert [i["track"]["name"] for i in monday] == ["Monday Morning", "Monday Night"]
    assert len(read_json(archive / "2024-01-02.json")["items"]) == 1
    assert read_json(config.cursor_path) == {"cursor": {"after": "1704186000000"}}


def test_combined_mode_renders_across_dates(spotify, config, make_item, tmp_path):
    _, get = spotify
    config.render_mode = "combined"
    get.return_value = _response({
        "items": [
            make_item("2024-01-02T09:00:00.000Z", name="Tuesday"),
            make_item("2024-01-01T21:00:00.000Z", name="Monday Night"),
            make_item("2024-01-01T08:00:00.000Z", name="Monday Morning"),
        ],
        "cursors": {"after": "1704186000000"},
    })

    SpotifyUpdater(config).run()

    readme = (tmp_path / "README.md").read_text(encoding="utf-8")
    assert readme.index("Tuesday") < readme.index("Monday Night") < readme.index("Monday Morning")
    assert readme.count("<tr") == 4


def test_render_failure_is_skipped_and_cursor_saved(spotify, config, make_item, read_json, tmp_path, capsys):
    _, get = spotify
    get.return_value = _response({
        "items": [
            make_item("2024-01-01T08:00:00.000Z", name="Monday"),
            make_item("2024-01-02T09:00:00.000Z", name="Tuesday", image_widths=(640,)),
        ],
        "cursors": {"after": "1704186000000"},
    })

    SpotifyUpdater(config).run()

    readme = (tmp_path / "README.md").read_text(encoding="utf-8")
    assert "Monday" in readme
    assert "Tuesday" not in readme
    assert "64px" in capsys.readouterr().err
    assert read_json(config.cursor_path) == {"cursor": {"after": "1704186000000"}}


def test_run_without_new_cursor_keeps_old_one(spotify, config, make_item, write_json, read_json):
    _, get = spotify
    write_json(config.cursor_path, {"cursor": {"after": "abc123"}})
    get.return_value = _response({"items": [make_item("2024-01-01T08:00:00.000Z")], "cursors": {}})

    SpotifyUpdater(config).run()

    assert read_json(config.cursor_path) == {"cursor": {"after": "abc123"}}


def test_default_run_trims_archive_to_rendered_tracks(spotify, config, make_item, write_json, read_json, tmp_path):
    _, get = spotify
    archive = tmp_path / "archive"
    archive.mkdir()
    old = [make_item(f"2024-01-01T0{h}:00:00.000Z", name=f"Old {h}") for h in range(9)]
    write_json(archive / "2024-01-01.json", {"items": old})
    get.return_value = _response({
        "items": [make_item("2024-01-01T10:00:00.000Z", name="New 10"),
                  make_item("2024-01-01T11:00:00.000Z", name="New 11")],
        "cursors": {"after": "1704107000000"},
    })

    SpotifyUpdater(config).run()

    names = [i["track"]["name"] for i in read_json(archive / "2024-01-01.json")["items"]]
    assert names == [f"Old {h}" for h in range(1, 9)] + ["New 10", "New 11"]


def test_temporary_archive_dir_when_unset(spotify, config, make_item, tmp_path):
    _, get = spotify
    config.archive_dir = None
    get.return_value = _response({"items": [make_item("2024-01-01T08:00:00.000Z")], "cursors": {}})

    with patch("spotify_updater.tempfile.mkdtemp", return_value=str(tmp_path / "tmp")) as mkdtemp:
        SpotifyUpdater(config).run()

    mkdtemp.assert_called_once_with()
    assert (tmp_path / "tmp" / "2024-01-01.json").exists()


def test_untrimmed_run_keeps_whole_archive(spotify, config, make_item, write_json, read_json, tmp_path):
    _, get = spotify
    config.trim_archive = False
    archive = tmp_path / "archive"
    archive.mkdir()
    old = [make_item(f"2024-01-01T0{h}:00:00.000Z", name=f"Old {h}") for h in range(9)]
    write_json(archive / "2024-01-01.json", {"items": old})
    get.return_value = _response({
        "items": [make_item("2024-01-01T10:00:00.000Z", name="New 10"),
                  make_item("2024-01-01T11:00:00.000Z", name="New 11")],
        "cursors": {"after": "1704107000000"},
    })

    SpotifyUpdater(config).run()

    assert len(read_json(archive / "2024-01-01.json")["items"]) == 11


def test_one_malformed_track_does_not_stop_the_run(spotify, config, make_item, write_json, read_json,
                                                   tmp_path, capsys):
    _, get = spotify
    write_json(config.cursor_path, {"cursor": {"after": "old"}})
    local_file = make_item("2024-01-02T09:00:00.000Z", name="Local file")
    local_file["track"]["album"]["external_urls"] = {}
    get.return_value = _response({
        "items": [make_item("2024-01-01T08:00:00.000Z", name="Monday"), local_file],
        "cursors": {"after": "new"},
    })

    SpotifyUpdater(config).run()

    readme = (tmp_path / "README.md").read_text(encoding="utf-8")
    assert "Monday" in readme
    assert "Local file" not in readme
    assert "external_urls" in capsys.readouterr().err
    assert read_json(tmp_path / "archive" / "2024-01-02.json")["items"] == [local_file]
    assert read_json(config.cursor_path) == {"cursor": {"after": "new"}}


def test_combined_mode_never_trims(spotify, config, make_item, write_json, read_json, tmp_path):
    _, get = spotify
    config.render_mode = "combined"
    archive = tmp_path / "archive"
    archive.mkdir()
    old = [make_item(f"2024-01-01T0{h}:00:00.000Z", name=f"Old {h}") for h in range(9)]
    write_json(archive / "2024-01-01.json", {"items": old})
    get.return_value = _response({
        "items": [make_item("2024-01-01T10:00:00.000Z"), make_item("2024-01-01T11:00:00.000Z")],
        "cursors": {"after": "1704107000000"},
    })

    SpotifyUpdater(config).run()

    assert len(read_json(archive / "2024-01-01.json")["items"]) == 11


def test_combined_render_with_no_readable_archive_keeps_readme(config, write_json, tmp_path, capsys):
    config.render_mode = "combined"
    updater = SpotifyUpdater(config)
    updater.archive = DateArchive(str(tmp_path / "archive"))
    first = write_json(tmp_path / "archive" / "2024-01-01.json", {"items": "nope"})
    second = write_json(tmp_path / "archive" / "2024-01-02.json", [])
    readme = tmp_path / "README.md"
    readme.write_text("previous", encoding="utf-8")

    assert updater.render_combined([("2024-01-01", first), ("2024-01-02", second)]) is False

    assert readme.read_text(encoding="utf-8") == "previous"
    assert "leaving" in capsys.readouterr().err
