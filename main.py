#!/usr/bin/env python3
"""
Script to render a user's recently played Spotify tracks into README.md.
Fetches the plays since the last run, archives them by date and rewrites the table.

Usage:
    python main.py --setup    # Run initial setup to get refresh token
    python main.py            # Run an update
"""

import argparse
from dataclasses import replace

from config import RENDER_MODES, load_config
from spotify_setup import run_setup
from spotify_updater import SpotifyUpdater


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render recently played Spotify tracks into README.md"
    )
    parser.add_argument(
        "--setup",
        action="store_true",
        help="Run setup to get Spotify refresh token"
    )
    parser.add_argument(
        "--render-mode",
        choices=RENDER_MODES,
        help="per-date: each date processed overwrites the output; "
             "combined: one table across all dates fetched this run"
    )
    parser.add_argument(
        "--archive-dir",
        help="Directory for the per-date JSON archives (default: a new temporary directory)"
    )
    parser.add_argument(
        "--output",
        help="File to write the HTML table to (default: README.md)"
    )
    parser.add_argument(
        "--trim-archive",
        dest="trim_archive",
        action="store_true",
        default=None,
        help="Rewrite each rendered date archive to keep only the rendered tracks "
             "(the default; per-date mode only, combined mode never rewrites archives)"
    )
    parser.add_argument(
        "--no-trim-archive",
        dest="trim_archive",
        action="store_false",
        help="Leave date archives append-only"
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.setup:
        run_setup()
        return

    config = load_config()

    overrides = {}
    if args.render_mode:
        overrides['render_mode'] = args.render_mode
    if args.archive_dir:
        overrides['archive_dir'] = args.archive_dir
    if args.output:
        overrides['output_path'] = args.output
    if args.trim_archive is not None:
        overrides['trim_archive'] = args.trim_archive

    updater = SpotifyUpdater(replace(config, **overrides))
    updater.run()


if __name__ == "__main__":
    main()
