#!/usr/bin/env python3
"""
Now Playing - Collage Renderer

Fetches the weekly "now playing" listing and renders one PNG collage per
group of three currently showing movies.

Output files are named "Em cartaz <date range>-<n>.png" and written to the
output directory (the current directory by default).

Exit codes:
    0  every batch rendered (or nothing was showing)
    1  the feed or startup assets failed, or at least one batch failed

Usage:
    python3 -m nowplaying.entrypoint [--config settings.yml] [--use-palette]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ruamel.yaml.error import YAMLError

from . import layout
from .assets import AssetCache
from .compositor import BatchResult, render_batches
from .config import Settings, load_settings
from .constants import logger, CANVAS_WIDTH
from .dates import format_date_range
from .errors import FeedError
from .feed import HomeFeed, fetch_home
from .fonts import FontSet, validate_fonts_at_startup
from .partition import now_playing_prefix, partition_batches
from .theme import ThemeResolver


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Render weekly "now playing" collages from the home feed'
    )
    parser.add_argument('--config', type=Path, default=None, help='YAML settings file')
    parser.add_argument('--base-url', default=None, help='Feed base URL')
    parser.add_argument('--images-dir', type=Path, default=None, help='Logo, icons and poster cache root')
    parser.add_argument('--fonts-dir', type=Path, default=None, help='Directory holding the Roboto faces')
    parser.add_argument('--output-dir', type=Path, default=None, help='Where PNG files are written')
    parser.add_argument('--use-palette', action='store_true', default=None,
                        help='Tint the top bar with a color from the lead poster')
    parser.add_argument('--max-workers', type=int, default=None, help='Batches rendered in parallel')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser


def create_now_playing_images(home: HomeFeed, settings: Settings) -> List[BatchResult]:
    """
    Render every batch of the currently showing prefix.

    Raises:
        OSError: if the branding mark or icons cannot be loaded
        FileNotFoundError: if fonts are missing in strict mode
    """
    items = now_playing_prefix(home.movies)
    if not items:
        logger.info("Nothing currently showing, no images to create")
        return []

    batches = partition_batches(items)
    logger.info(f"Creating {len(batches)} images for {len(items)} movies")

    settings.ensure_dirs()
    validate_fonts_at_startup(settings.fonts_dir)
    fonts = FontSet.load(settings.fonts_dir, strict=settings.strict_fonts)

    assets = AssetCache(settings.images_dir, timeout=settings.http_timeout)
    assets.preload(layout.icon_width(layout.item_width(CANVAS_WIDTH)))

    theme = ThemeResolver(use_palette=settings.use_palette)

    results = render_batches(
        batches,
        range_label=format_date_range(home.now_playing_week, settings.lowercase_filename_months),
        subheader=format_date_range(home.now_playing_week, settings.lowercase_subheader_months),
        output_dir=settings.output_dir,
        assets=assets,
        fonts=fonts,
        theme=theme,
        max_workers=settings.max_workers,
    )

    stats = assets.cache_stats()
    logger.info(f"Cache stats: {stats['posters_cached']} posters, {stats['total_size_mb']:.2f} MB")
    return results


def run(settings: Settings) -> int:
    """Fetch the feed and render; returns the process exit code."""
    try:
        home = fetch_home(settings.base_url, timeout=settings.http_timeout)
    except FeedError as e:
        logger.error(f"FEED_FAILED error={e}")
        return 1

    try:
        results = create_now_playing_images(home, settings)
    except OSError as e:
        logger.error(f"STARTUP_ASSETS_FAILED error={e}")
        return 1

    created = [r for r in results if r.ok]
    failed = [r for r in results if not r.ok]
    logger.info(f"RUN_COMPLETE created={len(created)} failed={len(failed)}")
    for result in failed:
        logger.warning(f"  batch {result.index}: {result.error}")

    return 1 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the collage renderer"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("Now Playing Collage Renderer")
    logger.info("=" * 60)

    try:
        settings = load_settings(
            args.config,
            {
                'base_url': args.base_url,
                'images_dir': args.images_dir,
                'fonts_dir': args.fonts_dir,
                'output_dir': args.output_dir,
                'use_palette': args.use_palette,
                'max_workers': args.max_workers,
            },
        )
    except (OSError, ValueError, YAMLError) as e:
        logger.error(f"Failed to load settings: {e}")
        return 1

    return run(settings)


if __name__ == '__main__':
    sys.exit(main())
