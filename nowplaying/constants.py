"""
Constants and configuration for the Now Playing collage renderer.

This module contains all global constants, canvas geometry and environment-based
configuration defaults used throughout the rendering pipeline.
"""

import logging
import os
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='| %(levelname)-8s | %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger('NowPlaying')

# ============================================================================
# Environment Defaults
# ============================================================================
# Every value here can be overridden by a YAML config file or CLI flag
# (see config.load_settings).
BASE_URL = os.environ.get('NOWPLAYING_BASE_URL', 'https://api.amenic.app')
IMAGES_DIR = os.environ.get('NOWPLAYING_IMAGES_DIR', './data/images')
FONTS_DIR = os.environ.get('NOWPLAYING_FONTS_DIR', './data/fonts')
OUTPUT_DIR = os.environ.get('NOWPLAYING_OUTPUT_DIR', '.')

# Extract the top bar color from the lead poster instead of the fixed default
USE_PALETTE = os.environ.get('NOWPLAYING_USE_PALETTE', '0') == '1'

# Parallel batch rendering
MAX_WORKERS = int(os.environ.get('NOWPLAYING_MAX_WORKERS', '4'))

# Seconds before a feed or poster request gives up
HTTP_TIMEOUT = float(os.environ.get('NOWPLAYING_HTTP_TIMEOUT', '30'))

# STRICT_FONTS: If true, fail if required fonts are missing
# Default: true (fonts are part of the branded output)
STRICT_FONTS = os.environ.get('NOWPLAYING_STRICT_FONTS', '1') == '1'

USER_AGENT = 'NowPlayingCollage/1.0'

# ============================================================================
# Feed
# ============================================================================
HOME_ENDPOINT = 'home.json'
THEATRE_SEPARATOR = ' - '
POSTER_CACHE_SUBDIR = 'downloaded'

# ============================================================================
# Local Assets
# ============================================================================
LOGO_FILENAME = 'logo.png'
LOGO_WIDTH = 120
ICON_FILENAME_TEMPLATE = 'ic_{name}.png'
ICON_DEFAULT = 'cinemais'
ICON_ALTERNATE = 'ibicinemas'
# Theatre name (as it appears in the feed) that selects the alternate icon
ALTERNATE_THEATRE_NAME = 'IBICINEMAS'

BOLD_FONT_FILENAME = 'Roboto-Bold.ttf'
REGULAR_FONT_FILENAME = 'Roboto-Regular.ttf'
HEADER_FONT_SIZE = 56
SUBHEADER_FONT_SIZE = 32
TITLE_FONT_SIZE = 26

# ============================================================================
# Canvas Geometry
# ============================================================================
CANVAS_WIDTH = 1000
CANVAS_HEIGHT = 1000
INSET_LEFT = 10.0
INSET_RIGHT = 10.0
ITEM_WIDTH_RATIO = 0.3
GRID_COLUMNS = 3
ITEM_SPACING = 10.0
VERTICAL_SPACING = 50.0
CORNER_RADIUS_RATIO = 0.05
ICON_WIDTH_RATIO = 0.1
TITLE_LINE_SPACING = 1.2
TITLE_BOTTOM_OFFSET = 40.0

BACKGROUND_SCALE = 1.5
BACKGROUND_BLUR_RADIUS = 5

TOP_BAR_PADDING_TOP = 40
TOP_BAR_PADDING_BOTTOM = 40

# ============================================================================
# Colors
# ============================================================================
DARK_NEUTRAL = (33, 33, 33)
WHITE = (255, 255, 255, 255)
SUBHEADER_COLOR = (255, 255, 255, 170)  # #aaffffff

# Gradient stops as (position, alpha) pairs over DARK_NEUTRAL
BACKGROUND_GRADIENT_STOPS = ((0.0, 50), (0.5, 255), (1.0, 255))
ITEM_GRADIENT_STOPS = ((0.0, 0), (0.5, 15), (1.0, 250))

# ============================================================================
# Text
# ============================================================================
HEADER_TEXT = 'Em cartaz'
OUTPUT_FILENAME_TEMPLATE = 'Em cartaz {range_label}-{index}.png'
