"""
Now Playing - Collage Renderer Package

This package renders weekly "now playing" promotional collages, including:
- Home feed client and currently-showing filtering
- Batch partitioning (three movies per image)
- Concurrent poster download with an on-disk cache
- Layout geometry and Pillow compositing
- Top bar theming and Portuguese date phrasing
"""

from .constants import logger

from .errors import (
    NowPlayingError,
    FeedError,
    AssetFetchError,
    RenderError,
)

from .feed import (
    DateRange,
    MovieEntry,
    HomeFeed,
    fetch_home,
    parse_home,
)

from .dates import (
    month_name,
    format_date_range,
)

from .partition import (
    Batch,
    now_playing_prefix,
    partition_batches,
)

from .assets import AssetCache
from .theme import ThemeResolver, extract_dark_muted
from .fonts import FontSet, validate_fonts_at_startup
from .config import Settings, load_settings

from .compositor import (
    BatchResult,
    render_batch,
    render_batches,
)

__all__ = [
    # Constants
    'logger',
    # Errors
    'NowPlayingError',
    'FeedError',
    'AssetFetchError',
    'RenderError',
    # Feed
    'DateRange',
    'MovieEntry',
    'HomeFeed',
    'fetch_home',
    'parse_home',
    # Dates
    'month_name',
    'format_date_range',
    # Partitioning
    'Batch',
    'now_playing_prefix',
    'partition_batches',
    # Assets, theme, fonts
    'AssetCache',
    'ThemeResolver',
    'extract_dark_muted',
    'FontSet',
    'validate_fonts_at_startup',
    # Config
    'Settings',
    'load_settings',
    # Rendering
    'BatchResult',
    'render_batch',
    'render_batches',
]
