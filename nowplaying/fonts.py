"""
Font handling for the Now Playing collage renderer.

This module provides font validation, fallback resolution and the cached font
faces used for the header, sub-header and movie titles.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from PIL import ImageFont

from .constants import (
    logger,
    BOLD_FONT_FILENAME,
    HEADER_FONT_SIZE,
    REGULAR_FONT_FILENAME,
    SUBHEADER_FONT_SIZE,
    TITLE_FONT_SIZE,
)

# ============================================================================
# Font Caching - faces are shared across batch threads
# ============================================================================
_font_cache: Dict[Tuple[str, int], ImageFont.FreeTypeFont] = {}
_font_lock = threading.Lock()


def validate_fonts_at_startup(fonts_dir: Path) -> List[Path]:
    """
    Log the font files found in ``fonts_dir``.

    Returns the list of required font files that are missing.
    """
    missing = []

    if fonts_dir.exists():
        fonts = sorted(list(fonts_dir.glob('*.ttf')) + list(fonts_dir.glob('*.otf')))
        logger.info(f"FONT_DIR_FOUND: {fonts_dir} ({len(fonts)} fonts)")
        for font in fonts[:5]:  # Log first 5
            logger.debug(f"  - {font.name}")
        if len(fonts) > 5:
            logger.debug(f"  - ... and {len(fonts) - 5} more")
    else:
        logger.warning(f"FONT_WARNING: font directory not found: {fonts_dir}")

    for name in (BOLD_FONT_FILENAME, REGULAR_FONT_FILENAME):
        path = fonts_dir / name
        if not path.exists():
            logger.warning(f"FONT_MISSING: {path}")
            missing.append(path)

    return missing


def load_font(path: Path, size: int, strict: bool = True) -> ImageFont.FreeTypeFont:
    """
    Load a TrueType face at ``size`` pixels, cached by (path, size).

    When the file is missing and ``strict`` is off, Pillow's bundled default
    face is used at the same size instead.

    Raises:
        FileNotFoundError: if the font is missing and ``strict`` is on
    """
    key = (str(path), size)
    with _font_lock:
        if key in _font_cache:
            return _font_cache[key]

        if path.exists():
            font = ImageFont.truetype(str(path), size)
        elif strict:
            raise FileNotFoundError(
                f"Font not found: {path}. "
                f"Set NOWPLAYING_STRICT_FONTS=0 to continue with the default font."
            )
        else:
            logger.warning(f"FONT_FALLBACK requested={path} size={size} fallback=default")
            font = ImageFont.load_default(size)

        _font_cache[key] = font
        return font


@dataclass(frozen=True)
class FontSet:
    """The three faces used on every collage."""

    header: ImageFont.FreeTypeFont
    subheader: ImageFont.FreeTypeFont
    title: ImageFont.FreeTypeFont

    @classmethod
    def load(cls, fonts_dir: Path, strict: bool = True) -> 'FontSet':
        bold = fonts_dir / BOLD_FONT_FILENAME
        regular = fonts_dir / REGULAR_FONT_FILENAME
        return cls(
            header=load_font(bold, HEADER_FONT_SIZE, strict),
            subheader=load_font(regular, SUBHEADER_FONT_SIZE, strict),
            title=load_font(bold, TITLE_FONT_SIZE, strict),
        )
