"""
Now Playing Compositor

Draws one promotional collage per batch of currently showing movies:

  - Blurred, darkened full-bleed background from the lead poster
  - Top bar with the branding mark (optionally tinted from the poster)
  - "Em cartaz" header and the week's date range
  - Up to three posters with rounded top corners, a bottom fade, the wrapped
    title and one icon per theatre chain

Geometry comes from ``layout``; this module only issues Pillow draw calls.

Performance:
- Posters of a batch are downloaded in parallel (see AssetCache.fetch_posters)
- Batches are rendered in parallel, one canvas per worker thread
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter, UnidentifiedImageError

from . import layout
from .assets import AssetCache, resize_to_width
from .constants import (
    logger,
    BACKGROUND_BLUR_RADIUS,
    BACKGROUND_GRADIENT_STOPS,
    BACKGROUND_SCALE,
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    DARK_NEUTRAL,
    HEADER_TEXT,
    ITEM_GRADIENT_STOPS,
    MAX_WORKERS,
    SUBHEADER_COLOR,
    TITLE_LINE_SPACING,
    TOP_BAR_PADDING_BOTTOM,
    TOP_BAR_PADDING_TOP,
    WHITE,
)
from .errors import NowPlayingError, RenderError
from .fonts import FontSet
from .partition import Batch
from .theme import ThemeResolver


@dataclass(frozen=True)
class BatchResult:
    """Outcome of rendering one batch."""

    index: int
    output_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.output_path is not None


# ============================================================================
# Drawing Helpers
# ============================================================================

def line_height(font) -> float:
    ascent, descent = font.getmetrics()
    return float(ascent + descent)


def paste_gradient(
    canvas: Image.Image,
    box: Tuple[int, int, int, int],
    stops: layout.GradientStops,
    color: Tuple[int, int, int] = DARK_NEUTRAL
) -> None:
    """Blend a vertical ``color`` gradient over ``box`` (left, top, right, bottom)."""
    left, top, right, bottom = box
    width, height = right - left, bottom - top
    if width <= 0 or height <= 0:
        return

    column = Image.new('L', (1, height))
    column.putdata(layout.gradient_column(height, stops))
    mask = column.resize((width, height), Image.Resampling.NEAREST)
    canvas.paste(color, box, mask)


def paste_centered(canvas: Image.Image, image: Image.Image, center: Tuple[float, float]) -> None:
    x = int(center[0]) - image.width // 2
    y = int(center[1]) - image.height // 2
    if image.mode == 'RGBA':
        canvas.paste(image, (x, y), image)
    else:
        canvas.paste(image, (x, y))


def load_poster(path: Path) -> Image.Image:
    try:
        with Image.open(path) as img:
            return img.convert('RGB')
    except (UnidentifiedImageError, OSError) as e:
        raise RenderError(f"Failed to decode poster {path}: {e}") from e


def draw_top_bar(
    canvas: Image.Image,
    logo: Image.Image,
    color: Tuple[int, int, int]
) -> int:
    """
    Fill the branding bar across the top of the canvas and center the logo in it.

    Returns:
        Height of the bar
    """
    bar_height = logo.height + TOP_BAR_PADDING_TOP + TOP_BAR_PADDING_BOTTOM

    draw = ImageDraw.Draw(canvas)
    draw.rectangle([(0, 0), (canvas.width, bar_height)], fill=color)
    paste_centered(canvas, logo, (canvas.width / 2, bar_height / 2))

    return bar_height


def draw_item(
    canvas: Image.Image,
    geometry: layout.BatchLayout,
    index: int,
    poster: Image.Image
) -> None:
    """Poster clipped to rounded top corners, with the bottom fade."""
    box = geometry.item_box(index)
    left, top = int(box.left), int(box.top)
    width, height = int(round(box.width)), int(round(box.height))
    region = (left, top, left + width, top + height)

    # Work on a copy of what is already under the item so the clip shows through
    tile = canvas.crop(region)
    paste_centered(tile, poster, (width / 2.0, height / 2.0))
    paste_gradient(tile, (0, 0, width, height), ITEM_GRADIENT_STOPS)

    mask = Image.new('L', (width, height), 0)
    outline = [(x - left, y - top) for x, y in geometry.clip_path(index)]
    ImageDraw.Draw(mask).polygon(outline, fill=255)

    canvas.paste(tile, (left, top), mask)


def draw_title(
    draw: ImageDraw.ImageDraw,
    geometry: layout.BatchLayout,
    index: int,
    title: str,
    font
) -> None:
    x, y = geometry.title_origin(index)
    lines = layout.wrap_text(title, lambda s: draw.textlength(s, font=font), geometry.title_width)
    step = line_height(font) * TITLE_LINE_SPACING
    for n, line in enumerate(lines):
        draw.text((x, y + n * step), line, font=font, fill=WHITE, anchor='la')


def draw_theatre_icons(
    canvas: Image.Image,
    geometry: layout.BatchLayout,
    index: int,
    icons: Sequence[Image.Image]
) -> None:
    origins = geometry.icon_origins(index, [icon.width for icon in icons])
    for icon, origin in zip(icons, origins):
        canvas.paste(icon, origin, icon)


# ============================================================================
# Batch Rendering
# ============================================================================

def render_batch(
    batch: Batch,
    subheader: str,
    output_path: Path,
    assets: AssetCache,
    fonts: FontSet,
    theme: ThemeResolver
) -> Optional[Path]:
    """
    Render one batch to ``output_path``.

    Args:
        batch: Up to three movies, most recent release first
        subheader: Date range phrase drawn under the header
        output_path: PNG destination
        assets: Shared poster cache and branding images
        fonts: Header, sub-header and title faces
        theme: Top bar color resolver

    Returns:
        The written path, or None for an empty batch

    Raises:
        AssetFetchError: a poster could not be downloaded
        RenderError: a poster could not be decoded or the PNG not written
    """
    count = len(batch.movies)
    if count == 0:
        return None

    logger.info(f"BATCH_START index={batch.index} movies={count}")

    width, height = CANVAS_WIDTH, CANVAS_HEIGHT
    item_w = layout.item_width(width)
    poster_w = int(round(item_w))

    # Download posters (barrier: every fetch finishes before drawing)
    poster_paths = assets.fetch_posters(batch.movies)

    # Load poster images
    posters = []
    background = None
    for i, path in enumerate(poster_paths):
        image = load_poster(path)
        # First poster == most recent movie
        if i == 0:
            background = resize_to_width(image, int(width * BACKGROUND_SCALE)).filter(
                ImageFilter.GaussianBlur(BACKGROUND_BLUR_RADIUS)
            )
        posters.append(resize_to_width(image, poster_w))
    item_h = posters[0].height

    # Draw background
    canvas = Image.new('RGB', (width, height), DARK_NEUTRAL)
    paste_centered(canvas, background, (width / 2, height / 2))
    paste_gradient(canvas, (0, 0, width, height), BACKGROUND_GRADIENT_STOPS)

    # Draw top bar
    bar_height = draw_top_bar(canvas, assets.logo(), theme.resolve(background))

    # Shared title band
    draw = ImageDraw.Draw(canvas, 'RGBA')
    title_height = layout.shared_title_height(
        [m.title for m in batch.movies],
        lambda s: draw.textlength(s, font=fonts.title),
        line_height(fonts.title),
        layout.title_column_width(item_w),
    )

    geometry = layout.compute_layout(count, item_h, bar_height, title_height, width, height)

    # Header and sub-header
    draw.text((geometry.margin, geometry.header_baseline), HEADER_TEXT,
              font=fonts.header, fill=WHITE, anchor='ls')
    draw.text((geometry.margin, geometry.subheader_baseline), subheader,
              font=fonts.subheader, fill=SUBHEADER_COLOR, anchor='ls')

    # Movie items, left to right
    icon_w = layout.icon_width(item_w)
    for i, movie in enumerate(batch.movies):
        draw_item(canvas, geometry, i, posters[i])
        draw_title(draw, geometry, i, movie.title, fonts.title)
        icons = [assets.icon_for_theatre(t, icon_w) for t in movie.theatre_names]
        draw_theatre_icons(canvas, geometry, i, icons)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        canvas.save(output_path, 'PNG')
    except (OSError, ValueError) as e:
        output_path.unlink(missing_ok=True)
        raise RenderError(f"Failed to save {output_path}: {e}") from e

    logger.info(f"BATCH_DONE index={batch.index} output={output_path}")
    return output_path


def _render_one(
    batch: Batch,
    range_label: str,
    subheader: str,
    output_dir: Path,
    assets: AssetCache,
    fonts: FontSet,
    theme: ThemeResolver
) -> BatchResult:
    output_path = output_dir / batch.output_filename(range_label)
    try:
        written = render_batch(batch, subheader, output_path, assets, fonts, theme)
    except (NowPlayingError, OSError) as e:
        logger.error(f"BATCH_FAILED index={batch.index} error={e}")
        return BatchResult(index=batch.index, error=str(e))
    return BatchResult(index=batch.index, output_path=written)


def render_batches(
    batches: Sequence[Batch],
    range_label: str,
    subheader: str,
    output_dir: Path,
    assets: AssetCache,
    fonts: FontSet,
    theme: ThemeResolver,
    max_workers: int = MAX_WORKERS
) -> List[BatchResult]:
    """
    Render every batch in parallel.

    A failing batch is logged and reported in its result; the others carry on.
    Results are returned in batch order.
    """
    if not batches:
        return []

    logger.info(f"Rendering {len(batches)} batches (max {max_workers} workers)...")

    results: List[BatchResult] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                _render_one, batch, range_label, subheader, output_dir, assets, fonts, theme
            ): batch
            for batch in batches
        }

        for future in as_completed(futures):
            batch = futures[future]
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"  [ERROR] batch {batch.index}: {e}")
                result = BatchResult(index=batch.index, error=f"{type(e).__name__}: {e}")
            results.append(result)
            if result.ok:
                logger.info(f"  [OK] {result.output_path.name}")
            else:
                logger.info(f"  [FAIL] batch {result.index}")

    return sorted(results, key=lambda r: r.index)
