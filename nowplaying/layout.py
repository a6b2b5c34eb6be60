"""
Collage geometry for the Now Playing collage renderer.

Every value the compositor draws with is computed here from the canvas size,
the number of items and a few measured sizes (poster height, top bar height,
wrapped title height). Nothing in this module touches pixels, so the layout
can be checked without a rendering backend.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from .constants import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CORNER_RADIUS_RATIO,
    GRID_COLUMNS,
    ICON_WIDTH_RATIO,
    INSET_LEFT,
    INSET_RIGHT,
    ITEM_SPACING,
    ITEM_WIDTH_RATIO,
    TITLE_BOTTOM_OFFSET,
    TITLE_LINE_SPACING,
    VERTICAL_SPACING,
)

Point = Tuple[float, float]
GradientStops = Sequence[Tuple[float, int]]

# Line segments used to approximate each quarter-circle corner
ARC_STEPS = 16


# ============================================================================
# Horizontal Metrics
# ============================================================================

def item_width(
    canvas_width: float = CANVAS_WIDTH,
    inset_left: float = INSET_LEFT,
    inset_right: float = INSET_RIGHT
) -> float:
    """Width of one poster column: 30% of the space between the insets."""
    return (canvas_width - inset_left - inset_right) * ITEM_WIDTH_RATIO


def grid_margin(
    canvas_width: float,
    item_w: float,
    inset_left: float = INSET_LEFT,
    inset_right: float = INSET_RIGHT,
    columns: int = GRID_COLUMNS
) -> float:
    """Left offset that centers a full row of ``columns`` items."""
    total_space = canvas_width - inset_left - inset_right
    return (total_space - item_w * columns) / 2.0


def total_items_width(count: int, item_w: float, spacing: float = ITEM_SPACING) -> float:
    if count <= 0:
        return 0.0
    return count * item_w + (count - 1) * spacing


def row_offset(
    canvas_width: float,
    margin: float,
    count: int,
    item_w: float,
    spacing: float = ITEM_SPACING
) -> float:
    """Extra shift, relative to ``margin``, that centers a row of ``count`` items."""
    actual_width = canvas_width - margin - margin
    return actual_width / 2.0 - total_items_width(count, item_w, spacing) / 2.0


def title_column_width(
    item_w: float,
    inset_left: float = INSET_LEFT,
    inset_right: float = INSET_RIGHT
) -> float:
    return item_w - inset_left * 2 - inset_right * 2


def corner_radius(item_w: float) -> float:
    return item_w * CORNER_RADIUS_RATIO


def icon_width(item_w: float) -> int:
    return int(item_w * ICON_WIDTH_RATIO)


# ============================================================================
# Text Metrics
# ============================================================================

def wrap_text(text: str, measure: Callable[[str], float], max_width: float) -> List[str]:
    """
    Greedy word wrap.

    ``measure`` returns the rendered width of a string. A single word wider
    than ``max_width`` is kept on its own line rather than broken. Explicit
    newlines start a new line.
    """
    lines: List[str] = []
    for paragraph in text.split('\n'):
        words = paragraph.split()
        if not words:
            lines.append('')
            continue

        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if measure(candidate) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


def text_block_height(
    line_count: int,
    line_height: float,
    line_spacing: float = TITLE_LINE_SPACING
) -> float:
    """Height of ``line_count`` lines; the last line carries no extra spacing."""
    if line_count <= 0:
        return 0.0
    return line_count * line_height * line_spacing - (line_spacing - 1) * line_height


def shared_title_height(
    titles: Sequence[str],
    measure: Callable[[str], float],
    line_height: float,
    max_width: float,
    line_spacing: float = TITLE_LINE_SPACING
) -> float:
    """Tallest wrapped title of a batch, so every title block shares one band."""
    height = 0.0
    for title in titles:
        lines = wrap_text(title, measure, max_width)
        height = max(height, text_block_height(len(lines), line_height, line_spacing))
    return height


# ============================================================================
# Shapes and Gradients
# ============================================================================

def _arc_points(cx: float, cy: float, radius: float, start_deg: float, end_deg: float) -> List[Point]:
    points = []
    for step in range(ARC_STEPS + 1):
        angle = math.radians(start_deg + (end_deg - start_deg) * step / ARC_STEPS)
        points.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return points


def top_rounded_clip_path(
    left: float,
    top: float,
    width: float,
    height: float,
    radius: float
) -> List[Point]:
    """
    Outline of a box whose top corners are rounded and bottom corners square.

    Angles follow screen coordinates (y grows downwards), so 270 degrees
    points up. The path starts after the top-left arc, runs clockwise and
    closes back at its first point.
    """
    x0, x1, x2, x3 = left, left + radius, left + width - radius, left + width
    y0, y1, y3 = top, top + radius, top + height

    path: List[Point] = [(x1, y0), (x2, y0)]
    path.extend(_arc_points(x2, y1, radius, 270, 360))
    path.append((x3, y3))
    path.append((x0, y3))
    path.extend(_arc_points(x1, y1, radius, 180, 270))
    return path


def gradient_alpha(position: float, stops: GradientStops) -> int:
    """Alpha at ``position`` (0..1) by linear interpolation between stops."""
    if not stops:
        return 0
    if position <= stops[0][0]:
        return int(stops[0][1])
    for (p0, a0), (p1, a1) in zip(stops, stops[1:]):
        if position <= p1:
            if p1 == p0:
                return int(a1)
            t = (position - p0) / (p1 - p0)
            return int(round(a0 + (a1 - a0) * t))
    return int(stops[-1][1])


def gradient_column(height: int, stops: GradientStops) -> List[int]:
    """Per-row alpha values for a vertical gradient ``height`` pixels tall."""
    if height <= 0:
        return []
    if height == 1:
        return [gradient_alpha(0.0, stops)]
    return [gradient_alpha(row / (height - 1), stops) for row in range(height)]


# ============================================================================
# Batch Layout
# ============================================================================

@dataclass(frozen=True)
class ItemBox:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Point:
        return (self.left + self.width / 2.0, self.top + self.height / 2.0)


@dataclass(frozen=True)
class BatchLayout:
    """Resolved geometry for one collage."""

    count: int
    canvas_width: float
    canvas_height: float
    item_width: float
    item_height: float
    margin: float
    row_offset: float
    bar_height: float
    header_baseline: float
    subheader_baseline: float
    items_top: float
    title_height: float
    spacing: float = ITEM_SPACING
    inset_left: float = INSET_LEFT

    @property
    def origin_x(self) -> float:
        return self.margin + self.row_offset

    @property
    def title_width(self) -> float:
        return title_column_width(self.item_width)

    @property
    def corner_radius(self) -> float:
        return corner_radius(self.item_width)

    def row_span(self) -> Tuple[float, float]:
        """Absolute (left, right) of the whole row of items."""
        left = self.origin_x
        return left, left + total_items_width(self.count, self.item_width, self.spacing)

    def item_box(self, index: int) -> ItemBox:
        left = self.origin_x + index * (self.item_width + self.spacing)
        return ItemBox(
            left=left,
            top=self.items_top,
            right=left + self.item_width,
            bottom=self.items_top + self.item_height,
        )

    def clip_path(self, index: int) -> List[Point]:
        box = self.item_box(index)
        return top_rounded_clip_path(box.left, box.top, box.width, box.height, self.corner_radius)

    def title_origin(self, index: int) -> Point:
        """Top-left of the title block, whose bottom sits a fixed offset above the item bottom."""
        box = self.item_box(index)
        return (box.left + self.inset_left * 2, box.bottom - self.title_height - TITLE_BOTTOM_OFFSET)

    def icon_origins(self, index: int, icon_widths: Sequence[int]) -> List[Tuple[int, int]]:
        """Top-left corners of the theatre icons below an item's title, left to right."""
        title_x, title_y = self.title_origin(index)
        top = int(title_y + self.title_height + self.spacing * 3.0)
        left = int(title_x)
        origins = []
        for width in icon_widths:
            origins.append((left, top))
            left += width + int(self.spacing)
        return origins


def compute_layout(
    count: int,
    item_height: float,
    bar_height: float,
    title_height: float,
    canvas_width: float = CANVAS_WIDTH,
    canvas_height: float = CANVAS_HEIGHT
) -> BatchLayout:
    """
    Resolve the collage geometry.

    Vertically: spacing, top bar, spacing, header baseline, sub-header
    baseline (10 above the next spacing step), then the poster row.
    """
    if count < 1:
        raise ValueError(f"Layout needs at least one item, got {count}")

    item_w = item_width(canvas_width)
    margin = grid_margin(canvas_width, item_w)

    header_baseline = VERTICAL_SPACING + bar_height + VERTICAL_SPACING
    subheader_baseline = header_baseline + VERTICAL_SPACING - 10
    items_top = header_baseline + VERTICAL_SPACING * 2

    return BatchLayout(
        count=count,
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        item_width=item_w,
        item_height=item_height,
        margin=margin,
        row_offset=row_offset(canvas_width, margin, count, item_w),
        bar_height=bar_height,
        header_baseline=header_baseline,
        subheader_baseline=subheader_baseline,
        items_top=items_top,
        title_height=title_height,
    )
