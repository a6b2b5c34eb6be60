"""
Top bar theme resolution.

The bar is filled with a fixed dark neutral unless palette mode is on, in which
case a "dark muted" swatch is extracted from the lead poster. Extraction never
fails the render: any problem falls back to the default color.
"""

import colorsys
from typing import Callable, List, Optional, Tuple

from PIL import Image

from .constants import logger, DARK_NEUTRAL

RGB = Tuple[int, int, int]
Extractor = Callable[[Image.Image], Optional[RGB]]

# Dark muted swatch targets (HSL lightness / saturation, 0..1)
TARGET_DARK_LUMA = 0.26
MAX_DARK_LUMA = 0.45
TARGET_MUTED_SATURATION = 0.3
MAX_MUTED_SATURATION = 0.4

WEIGHT_SATURATION = 3.0
WEIGHT_LUMA = 6.0
WEIGHT_POPULATION = 1.0

PALETTE_SIZE = 16
SAMPLE_SIZE = (100, 100)


def _quantized_swatches(image: Image.Image) -> List[Tuple[int, RGB]]:
    """Reduce the image to a small palette; returns (population, rgb) pairs."""
    sample = image.convert('RGB')
    sample.thumbnail(SAMPLE_SIZE)
    quantized = sample.quantize(colors=PALETTE_SIZE, method=Image.Quantize.MEDIANCUT)

    palette = quantized.getpalette() or []
    swatches = []
    for count, index in quantized.getcolors(PALETTE_SIZE) or []:
        offset = index * 3
        rgb = tuple(palette[offset:offset + 3])
        if len(rgb) == 3:
            swatches.append((count, rgb))
    return swatches


def extract_dark_muted(image: Image.Image) -> Optional[RGB]:
    """
    Pick the palette swatch closest to a dark, muted tone.

    Returns None when no swatch falls inside the dark muted range.
    """
    swatches = _quantized_swatches(image)
    if not swatches:
        return None

    max_population = max(count for count, _ in swatches)
    best: Optional[RGB] = None
    best_score = -1.0

    for count, (r, g, b) in swatches:
        _, luma, saturation = colorsys.rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
        if luma > MAX_DARK_LUMA or saturation > MAX_MUTED_SATURATION:
            continue

        score = (
            (1 - abs(saturation - TARGET_MUTED_SATURATION)) * WEIGHT_SATURATION
            + (1 - abs(luma - TARGET_DARK_LUMA)) * WEIGHT_LUMA
            + (count / max_population) * WEIGHT_POPULATION
        ) / (WEIGHT_SATURATION + WEIGHT_LUMA + WEIGHT_POPULATION)

        if score > best_score:
            best_score = score
            best = (r, g, b)

    return best


class ThemeResolver:
    """Chooses the top bar fill color."""

    def __init__(
        self,
        use_palette: bool = False,
        extractor: Extractor = extract_dark_muted,
        default: RGB = DARK_NEUTRAL
    ):
        self.use_palette = use_palette
        self.extractor = extractor
        self.default = default

    def resolve(self, image: Optional[Image.Image] = None) -> RGB:
        if not self.use_palette or image is None:
            return self.default

        try:
            color = self.extractor(image)
        except Exception as e:
            logger.debug(f"THEME_EXTRACT_FAILED error={e}")
            return self.default

        if color is None:
            logger.debug("THEME_NO_SWATCH using default")
            return self.default
        return color
