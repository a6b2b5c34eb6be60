"""
Batch partitioning for the Now Playing collage renderer.

The feed lists currently showing movies first; the first entry without a
theatre ends that run. Each batch of up to three movies becomes one image.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .constants import GRID_COLUMNS, OUTPUT_FILENAME_TEMPLATE
from .feed import MovieEntry


@dataclass(frozen=True)
class Batch:
    """An ordered group of movies rendered into a single image."""

    index: int
    movies: Tuple[MovieEntry, ...]

    def __len__(self) -> int:
        return len(self.movies)

    def output_filename(self, range_label: str) -> str:
        return OUTPUT_FILENAME_TEMPLATE.format(range_label=range_label, index=self.index)


def now_playing_prefix(movies: Iterable[MovieEntry]) -> List[MovieEntry]:
    """Return the leading run of entries that have a theatre listed."""
    prefix = []
    for movie in movies:
        if not movie.is_now_playing:
            break
        prefix.append(movie)
    return prefix


def partition_batches(movies: Sequence[MovieEntry], size: int = GRID_COLUMNS) -> List[Batch]:
    """
    Split movies into consecutive batches of ``size``.

    Returns ceil(len(movies) / size) batches numbered from 1; only the last
    one may be short. An empty sequence yields no batches.
    """
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")

    items = tuple(movies)
    return [
        Batch(index=number, movies=items[start:start + size])
        for number, start in enumerate(range(0, len(items), size), start=1)
    ]
