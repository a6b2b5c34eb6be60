"""
Asset cache for the Now Playing collage renderer.

Posters are downloaded once into ``<images_dir>/downloaded/`` and reused on
later runs. The branding mark and theatre icons are read from ``images_dir``
on first use and kept in memory for the rest of the process.

One ``AssetCache`` is built at startup and shared by every batch task; a
single lock guards the in-memory images.
"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from http.client import HTTPException
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from PIL import Image

from .constants import (
    logger,
    ALTERNATE_THEATRE_NAME,
    HTTP_TIMEOUT,
    ICON_ALTERNATE,
    ICON_DEFAULT,
    ICON_FILENAME_TEMPLATE,
    LOGO_FILENAME,
    LOGO_WIDTH,
    POSTER_CACHE_SUBDIR,
    USER_AGENT,
)
from .errors import AssetFetchError
from .feed import MovieEntry


def resize_to_width(image: Image.Image, width: int) -> Image.Image:
    """Resize to ``width`` keeping the aspect ratio (LANCZOS)."""
    src_width, src_height = image.size
    height = max(1, int(width * src_height / src_width + 0.5))
    return image.resize((width, height), Image.Resampling.LANCZOS)


def load_image(path: Path) -> Image.Image:
    """Open an image file fully into memory as RGBA."""
    with Image.open(path) as img:
        return img.convert('RGBA')


def icon_name_for_theatre(theatre: str) -> str:
    """Pick the icon identifier for a theatre chain name from the feed."""
    if theatre == ALTERNATE_THEATRE_NAME:
        return ICON_ALTERNATE
    return ICON_DEFAULT


class AssetCache:
    """Poster download cache plus the lazily loaded branding images."""

    def __init__(self, images_dir: Path, timeout: float = HTTP_TIMEOUT):
        self.images_dir = Path(images_dir)
        self.poster_dir = self.images_dir / POSTER_CACHE_SUBDIR
        self.timeout = timeout

        self._lock = threading.Lock()
        self._logo: Optional[Image.Image] = None
        self._icons: Dict[str, Image.Image] = {}

    # ------------------------------------------------------------------------
    # Branding mark and theatre icons
    # ------------------------------------------------------------------------

    def logo(self) -> Image.Image:
        """Branding mark resized to the top bar width, loaded once."""
        with self._lock:
            if self._logo is None:
                path = self.images_dir / LOGO_FILENAME
                self._logo = resize_to_width(load_image(path), LOGO_WIDTH)
                logger.info(f"LOGO_LOADED path={path} size={self._logo.size}")
            return self._logo

    def theatre_icon(self, name: str, width: int) -> Image.Image:
        """
        Theatre chain icon, loaded once and resized to ``width``.

        The width of the first request wins for the rest of the process.
        """
        with self._lock:
            icon = self._icons.get(name)
            if icon is None:
                path = self.images_dir / ICON_FILENAME_TEMPLATE.format(name=name)
                icon = resize_to_width(load_image(path), width)
                self._icons[name] = icon
                logger.info(f"ICON_LOADED name={name} size={icon.size}")
            return icon

    def icon_for_theatre(self, theatre: str, width: int) -> Image.Image:
        return self.theatre_icon(icon_name_for_theatre(theatre), width)

    def preload(self, icon_width: int) -> None:
        """Load the branding mark and both theatre icons up front."""
        self.logo()
        for name in (ICON_DEFAULT, ICON_ALTERNATE):
            self.theatre_icon(name, icon_width)

    # ------------------------------------------------------------------------
    # Posters
    # ------------------------------------------------------------------------

    def poster_path(self, filename: str) -> Path:
        return self.poster_dir / filename

    def fetch_poster(self, url: str, filename: str) -> Path:
        """
        Download a poster unless it is already cached.

        Returns:
            Path of the cached file

        Raises:
            AssetFetchError: on any network or file system failure
        """
        path = self.poster_path(filename)
        if path.exists():
            logger.debug(f"POSTER_CACHE_HIT file={filename}")
            return path

        try:
            req = Request(url, headers={'User-Agent': USER_AGENT})
            with urlopen(req, timeout=self.timeout) as response:
                data = response.read()
        except HTTPError as e:
            raise AssetFetchError(f"Failed to download poster {url}: HTTP {e.code}") from e
        except URLError as e:
            raise AssetFetchError(f"Failed to download poster {url}: {e.reason}") from e
        except (OSError, HTTPException) as e:
            raise AssetFetchError(f"Failed to download poster {url}: {e}") from e
        except ValueError as e:
            # Empty or scheme-less URL from the feed
            raise AssetFetchError(f"Invalid poster URL {url!r}: {e}") from e

        # Write to a sibling file first so a cache hit never sees a partial poster
        partial = path.with_name(f"{path.name}.{threading.get_ident()}.part")
        try:
            self.poster_dir.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(data)
            os.replace(partial, path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise AssetFetchError(f"Failed to write poster {path}: {e}") from e

        logger.info(f"POSTER_DOWNLOADED file={filename} bytes={len(data)}")
        return path

    def fetch_posters(self, movies: Sequence[MovieEntry]) -> List[Path]:
        """
        Fetch every poster of a batch concurrently.

        Blocks until all downloads finish, then raises the first failure (in
        batch order) if any.
        """
        if not movies:
            return []

        paths: List[Optional[Path]] = [None] * len(movies)
        errors: List[Optional[Exception]] = [None] * len(movies)

        with ThreadPoolExecutor(max_workers=len(movies)) as executor:
            futures = {
                executor.submit(self.fetch_poster, movie.poster_url, movie.poster_filename): idx
                for idx, movie in enumerate(movies)
            }
            for future in as_completed(futures):
                idx = futures[future]
                try:
                    paths[idx] = future.result()
                except AssetFetchError as e:
                    errors[idx] = e

        for error in errors:
            if error is not None:
                raise error

        return [p for p in paths if p is not None]

    def cache_stats(self) -> Dict[str, Any]:
        files = list(self.poster_dir.glob('*.jpg')) if self.poster_dir.exists() else []
        total_size = sum(f.stat().st_size for f in files)
        return {
            'posters_cached': len(files),
            'total_size_mb': total_size / (1024 * 1024),
            'cache_dir': str(self.poster_dir),
        }
