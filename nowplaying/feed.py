"""
Home feed client for the Now Playing collage renderer.

This module fetches the weekly listing from the remote ``home.json`` endpoint
and decodes it into immutable records.
"""

import json
import re
from dataclasses import dataclass
from datetime import date, datetime
from http.client import HTTPException
from typing import Any, Dict, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .constants import (
    logger,
    HOME_ENDPOINT,
    HTTP_TIMEOUT,
    THEATRE_SEPARATOR,
    USER_AGENT,
)
from .errors import FeedError


@dataclass(frozen=True)
class DateRange:
    """Calendar range of the current listing week."""

    start: date
    end: date


@dataclass(frozen=True)
class MovieEntry:
    """A single movie as published in the feed."""

    title: str
    poster_url: str
    movie_url: str
    theatres: str = ''
    release_date: Optional[date] = None
    session_type: int = 0

    @property
    def is_now_playing(self) -> bool:
        return self.theatres != ''

    @property
    def theatre_names(self) -> List[str]:
        if not self.theatres:
            return []
        return self.theatres.split(THEATRE_SEPARATOR)

    @property
    def poster_filename(self) -> str:
        # Everything after the final '/' of the detail page URL
        return self.movie_url[self.movie_url.rfind('/') + 1:] + '.jpg'


@dataclass(frozen=True)
class HomeFeed:
    now_playing_week: DateRange
    movies: Tuple[MovieEntry, ...]


# Go encodes sub-second precision with 1 to 9 digits, trailing zeros trimmed
_FRACTIONAL_SECONDS = re.compile(r'(T\d{2}:\d{2}:\d{2})\.\d+')


def parse_timestamp(value: Any) -> date:
    """
    Parse an RFC 3339 timestamp (e.g. ``2019-05-02T00:00:00Z``) into a date.

    The calendar day is taken in the timestamp's own offset, no timezone
    conversion is applied. Fractional seconds of any length are accepted.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = _FRACTIONAL_SECONDS.sub(r'\1', value.strip())
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text).date()


def _parse_movie(raw: Dict[str, Any]) -> MovieEntry:
    release = raw.get('release_date')
    return MovieEntry(
        title=str(raw.get('title') or ''),
        poster_url=str(raw.get('poster') or ''),
        movie_url=str(raw.get('movie_url') or ''),
        theatres=str(raw.get('theatres') or ''),
        release_date=parse_timestamp(release) if release else None,
        session_type=int(raw.get('session_type') or 0),
    )


def parse_home(payload: Any) -> HomeFeed:
    """
    Decode the ``home.json`` document.

    Raises:
        FeedError: if the document does not have the expected shape
    """
    if not isinstance(payload, dict):
        raise FeedError(f"Unexpected home payload type: {type(payload).__name__}")

    week = payload.get('now_playing_week')
    if not isinstance(week, dict):
        raise FeedError("Home payload has no now_playing_week")

    movies = payload.get('movies') or []
    if not isinstance(movies, list):
        raise FeedError("Home payload movies is not a list")

    try:
        now_playing_week = DateRange(
            start=parse_timestamp(week.get('start')),
            end=parse_timestamp(week.get('end')),
        )
        entries = tuple(_parse_movie(m) for m in movies if isinstance(m, dict))
    except (TypeError, ValueError) as e:
        raise FeedError(f"Failed to decode home payload: {e}") from e

    return HomeFeed(now_playing_week=now_playing_week, movies=entries)


def fetch_home(base_url: str, timeout: float = HTTP_TIMEOUT) -> HomeFeed:
    """
    Fetch and decode ``<base_url>/home.json``.

    Any non-200 response, transport failure or decode failure raises
    :class:`FeedError`.
    """
    url = f"{base_url.rstrip('/')}/{HOME_ENDPOINT}"
    logger.info(f"FEED_FETCH url={url}")

    try:
        req = Request(url, headers={'User-Agent': USER_AGENT, 'Accept': 'application/json'})
        with urlopen(req, timeout=timeout) as response:
            status = getattr(response, 'status', 200)
            if status != 200:
                raise FeedError(f"response {status}")
            body = response.read()
    except HTTPError as e:
        raise FeedError(f"response {e.code} {e.reason}") from e
    except URLError as e:
        raise FeedError(f"Failed to reach {url}: {e.reason}") from e
    except (OSError, HTTPException) as e:
        raise FeedError(f"Failed to read {url}: {e}") from e
    except ValueError as e:
        raise FeedError(f"Invalid feed URL {url!r}: {e}") from e

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise FeedError(f"Invalid JSON from {url}: {e}") from e

    home = parse_home(payload)
    logger.info(
        f"FEED_OK week={home.now_playing_week.start.isoformat()}..{home.now_playing_week.end.isoformat()} "
        f"movies={len(home.movies)}"
    )
    return home
