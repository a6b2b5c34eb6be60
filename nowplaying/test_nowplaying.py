#!/usr/bin/env python3
"""
Unit tests for the feed, partitioning, date phrasing, layout and config helpers.

These tests exercise the pure parts of the renderer without a network
connection or any image drawing.

Run with:
    python3 -m pytest nowplaying/test_nowplaying.py -v
"""

import http.client
import json
import tempfile
import unittest
from datetime import date
from pathlib import Path
from typing import Optional
from unittest import mock
from urllib.error import HTTPError, URLError

from nowplaying.config import Settings, apply_overrides, load_settings
from nowplaying.constants import CANVAS_WIDTH, MAX_WORKERS
from nowplaying.dates import format_date_range, month_name
from nowplaying.errors import FeedError
from nowplaying.feed import DateRange, MovieEntry, fetch_home, parse_home, parse_timestamp
from nowplaying.layout import (
    compute_layout,
    gradient_alpha,
    gradient_column,
    item_width,
    shared_title_height,
    text_block_height,
    title_column_width,
    top_rounded_clip_path,
    wrap_text,
)
from nowplaying.partition import now_playing_prefix, partition_batches


class FakeResponse:
    """Minimal stand-in for the object returned by urlopen"""

    def __init__(self, body: bytes, status: int = 200, read_error: Optional[Exception] = None):
        self.body = body
        self.status = status
        self.read_error = read_error

    def read(self) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def movie(title: str, theatres: str = 'Cinemais Anápolis') -> MovieEntry:
    slug = title.lower().replace(' ', '-')
    return MovieEntry(
        title=title,
        poster_url=f"https://img.test/{slug}.jpg",
        movie_url=f"https://site.test/filme/{slug}",
        theatres=theatres,
    )


HOME_PAYLOAD = {
    'now_playing_week': {
        'start': '2019-05-03T00:00:00Z',
        'end': '2019-05-10T00:00:00Z',
    },
    'movies': [
        {
            'title': 'Vingadores: Ultimato',
            'poster': 'https://img.test/vingadores.jpg',
            'movie_url': 'https://site.test/filme/vingadores-ultimato',
            'theatres': 'Cinemais Anápolis - IBICINEMAS',
            'release_date': '2019-04-25T00:00:00Z',
            'session_type': 1,
        },
        {
            'title': 'Pokémon: Detetive Pikachu',
            'poster': 'https://img.test/pikachu.jpg',
            'movie_url': 'https://site.test/filme/detetive-pikachu',
            'theatres': '',
        },
    ],
}


class TestPartitionBatches(unittest.TestCase):
    """Tests for partition_batches"""

    def test_batch_counts(self):
        """ceil(N / 3) batches, every batch full except possibly the last"""
        expected = {0: [], 1: [1], 2: [2], 3: [3], 4: [3, 1], 7: [3, 3, 1]}
        for n, sizes in expected.items():
            movies = [movie(f"Filme {i}") for i in range(n)]
            batches = partition_batches(movies)
            self.assertEqual([len(b) for b in batches], sizes, f"n={n}")

    def test_batches_are_numbered_from_one_and_keep_order(self):
        movies = [movie(f"Filme {i}") for i in range(5)]
        batches = partition_batches(movies)

        self.assertEqual([b.index for b in batches], [1, 2])
        flattened = [m for b in batches for m in b.movies]
        self.assertEqual(flattened, movies)

    def test_invalid_size(self):
        with self.assertRaises(ValueError):
            partition_batches([movie('A')], size=0)

    def test_output_filename(self):
        batch = partition_batches([movie('A')])[0]
        self.assertEqual(batch.output_filename('3 a 10 de maio'), 'Em cartaz 3 a 10 de maio-1.png')


class TestNowPlayingPrefix(unittest.TestCase):
    """Tests for the currently showing filter"""

    def test_stops_at_first_entry_without_theatre(self):
        a, b, gap, c = movie('A'), movie('B'), movie('Gap', theatres=''), movie('C')
        self.assertEqual(now_playing_prefix([a, b, gap, c]), [a, b])

    def test_empty_when_first_entry_not_showing(self):
        self.assertEqual(now_playing_prefix([movie('A', theatres=''), movie('B')]), [])

    def test_all_showing(self):
        movies = [movie('A'), movie('B')]
        self.assertEqual(now_playing_prefix(movies), movies)


class TestMovieEntry(unittest.TestCase):
    """Tests for MovieEntry derived values"""

    def test_poster_filename_uses_last_url_segment(self):
        entry = movie('Vingadores Ultimato')
        self.assertEqual(entry.poster_filename, 'vingadores-ultimato.jpg')

    def test_theatre_names(self):
        entry = movie('A', theatres='Cinemais Anápolis - IBICINEMAS')
        self.assertEqual(entry.theatre_names, ['Cinemais Anápolis', 'IBICINEMAS'])
        self.assertEqual(movie('B', theatres='').theatre_names, [])


class TestDateFormatting(unittest.TestCase):
    """Tests for Portuguese date range phrasing"""

    def test_same_month(self):
        week = DateRange(date(2019, 5, 3), date(2019, 5, 10))
        self.assertEqual(format_date_range(week), '3 a 10 de Maio')

    def test_cross_month(self):
        week = DateRange(date(2019, 4, 28), date(2019, 5, 2))
        self.assertEqual(format_date_range(week), '28 de Abril a 2 de Maio')

    def test_lowercased_months_only(self):
        same = DateRange(date(2019, 5, 3), date(2019, 5, 10))
        cross = DateRange(date(2019, 2, 27), date(2019, 3, 6))
        self.assertEqual(format_date_range(same, lowercased=True), '3 a 10 de maio')
        self.assertEqual(format_date_range(cross, lowercased=True), '27 de fevereiro a 6 de março')

    def test_month_name_out_of_range(self):
        self.assertEqual(month_name(1), 'Janeiro')
        self.assertEqual(month_name(12), 'Dezembro')
        self.assertEqual(month_name(0), '')
        self.assertEqual(month_name(13), '')


class TestFeedParsing(unittest.TestCase):
    """Tests for home.json decoding"""

    def test_parse_timestamp(self):
        self.assertEqual(parse_timestamp('2019-05-03T00:00:00Z'), date(2019, 5, 3))
        self.assertEqual(parse_timestamp('2019-05-03T22:30:00-03:00'), date(2019, 5, 3))
        with self.assertRaises(ValueError):
            parse_timestamp('')
        with self.assertRaises(ValueError):
            parse_timestamp('not a date')

    def test_parse_timestamp_fractional_seconds(self):
        """Sub-second precision of any length, as written by the feed's encoder"""
        self.assertEqual(parse_timestamp('2019-05-02T00:00:00.5-03:00'), date(2019, 5, 2))
        self.assertEqual(parse_timestamp('2019-05-02T10:00:00.123456789Z'), date(2019, 5, 2))
        self.assertEqual(parse_timestamp('2019-05-02T10:00:00.12Z'), date(2019, 5, 2))

    def test_null_fields_become_empty_strings(self):
        payload = {
            'now_playing_week': HOME_PAYLOAD['now_playing_week'],
            'movies': [{'title': None, 'poster': None, 'movie_url': None, 'theatres': 'IBICINEMAS'}],
        }
        entry = parse_home(payload).movies[0]
        self.assertEqual(entry.title, '')
        self.assertEqual(entry.poster_url, '')
        self.assertEqual(entry.movie_url, '')

    def test_parse_home(self):
        home = parse_home(HOME_PAYLOAD)

        self.assertEqual(home.now_playing_week, DateRange(date(2019, 5, 3), date(2019, 5, 10)))
        self.assertEqual(len(home.movies), 2)

        first = home.movies[0]
        self.assertEqual(first.title, 'Vingadores: Ultimato')
        self.assertEqual(first.poster_url, 'https://img.test/vingadores.jpg')
        self.assertEqual(first.release_date, date(2019, 4, 25))
        self.assertEqual(first.session_type, 1)
        self.assertTrue(first.is_now_playing)
        self.assertFalse(home.movies[1].is_now_playing)

    def test_parse_home_rejects_bad_shapes(self):
        for payload in ([], {}, {'now_playing_week': 'x'},
                        {'now_playing_week': {'start': 'bad', 'end': 'bad'}},
                        {'now_playing_week': HOME_PAYLOAD['now_playing_week'], 'movies': 'x'}):
            with self.assertRaises(FeedError, msg=repr(payload)):
                parse_home(payload)


class TestFetchHome(unittest.TestCase):
    """Tests for fetch_home with the network replaced"""

    @mock.patch('nowplaying.feed.urlopen')
    def test_fetch_ok(self, mock_urlopen):
        mock_urlopen.return_value = FakeResponse(json.dumps(HOME_PAYLOAD).encode('utf-8'))

        home = fetch_home('https://feed.test/')

        request = mock_urlopen.call_args[0][0]
        self.assertEqual(request.full_url, 'https://feed.test/home.json')
        self.assertEqual(len(home.movies), 2)

    @mock.patch('nowplaying.feed.urlopen')
    def test_non_200_is_an_error(self, mock_urlopen):
        mock_urlopen.return_value = FakeResponse(b'{}', status=204)
        with self.assertRaises(FeedError):
            fetch_home('https://feed.test')

    @mock.patch('nowplaying.feed.urlopen')
    def test_http_error(self, mock_urlopen):
        mock_urlopen.side_effect = HTTPError('https://feed.test/home.json', 500, 'Server Error', {}, None)
        with self.assertRaises(FeedError):
            fetch_home('https://feed.test')

    @mock.patch('nowplaying.feed.urlopen')
    def test_unreachable(self, mock_urlopen):
        mock_urlopen.side_effect = URLError('connection refused')
        with self.assertRaises(FeedError):
            fetch_home('https://feed.test')

    @mock.patch('nowplaying.feed.urlopen')
    def test_invalid_json(self, mock_urlopen):
        mock_urlopen.return_value = FakeResponse(b'<html>not json</html>')
        with self.assertRaises(FeedError):
            fetch_home('https://feed.test')

    @mock.patch('nowplaying.feed.urlopen')
    def test_base_url_without_scheme(self, mock_urlopen):
        with self.assertRaises(FeedError):
            fetch_home('api.amenic.app')
        mock_urlopen.assert_not_called()

    @mock.patch('nowplaying.feed.urlopen')
    def test_truncated_body(self, mock_urlopen):
        mock_urlopen.return_value = FakeResponse(b'', read_error=http.client.IncompleteRead(b'{"now'))
        with self.assertRaises(FeedError):
            fetch_home('https://feed.test')


class TestLayout(unittest.TestCase):
    """Tests for the collage geometry"""

    def test_item_width(self):
        self.assertAlmostEqual(item_width(1000), 294.0)
        self.assertAlmostEqual(title_column_width(294.0), 254.0)

    def test_row_is_centered_within_margins(self):
        """Items plus spacing fit between the margins and are centered"""
        for count in (1, 2, 3):
            geometry = compute_layout(count, item_height=441, bar_height=140, title_height=30)
            left, right = geometry.row_span()

            self.assertGreaterEqual(left, geometry.margin - 1e-6, f"count={count}")
            self.assertLessEqual(right, CANVAS_WIDTH - geometry.margin + 1e-6, f"count={count}")
            self.assertAlmostEqual(left - geometry.margin, CANVAS_WIDTH - geometry.margin - right)

    def test_items_do_not_overlap(self):
        geometry = compute_layout(3, item_height=441, bar_height=140, title_height=30)
        boxes = [geometry.item_box(i) for i in range(3)]
        for prev, nxt in zip(boxes, boxes[1:]):
            self.assertAlmostEqual(nxt.left - prev.right, geometry.spacing)

    def test_vertical_positions(self):
        geometry = compute_layout(2, item_height=441, bar_height=140, title_height=30)
        self.assertEqual(geometry.header_baseline, 240)
        self.assertEqual(geometry.subheader_baseline, 280)
        self.assertEqual(geometry.items_top, 340)
        self.assertEqual(geometry.item_box(0).bottom, 781)

    def test_title_and_icons_stack_inside_item(self):
        geometry = compute_layout(1, item_height=441, bar_height=140, title_height=30)
        box = geometry.item_box(0)
        title_x, title_y = geometry.title_origin(0)

        self.assertAlmostEqual(title_y + geometry.title_height, box.bottom - 40)
        origins = geometry.icon_origins(0, [29, 29])
        self.assertEqual(origins[0], (int(title_x), int(box.bottom - 10)))
        self.assertEqual(origins[1][0], origins[0][0] + 29 + 10)

    def test_zero_items(self):
        with self.assertRaises(ValueError):
            compute_layout(0, item_height=441, bar_height=140, title_height=30)

    def test_shared_title_height_covers_longest_title(self):
        """The shared band is at least as tall as any wrapped title"""
        titles = ['Curto', 'Um titulo bem mais longo que quebra em linhas', 'Medio titulo']
        measure = len  # one unit per character
        max_width = 12
        band = shared_title_height(titles, measure, line_height=10, max_width=max_width)

        for title in titles:
            lines = wrap_text(title, measure, max_width)
            self.assertGreaterEqual(band, text_block_height(len(lines), 10))

    def test_text_block_height(self):
        self.assertEqual(text_block_height(0, 10), 0.0)
        self.assertAlmostEqual(text_block_height(1, 10), 10.0)
        self.assertAlmostEqual(text_block_height(2, 10), 22.0)

    def test_wrap_text(self):
        self.assertEqual(wrap_text('a b c', len, 3), ['a b', 'c'])
        self.assertEqual(wrap_text('supercalifragilistico x', len, 5), ['supercalifragilistico', 'x'])
        self.assertEqual(wrap_text('um\ndois', len, 100), ['um', 'dois'])

    def test_clip_path_rounds_top_corners_only(self):
        path = top_rounded_clip_path(10, 20, 100, 200, 5)

        self.assertEqual(path[0], (15, 20))
        self.assertIn((110, 220), path)
        self.assertIn((10, 220), path)
        for x, y in path:
            self.assertTrue(10 - 1e-6 <= x <= 110 + 1e-6)
            self.assertTrue(20 - 1e-6 <= y <= 220 + 1e-6)

    def test_gradient_alpha(self):
        stops = ((0.0, 0), (1.0, 100))
        self.assertEqual(gradient_alpha(0.0, stops), 0)
        self.assertEqual(gradient_alpha(0.3, stops), 30)
        self.assertEqual(gradient_alpha(1.0, stops), 100)
        self.assertEqual(gradient_alpha(2.0, stops), 100)

    def test_gradient_column(self):
        column = gradient_column(3, ((0.0, 0), (0.5, 15), (1.0, 250)))
        self.assertEqual(column, [0, 15, 250])
        self.assertEqual(gradient_column(0, ((0.0, 0),)), [])


class TestSettings(unittest.TestCase):
    """Tests for YAML config loading and overrides"""

    def test_defaults_without_config(self):
        settings = load_settings()
        self.assertEqual(settings.max_workers, MAX_WORKERS)
        self.assertTrue(settings.lowercase_filename_months)

    def test_yaml_then_overrides(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / 'settings.yml'
            config_path.write_text(
                'base_url: https://yaml.test\n'
                'max_workers: 2\n'
                'use_palette: true\n'
                f'images_dir: {tmpdir}/images\n'
                'not_a_setting: 1\n'
            )

            with self.assertLogs('NowPlaying', level='WARNING') as logs:
                settings = load_settings(config_path, {'base_url': 'https://cli.test', 'max_workers': None})

        self.assertEqual(settings.base_url, 'https://cli.test')
        self.assertEqual(settings.max_workers, 2)
        self.assertTrue(settings.use_palette)
        self.assertEqual(settings.images_dir, Path(tmpdir) / 'images')
        self.assertEqual(settings.poster_cache_dir, Path(tmpdir) / 'images' / 'downloaded')
        self.assertTrue(any('CONFIG_UNKNOWN_KEY key=not_a_setting' in line for line in logs.output))

    def test_missing_config_file(self):
        with self.assertRaises(FileNotFoundError):
            load_settings(Path('/nonexistent/settings.yml'))

    def test_invalid_worker_count(self):
        with self.assertRaises(ValueError):
            apply_overrides(Settings(), {'max_workers': 0})

    def test_string_booleans(self):
        settings = apply_overrides(Settings(), {'use_palette': 'yes', 'strict_fonts': 'false'})
        self.assertTrue(settings.use_palette)
        self.assertFalse(settings.strict_fonts)


if __name__ == '__main__':
    # Run tests with verbose output
    unittest.main(verbosity=2)
