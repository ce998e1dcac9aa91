"""Tests for src/crunchyroll_models.py - API payload parsing."""

from datetime import datetime, timezone

import pytest

from crunchyroll_models import (
    Episode,
    Movie,
    OtherMedia,
    Series,
    WatchHistoryEntry,
    media_from_api,
    parse_datetime,
)


class TestParseDatetime:
    """Tests for parse_datetime()."""

    def test_z_suffix(self):
        assert parse_datetime("2024-06-01T12:00:00Z") == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def test_milliseconds(self):
        parsed = parse_datetime("2024-06-01T12:00:00.5Z")
        assert parsed.microsecond == 500000

    def test_naive_is_utc(self):
        assert parse_datetime("2024-06-01T12:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["", "   ", "yesterday", None])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_datetime(value)


class TestWatchHistoryEntry:
    """Tests for WatchHistoryEntry.from_api()."""

    def test_from_api(self):
        entry = WatchHistoryEntry.from_api({
            'id': 'GRDKJZ81Y',
            'parent_id': 'GY8VEQ95Y',
            'parent_type': 'series',
            'date_played': '2024-06-01T12:00:00Z',
            'fully_watched': True,
        })

        assert entry.id == 'GRDKJZ81Y'
        assert entry.parent_id == 'GY8VEQ95Y'
        assert entry.parent_type == 'series'
        assert entry.fully_watched is True
        assert entry.date_played == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def test_parent_from_panel(self):
        """Test series_id in the panel is used when parent_id is absent."""
        entry = WatchHistoryEntry.from_api({
            'date_played': '2024-06-01T12:00:00Z',
            'panel': {'id': 'EP1', 'episode_metadata': {'series_id': 'SERIES1'}},
        })

        assert entry.id == 'EP1'
        assert entry.parent_id == 'SERIES1'

    def test_missing_parent_raises(self):
        with pytest.raises(ValueError):
            WatchHistoryEntry.from_api({'id': 'x', 'date_played': '2024-06-01T12:00:00Z'})

    def test_bad_date_raises(self):
        with pytest.raises(ValueError):
            WatchHistoryEntry.from_api({'id': 'x', 'parent_id': 'y', 'date_played': 'soon'})


class TestMediaFromApi:
    """Tests for media_from_api()."""

    def test_series_from_objects_endpoint(self):
        """Test series fields nested under series_metadata are found."""
        media = media_from_api({
            'type': 'series',
            'id': 'GY8VEQ95Y',
            'title': 'Show A',
            'slug_title': 'show-a',
            'description': 'short',
            'images': {
                'poster_tall': [[
                    {'source': 'https://img/60.jpg', 'width': 60, 'height': 90},
                    {'source': 'https://img/240.jpg', 'width': 240, 'height': 360},
                    {'source': 'https://img/480.jpg', 'width': 480, 'height': 720},
                ]],
            },
            'series_metadata': {
                'extended_description': 'long',
                'episode_count': 24,
                'season_count': 2,
                'content_provider': 'Aniplex',
                'keywords': ['mecha'],
            },
        })

        match media:
            case Series() as series:
                assert series.title == 'Show A'
                assert series.slug_title == 'show-a'
                assert series.extended_description == 'long'
                assert series.episode_count == 24
                assert series.season_count == 2
                assert series.content_provider == 'Aniplex'
                assert series.keywords == ['mecha']
                assert [image.source for image in series.poster_tall] == [
                    'https://img/60.jpg', 'https://img/240.jpg', 'https://img/480.jpg',
                ]
                assert series.poster_tall[2].width == 480
            case _:
                pytest.fail(f"expected Series, got {media!r}")

    def test_series_flat_fields(self):
        """Test the flat series endpoint shape with a flat poster list."""
        media = media_from_api({
            'type': 'series',
            'id': 'S1',
            'title': 'Flat',
            'episode_count': 3,
            'season_count': 1,
            'keywords': [],
            'images': {'poster_tall': [{'source': 'a'}, {'source': 'b'}]},
        })

        assert media.episode_count == 3
        assert media.content_provider is None
        assert [image.source for image in media.poster_tall] == ['a', 'b']

    def test_series_missing_optional_fields(self):
        media = media_from_api({'type': 'series', 'id': 'S2', 'title': 'Bare'})

        assert media == Series(id='S2', title='Bare')

    def test_movie(self):
        assert media_from_api({'type': 'movie', 'id': 'M1', 'title': 'Film'}) == Movie(id='M1', title='Film')

    def test_episode(self):
        media = media_from_api({
            'type': 'episode',
            'id': 'E1',
            'title': 'Pilot',
            'episode_metadata': {'series_title': 'Show A'},
        })

        assert media == Episode(id='E1', title='Pilot', series_title='Show A')

    @pytest.mark.parametrize("media_type", ["season", "movie_listing", "musicVideo", ""])
    def test_other_types(self, media_type):
        media = media_from_api({'type': media_type, 'id': 'X1', 'title': 'Whatever'})

        assert media == OtherMedia(id='X1', media_type=media_type)
