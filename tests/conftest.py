"""
Shared fixtures: a fake Crunchyroll client and history entry builders.
"""

from datetime import datetime, timedelta, timezone

import pytest

from crunchyroll_client import CrunchyrollAPIError
from crunchyroll_models import Image, Movie, Series, WatchHistoryEntry


BASE_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_entry(parent_id, hours=0, entry_id=None):
    """History entry played `hours` after BASE_TIME (negative for earlier)."""
    return WatchHistoryEntry(
        id=entry_id or f"{parent_id}-{hours}",
        parent_id=parent_id,
        date_played=BASE_TIME + timedelta(hours=hours),
    )


def make_series(title, posters=3, **kwargs):
    fields = dict(
        id=f"series-{title}",
        title=title,
        slug_title=title.lower().replace(' ', '-'),
        description=f"{title} description",
        extended_description=f"{title} extended description",
        episode_count=12,
        season_count=1,
        content_provider="Aniplex",
        keywords=["action"],
        poster_tall=[Image(source=f"https://img/{title}/{i}.jpg") for i in range(posters)],
    )
    fields.update(kwargs)
    return Series(**fields)


class FakeCrunchyrollClient:
    """Stands in for CrunchyrollClient with canned history and media."""

    def __init__(self, media=None, history=None, failing_ids=(), login_error=None):
        self.media = media or {}
        self.history = history or []
        self.failing_ids = set(failing_ids)
        self.login_error = login_error
        self.lookups = []
        self.logged_in_as = None
        self.closed = False

    def login(self, username, password):
        if self.login_error:
            raise self.login_error
        self.logged_in_as = (username, password)

    def watch_history(self):
        for entry in self.history:
            yield entry

    def media_from_id(self, media_id):
        self.lookups.append(media_id)
        if media_id in self.failing_ids:
            raise CrunchyrollAPIError(f"lookup failed for {media_id}")
        return self.media[media_id]

    def close(self):
        self.closed = True


@pytest.fixture
def show_a():
    return make_series("Show A")


@pytest.fixture
def fake_client(show_a):
    return FakeCrunchyrollClient(media={
        'show-a': show_a,
        'movie-1': Movie(id='movie-1', title='Some Movie'),
    })
