"""
Crunchyroll API Data Models
Typed views over watch history entries and CMS media objects.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

_LEGACY_UTC_SUFFIX = re.compile(r'\s*UTC$')
_FRACTION = re.compile(r'\.(\d+)')


def parse_datetime(value: str) -> datetime:
    """
    Parse an API or cutoff-file timestamp into an aware UTC datetime

    Accepts RFC3339 ("2024-05-01T10:00:00Z", "...+02:00") and the
    "2024-05-01 10:00:00.123 UTC" form older versions wrote.

    Raises:
        ValueError: if the value is not a recognizable timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    text = _LEGACY_UTC_SUFFIX.sub('+00:00', text)
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'

    # fromisoformat only takes up to 6 fractional digits
    text = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class WatchHistoryEntry:
    """One played item from the account's watch history"""

    id: str
    parent_id: str
    date_played: datetime
    parent_type: str = ''
    fully_watched: bool = False

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> 'WatchHistoryEntry':
        """Build an entry from a watch-history API item"""
        panel = item.get('panel') or {}
        episode_metadata = panel.get('episode_metadata') or {}

        parent_id = item.get('parent_id') or episode_metadata.get('series_id')
        if not parent_id:
            raise ValueError(f"Watch history item {item.get('id')!r} has no parent id")

        return cls(
            id=item.get('id') or panel.get('id', ''),
            parent_id=parent_id,
            date_played=parse_datetime(item.get('date_played', '')),
            parent_type=item.get('parent_type', ''),
            fully_watched=bool(item.get('fully_watched', False)),
        )


@dataclass(frozen=True)
class Image:
    source: str
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class Movie:
    id: str
    title: str


@dataclass(frozen=True)
class Episode:
    id: str
    title: str
    series_title: str = ''


@dataclass(frozen=True)
class Series:
    id: str
    title: str
    slug_title: str = ''
    description: str = ''
    extended_description: str = ''
    episode_count: int = 0
    season_count: int = 0
    content_provider: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    poster_tall: List[Image] = field(default_factory=list)


@dataclass(frozen=True)
class OtherMedia:
    """Any CMS object that is not a movie, series or episode (seasons, listings, music...)"""

    id: str
    media_type: str


Media = Union[Movie, Series, Episode, OtherMedia]


def _parse_poster_tall(images: Dict[str, Any]) -> List[Image]:
    """Flatten images.poster_tall, which the API nests as a list of size lists"""
    poster_tall = images.get('poster_tall') or []
    if poster_tall and isinstance(poster_tall[0], list):
        poster_tall = poster_tall[0]

    posters = []
    for image in poster_tall:
        if not isinstance(image, dict) or not image.get('source'):
            continue
        posters.append(Image(
            source=image['source'],
            width=image.get('width', 0),
            height=image.get('height', 0),
        ))

    return posters


def _series_from_api(item: Dict[str, Any]) -> Series:
    series_metadata = item.get('series_metadata') or {}

    def lookup(key: str, default=None):
        value = item.get(key)
        if value is None:
            value = series_metadata.get(key, default)
        return value if value is not None else default

    return Series(
        id=item.get('id', ''),
        title=item.get('title', ''),
        slug_title=item.get('slug_title', ''),
        description=item.get('description', ''),
        extended_description=lookup('extended_description', ''),
        episode_count=lookup('episode_count', 0),
        season_count=lookup('season_count', 0),
        content_provider=lookup('content_provider') or None,
        keywords=list(lookup('keywords', [])),
        poster_tall=_parse_poster_tall(item.get('images') or {}),
    )


def media_from_api(item: Dict[str, Any]) -> Media:
    """Build the media variant matching a CMS object's type"""
    media_type = item.get('type', '')
    media_id = item.get('id', '')

    if media_type == 'series':
        return _series_from_api(item)

    if media_type == 'movie':
        return Movie(id=media_id, title=item.get('title', ''))

    if media_type == 'episode':
        episode_metadata = item.get('episode_metadata') or {}
        return Episode(
            id=media_id,
            title=item.get('title', ''),
            series_title=episode_metadata.get('series_title', ''),
        )

    logger.debug(f"Unhandled media type '{media_type}' for {media_id}")
    return OtherMedia(id=media_id, media_type=media_type)
