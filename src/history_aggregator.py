"""
Watch History Aggregation

Walks the watch history newest-first, counting episodes per title and
capturing series metadata the first time each series shows up.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from crunchyroll_client import CrunchyrollAPIError
from crunchyroll_models import Episode, Movie, OtherMedia, Series, WatchHistoryEntry

logger = logging.getLogger(__name__)

# Third entry of the tall poster size list
POSTER_INDEX = 2
UNKNOWN_PUBLISHER = "Unknown"
NO_IMAGE = "No image available"


def extract_series_metadata(series: Series) -> Dict[str, Any]:
    """Build the report's series block from a Series object"""
    if len(series.poster_tall) > POSTER_INDEX:
        poster = series.poster_tall[POSTER_INDEX].source
    else:
        poster = NO_IMAGE

    return {
        'title': series.title,
        'slug': series.slug_title,
        'description': series.description,
        'extendedDescription': series.extended_description,
        'episodes': series.episode_count,
        'seasons': series.season_count,
        'publisher': series.content_provider or UNKNOWN_PUBLISHER,
        'keywords': list(series.keywords),
        'posterTall': poster,
    }


class HistoryAggregator:
    """Counts watched episodes per title and collects series metadata"""

    def __init__(self, client, cutoff: Optional[datetime] = None,
                 limit: Optional[int] = None):
        """
        Args:
            client: anything with a media_from_id(id) method
            cutoff: stop at the first entry played strictly before this
            limit: stop after this many counted entries
        """
        self.client = client
        self.cutoff = cutoff
        self.limit = limit

        self.counts: Dict[str, int] = {}
        self.metadata: Dict[str, Dict[str, Any]] = {}
        self.processed_count = 0
        self.failed_count = 0
        self.skipped_count = 0
        self.stopped = False
        self.stop_reason: Optional[str] = None

    def process(self, entries: Iterable[WatchHistoryEntry]) -> 'HistoryAggregator':
        """Consume entries until exhausted, the cutoff is reached or the limit hit"""
        for entry in entries:
            self.process_entry(entry)
            if self.stopped:
                break

        logger.info(f"📊 Processed {self.processed_count} entries across {len(self.counts)} titles")
        return self

    def process_entry(self, entry: WatchHistoryEntry) -> None:
        """Handle a single history entry, setting self.stopped when the scan should end"""
        try:
            media = self.client.media_from_id(entry.parent_id)
        except CrunchyrollAPIError as e:
            logger.error(f"❌ Error fetching media {entry.parent_id} for history entry {entry.id}: {e}")
            self.failed_count += 1
            return

        match media:
            case Series(title=title):
                series = media
            case Movie(title=title) | Episode(title=title):
                series = None
            case OtherMedia(media_type=media_type):
                logger.debug(f"Skipping {media_type} {entry.parent_id}")
                self.skipped_count += 1
                return
            case _:
                raise TypeError(f"Unexpected media object: {media!r}")

        if self.cutoff is not None and entry.date_played < self.cutoff:
            logger.info(f"Stopping: Show watched before cutoff ({self.cutoff.isoformat()}). Title: {title}")
            self.stopped = True
            self.stop_reason = 'cutoff'
            return

        self.counts[title] = self.counts.get(title, 0) + 1

        if series is not None and title not in self.metadata:
            self.metadata[title] = extract_series_metadata(series)

        logger.info(f"{title}: {self.counts[title]} episodes watched")
        self.processed_count += 1

        if self.limit is not None and self.processed_count >= self.limit:
            logger.info(f"Reached processing limit of {self.limit} entries")
            self.stopped = True
            self.stop_reason = 'limit'
