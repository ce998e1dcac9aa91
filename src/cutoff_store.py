"""
Cutoff Date Storage

Keeps the timestamp of the last successful export in a small text file so
the next run can stop once it reaches history it has already seen.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from crunchyroll_models import parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF_FILE = "cutoff_date.txt"


class CutoffFormatError(ValueError):
    """Raised when the cutoff file holds something that is not a timestamp."""
    pass


class CutoffStore:
    """Reads and writes the cutoff timestamp file"""

    def __init__(self, path: str = DEFAULT_CUTOFF_FILE):
        self.path = Path(path)

    def read(self) -> Optional[datetime]:
        """
        Load the stored cutoff

        Returns:
            The cutoff as an aware UTC datetime, or None if the file is
            missing or empty

        Raises:
            CutoffFormatError: if the file content is not a valid timestamp
        """
        try:
            contents = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CutoffFormatError(f"Cutoff file {self.path} is not valid UTF-8: {e}") from e

        date_str = contents.strip()
        if not date_str:
            return None

        try:
            return parse_datetime(date_str)
        except ValueError as e:
            raise CutoffFormatError(f"Invalid date format in {self.path}: {date_str!r}") from e

    def write(self, timestamp: datetime) -> None:
        """Overwrite the cutoff file with the given timestamp"""
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write(timestamp.isoformat() + '\n')

        logger.info(f"✅ Updated cutoff date to: {timestamp.isoformat()}")

