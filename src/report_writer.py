"""
Show Data Report Writer
Joins episode counts with series metadata and saves them as JSON.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

DEFAULT_REPORT_NAME = "show_data.json"


class ReportWriter:
    """Writes the aggregated watch data to a new, never-overwritten JSON file"""

    def __init__(self, output_dir: str = ".", base_name: str = DEFAULT_REPORT_NAME):
        self.output_dir = Path(output_dir)
        self.base_name = base_name

    @staticmethod
    def build_report(counts: Dict[str, int],
                     metadata: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        """One record per series with captured metadata; other titles are left out"""
        return [
            {
                'series': series_data,
                'episodesWatched': counts.get(title, 0),
            }
            for title, series_data in metadata.items()
        ]

    def get_unique_filename(self) -> Path:
        """First free name out of show_data.json, show_data-1.json, show_data-2.json..."""
        stem = Path(self.base_name).stem
        suffix = Path(self.base_name).suffix or '.json'

        candidate = self.output_dir / f"{stem}{suffix}"
        counter = 1
        while candidate.exists():
            candidate = self.output_dir / f"{stem}-{counter}{suffix}"
            counter += 1

        return candidate

    def write(self, counts: Dict[str, int], metadata: Dict[str, Dict[str, Any]]) -> Path:
        """
        Save the report and return its path

        Raises:
            OSError: if the file cannot be written
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        report = self.build_report(counts, metadata)
        filename = self.get_unique_filename()

        # "x" never replaces an existing file
        with open(filename, 'x', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
            f.write('\n')

        logger.info(f"💾 Extracted data saved to: {filename}")
        return filename
