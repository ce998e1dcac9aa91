"""
Export manager orchestrating a Crunchyroll watch history export.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from crunchyroll_client import CrunchyrollAPIError, CrunchyrollAuthError, CrunchyrollClient
from cutoff_store import DEFAULT_CUTOFF_FILE, CutoffFormatError, CutoffStore
from history_aggregator import HistoryAggregator
from report_writer import ReportWriter

logger = logging.getLogger(__name__)


class ExportManager:
    """Runs login, history aggregation, report writing and cutoff update in order."""

    def __init__(self, client: Optional[CrunchyrollClient] = None, **config):
        self.config = config
        self.client = client or CrunchyrollClient(locale=config.get('locale', 'en-US'))
        self.cutoff_store = CutoffStore(config.get('cutoff_file', DEFAULT_CUTOFF_FILE))
        self.report_writer = ReportWriter(output_dir=config.get('output_dir', '.'))

        self.aggregator: Optional[HistoryAggregator] = None
        self.report_path: Optional[Path] = None
        self.run_started_at: Optional[datetime] = None

    def run_export(self) -> bool:
        """Execute the complete export. Returns False on any fatal error."""
        try:
            logger.info("🚀 Starting Crunchyroll watch history export...")

            if not self._authenticate():
                return False

            if self.config.get('reset_cutoff'):
                logger.info("🧹 Ignoring stored cutoff date, reading the whole history")
                cutoff = None
            else:
                cutoff = self._load_cutoff()

            # Taken before the scan so history added while running is picked up next time
            self.run_started_at = datetime.now(timezone.utc)
            logger.info(f"Script started at: {self.run_started_at.isoformat()}")

            self.aggregator = HistoryAggregator(
                self.client,
                cutoff=cutoff,
                limit=self.config.get('limit'),
            )
            self.aggregator.process(self.client.watch_history())

            self.report_path = self.report_writer.write(
                self.aggregator.counts,
                self.aggregator.metadata,
            )
            logger.info(f"Finished processing! Check {self.report_path} for results.")

            self.cutoff_store.write(self.run_started_at)

            self._report_results()
            return True

        except KeyboardInterrupt:
            logger.info("⏹️ Process interrupted by user")
            return False
        except (CrunchyrollAPIError, CrunchyrollAuthError) as e:
            logger.error(f"❌ Crunchyroll request failed: {e}")
            return False
        except Exception as e:
            logger.error(f"❌ Export failed: {e}", exc_info=True)
            return False
        finally:
            self._cleanup()

    def _load_cutoff(self) -> Optional[datetime]:
        """Read the previous cutoff; unreadable files count as no cutoff."""
        try:
            cutoff = self.cutoff_store.read()
        except (CutoffFormatError, OSError) as e:
            logger.warning(f"❌ Error reading cutoff date: {e}. Proceeding without a cutoff date.")
            return None

        if cutoff is None:
            logger.warning("⚠️ Warning: No cutoff date found! Proceeding without a cutoff date.")
        else:
            logger.info(f"Previous cutoff date: {cutoff.isoformat()}")

        return cutoff

    def _authenticate(self) -> bool:
        try:
            self.client.login(self.config['cr_username'], self.config['cr_password'])
        except CrunchyrollAuthError as e:
            logger.error(f"❌ Crunchyroll authentication failed: {e}")
            return False

        return True

    def _report_results(self) -> None:
        aggregator = self.aggregator
        logger.info("=" * 50)
        logger.info("📊 Export summary")
        logger.info(f"   Entries counted: {aggregator.processed_count}")
        logger.info(f"   Titles seen: {len(aggregator.counts)}")
        logger.info(f"   Series in report: {len(aggregator.metadata)}")
        if aggregator.skipped_count:
            logger.info(f"   Entries skipped: {aggregator.skipped_count}")
        if aggregator.failed_count:
            logger.warning(f"   Entries failed: {aggregator.failed_count}")
        if aggregator.stop_reason == 'cutoff':
            logger.info("   Reached previously exported history")
        logger.info("=" * 50)

    def _cleanup(self) -> None:
        try:
            self.client.close()
        except Exception as e:
            logger.debug(f"Error closing Crunchyroll client: {e}")
