#!/usr/bin/env python3
"""
Main entry point for the Crunchyroll watch history export
"""

import os
import sys
import logging
import argparse
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from dotenv import load_dotenv
from export_manager import ExportManager
from cutoff_store import DEFAULT_CUTOFF_FILE

# Load environment variables
load_dotenv()

REQUIRED_ENV_VARS = ['CR_USERNAME', 'CR_PASSWORD']


def setup_logging(debug: bool = False) -> None:
    """Setup logging configuration with clean output"""
    log_level = logging.DEBUG if debug else logging.INFO

    # Create logs directory
    Path("logs").mkdir(exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('logs/export.log', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )

    # Request-level noise even in debug mode
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('urllib3.connectionpool').setLevel(logging.WARNING)


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Export Crunchyroll watch history to a JSON report of series and episode counts'
    )

    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--limit', type=positive_int, default=None,
                        help='Stop after counting this many history entries (default: no limit)')
    parser.add_argument('--cutoff-file', default=DEFAULT_CUTOFF_FILE,
                        help=f'File holding the last run timestamp (default: {DEFAULT_CUTOFF_FILE})')
    parser.add_argument('--output-dir', default='.',
                        help='Directory for show_data.json reports (default: current directory)')
    parser.add_argument('--reset-cutoff', action='store_true',
                        help='Ignore the stored cutoff and re-read the whole history')
    parser.add_argument('--locale', default='en-US',
                        help='Locale for titles and descriptions (default: en-US)')

    return parser.parse_args(argv)


def validate_environment() -> bool:
    """Validate required environment variables"""
    missing_vars = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]

    if missing_vars:
        logging.error("Missing required environment variables:")
        for var in missing_vars:
            logging.error(f"  - {var}")
        logging.error("Please check your .env file.")
        return False

    return True


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_arguments(argv)

    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    try:
        logger.info("🚀 Starting Crunchyroll history export")

        if not validate_environment():
            return 1

        config = {
            'cr_username': os.getenv('CR_USERNAME'),
            'cr_password': os.getenv('CR_PASSWORD'),
            'limit': args.limit,
            'cutoff_file': args.cutoff_file,
            'output_dir': args.output_dir,
            'reset_cutoff': args.reset_cutoff,
            'locale': args.locale,
            'debug': args.debug
        }

        logger.info(f"Configuration: limit={config['limit']}, cutoff_file={config['cutoff_file']}, "
                    f"output_dir={config['output_dir']}")

        export_manager = ExportManager(**config)

        if export_manager.run_export():
            logger.info("✅ Export completed successfully!")
            return 0
        else:
            logger.error("❌ Export failed")
            return 1

    except KeyboardInterrupt:
        logger.info("⏹️ Process interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"❌ Unhandled error: {e}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
