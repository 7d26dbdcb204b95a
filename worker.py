"""Long-running reminder worker: sweeps due reminders on a fixed interval."""
import argparse
import logging
import signal
import sys
from typing import List, Optional

from app_logging import setup_logging
from config import Settings
from reminders.scheduler import SweepScheduler
from services.container import build_services
from storage.schema import create_tables

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Calendar reminder worker')
    parser.add_argument(
        '--create-tables',
        action='store_true',
        help='create the DynamoDB tables if missing (local development)'
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help='run a single sweep tick and exit'
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the reminder worker until SIGINT/SIGTERM.

    A store that cannot be reached at startup is fatal.

    Returns:
        Process exit status
    """
    args = parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level, service='reminder-worker')

    services = build_services(settings)
    try:
        if args.create_tables:
            create_tables(services.dynamodb, settings.events_table, settings.reminders_table)
        services.check_connection()
    except Exception as e:
        logger.critical(f"DynamoDB connection error: {e}", exc_info=True)
        return 1

    scheduler = SweepScheduler(services.sweeper, settings.sweep_interval_seconds)

    if args.once:
        result = scheduler.run_once()
        services.close()
        return 0 if result is not None else 1

    def handle_shutdown(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        scheduler.stop()

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    scheduler.start()
    while not scheduler.wait(timeout=1.0):
        pass

    exit_code = 0
    try:
        services.close()
    except Exception as e:
        logger.error(f"Error closing database: {e}", exc_info=True)
        exit_code = 1
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
