import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
from datetime import date

import structlog

from hotel_booking.db.engine import engine
from hotel_booking.logging_config import setup_logging
from hotel_booking.services.booking_status import complete_finished_stays

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """
    Mark confirmed bookings as completed once their checkout day has come.

    Meant to run daily from cron.
    """
    parser = argparse.ArgumentParser(description="Complete bookings whose stay has ended")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=date.today(),
        help="Reference day (YYYY-MM-DD), defaults to today",
    )
    args = parser.parse_args()

    try:
        completed = complete_finished_stays(engine, args.today)
        logger.info("complete_stays_finished", today=str(args.today), completed=len(completed))
    except Exception:
        logger.exception("complete_stays_failed", today=str(args.today))
        raise


if __name__ == "__main__":
    main()
