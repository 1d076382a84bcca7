import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from hotel_booking.db.engine import engine
from hotel_booking.db.writers.calendar import materialize_calendar, set_blocked
from hotel_booking.logging_config import setup_logging

setup_logging()
logger = structlog.get_logger(__name__)


def provision(
    room_id: int,
    start: date,
    end: date,
    units: Optional[int] = None,
    override_price: Optional[Decimal] = None,
    block: bool = False,
) -> int:
    """
    Create the missing calendar rows of a room for [start, end).

    With ``block`` the whole range is then put on hold, e.g. for maintenance.
    """
    with engine.begin() as conn:
        created = materialize_calendar(conn, room_id, start, end, units, override_price)
        if block:
            blocked = set_blocked(conn, room_id, start, end)
            logger.info("calendar_blocked", room_id=room_id, nights=blocked)
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Materialize availability rows for a room")
    parser.add_argument("room_id", type=int)
    parser.add_argument("start", type=date.fromisoformat, help="First night (YYYY-MM-DD)")
    parser.add_argument("end", type=date.fromisoformat, help="Day after the last night")
    parser.add_argument("--units", type=int, default=None, help="Defaults to the room's total")
    parser.add_argument("--price", type=Decimal, default=None, help="Nightly override price")
    parser.add_argument("--block", action="store_true", help="Hold the range after creating it")
    args = parser.parse_args()

    try:
        created = provision(args.room_id, args.start, args.end, args.units, args.price, args.block)
        logger.info("calendar_provisioned", room_id=args.room_id, created=created)
    except Exception:
        logger.exception("calendar_provisioning_failed", room_id=args.room_id)
        raise


if __name__ == "__main__":
    main()
