"""
Write side of the availability calendar.

All mutations run on a caller-supplied connection inside the caller's
transaction, so a failed reservation or status change rolls them back with
everything else. Every UPDATE is guarded (units left, not blocked, never above
the room's total) and its rowcount is checked against the number of nights:
a window is changed on all nights or the call raises.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection

from hotel_booking.db.readers.calendar import WindowCheck, check_window
from hotel_booking.errors import InternalError, OutOfInventory, ValidationError
from hotel_booking.models.availability import AvailabilityDay
from hotel_booking.models.directory import Room
from hotel_booking.utils.datetime import count_nights, stay_nights, utc_now

logger = structlog.get_logger(__name__)

StayWindow = tuple[int, date, date]


def lock_windows(conn: Connection, windows: Iterable[StayWindow]) -> dict[StayWindow, WindowCheck]:
    """
    Lock the calendar rows of one or more stay windows in one global order.

    Windows are sorted by (room_id, check_in) and each window's rows are locked
    in date order, so any two requests acquire overlapping locks in the same
    sequence and cannot deadlock each other.

    Args:
        conn: Connection inside an open transaction
        windows: (room_id, check_in, check_out) tuples

    Returns:
        dict: The locked WindowCheck for each window
    """
    locked: dict[StayWindow, WindowCheck] = {}
    for window in sorted(set(windows)):
        room_id, check_in, check_out = window
        locked[window] = check_window(conn, room_id, check_in, check_out, lock=True)
    return locked


def decrement_window(
    conn: Connection,
    room_id: int,
    check_in: date,
    check_out: date,
    units: int = 1,
    checked: Optional[WindowCheck] = None,
) -> int:
    """
    Take ``units`` off every night of [check_in, check_out).

    Args:
        conn: Connection inside an open transaction
        room_id: Room identifier
        check_in: First night
        check_out: Departure day (not consumed)
        units: Units to take per night
        checked: A WindowCheck already read under lock in this transaction;
            when omitted the rows are locked and checked here

    Returns:
        int: Number of nights decremented

    Raises:
        OutOfInventory: If any night is missing, blocked or short of units
    """
    _require_positive(units)

    window = checked
    if window is None or window.units < units:
        window = check_window(conn, room_id, check_in, check_out, units=units, lock=True)
    if not window.is_available:
        raise OutOfInventory(room_id, window.exhausted, window.blocked, window.missing)

    nights = count_nights(check_in, check_out)
    result = conn.execute(
        update(AvailabilityDay)
        .where(AvailabilityDay.room_id == room_id)
        .where(AvailabilityDay.date >= check_in)
        .where(AvailabilityDay.date < check_out)
        .where(AvailabilityDay.is_blocked == False)  # noqa: E712
        .where(AvailabilityDay.available_units >= units)
        .values(available_units=AvailabilityDay.available_units - units, updated_at=utc_now())
    )

    if result.rowcount != nights:
        # Only reachable if another writer changed rows we hold locked
        logger.error(
            "calendar_decrement_mismatch",
            room_id=room_id,
            expected=nights,
            updated=result.rowcount,
        )
        raise OutOfInventory(room_id, exhausted=stay_nights(check_in, check_out))

    return nights


def increment_window(
    conn: Connection,
    room_id: int,
    check_in: date,
    check_out: date,
    units: int = 1,
) -> int:
    """
    Give ``units`` back on every night of [check_in, check_out).

    Used when an active booking is cancelled or refunded. Rows are locked in
    date order first, the same discipline as the decrement.

    Returns:
        int: Number of nights released

    Raises:
        InternalError: If a night has no calendar row, or the release would
            push a night above the room's total units
    """
    _require_positive(units)

    window = check_window(conn, room_id, check_in, check_out, units=0, lock=True)
    if window.missing:
        raise InternalError(
            f"Cannot release room {room_id}: no calendar rows for {window.missing}"
        )

    total_units = (
        select(Room.total_quantity).where(Room.id == room_id).scalar_subquery()
    )
    nights = count_nights(check_in, check_out)
    result = conn.execute(
        update(AvailabilityDay)
        .where(AvailabilityDay.room_id == room_id)
        .where(AvailabilityDay.date >= check_in)
        .where(AvailabilityDay.date < check_out)
        .where(AvailabilityDay.available_units + units <= total_units)
        .values(available_units=AvailabilityDay.available_units + units, updated_at=utc_now())
    )

    if result.rowcount != nights:
        logger.error(
            "calendar_increment_overflow",
            room_id=room_id,
            expected=nights,
            updated=result.rowcount,
        )
        raise InternalError(
            f"Releasing room {room_id} for {check_in}..{check_out} would exceed its total units"
        )

    return nights


def materialize_calendar(
    conn: Connection,
    room_id: int,
    start: date,
    end: date,
    units: Optional[int] = None,
    override_price: Optional[Decimal] = None,
) -> int:
    """
    Create the missing calendar rows of a room for [start, end).

    Existing rows are left untouched. New rows start fully available
    (the room's total_quantity) unless ``units`` is given.

    Returns:
        int: Number of rows created
    """
    if units is None:
        units = conn.execute(
            select(Room.total_quantity).where(Room.id == room_id)
        ).scalar_one_or_none()
        if units is None:
            raise ValidationError(f"Room {room_id} does not exist")

    existing = set(
        conn.execute(
            select(AvailabilityDay.date)
            .where(AvailabilityDay.room_id == room_id)
            .where(AvailabilityDay.date >= start)
            .where(AvailabilityDay.date < end)
        ).scalars()
    )

    rows = [
        {
            "room_id": room_id,
            "date": night,
            "available_units": units,
            "override_price": override_price,
            "is_blocked": False,
        }
        for night in stay_nights(start, end)
        if night not in existing
    ]

    if not rows:
        logger.info("calendar_already_materialized", room_id=room_id, start=str(start), end=str(end))
        return 0

    conn.execute(insert(AvailabilityDay), rows)
    logger.info("calendar_materialized", room_id=room_id, created=len(rows))
    return len(rows)


def set_blocked(conn: Connection, room_id: int, start: date, end: date, blocked: bool = True) -> int:
    """
    Place or lift a manual hold (maintenance, owner use) on [start, end).

    Returns:
        int: Number of rows changed
    """
    result = conn.execute(
        update(AvailabilityDay)
        .where(AvailabilityDay.room_id == room_id)
        .where(AvailabilityDay.date >= start)
        .where(AvailabilityDay.date < end)
        .values(is_blocked=blocked, updated_at=utc_now())
    )
    return result.rowcount


def _require_positive(units: int) -> None:
    if units < 1:
        raise ValidationError("units must be a positive integer")
