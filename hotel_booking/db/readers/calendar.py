"""
Read side of the availability calendar.

check_window is used twice per reservation: once unlocked as an optimistic
pre-check (availability endpoint), and once with ``lock=True`` inside the
reservation transaction, where it is the authoritative check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from hotel_booking.models.availability import AvailabilityDay
from hotel_booking.utils.datetime import stay_nights


@dataclass(frozen=True)
class DayAvailability:
    date: date
    available_units: int
    is_blocked: bool
    override_price: Optional[Decimal]


@dataclass
class WindowCheck:
    """
    Per-night availability for one room over [check_in, check_out).

    exhausted: nights with fewer than the requested units left
    blocked: nights under a manual hold
    missing: nights with no calendar row (never bookable)
    """

    room_id: int
    check_in: date
    check_out: date
    units: int
    days: list[DayAvailability] = field(default_factory=list)
    exhausted: list[date] = field(default_factory=list)
    blocked: list[date] = field(default_factory=list)
    missing: list[date] = field(default_factory=list)

    @property
    def is_available(self) -> bool:
        return bool(self.days) and not (self.exhausted or self.blocked or self.missing)

    @property
    def nights(self) -> int:
        return len(self.days) + len(self.missing)


def check_window(
    conn: Connection,
    room_id: int,
    check_in: date,
    check_out: date,
    units: int = 1,
    lock: bool = False,
) -> WindowCheck:
    """
    Report availability for every night of a half-open stay window.

    Args:
        conn (Connection): Active connection; must be inside a transaction when lock=True.
        room_id (int): Room identifier.
        check_in (date): First night of the stay.
        check_out (date): Departure day (not consumed).
        units (int): Units needed on each night.
        lock (bool): Take exclusive row locks (SELECT ... FOR UPDATE), ordered by date.

    Returns:
        WindowCheck: Per-night rows plus the exhausted, blocked and missing nights.
    """
    stmt = (
        select(
            AvailabilityDay.date,
            AvailabilityDay.available_units,
            AvailabilityDay.is_blocked,
            AvailabilityDay.override_price,
        )
        .where(AvailabilityDay.room_id == room_id)
        .where(AvailabilityDay.date >= check_in)
        .where(AvailabilityDay.date < check_out)
        .order_by(AvailabilityDay.date)
    )
    if lock:
        stmt = stmt.with_for_update()

    rows = {row.date: row for row in conn.execute(stmt)}

    result = WindowCheck(room_id=room_id, check_in=check_in, check_out=check_out, units=units)
    for night in stay_nights(check_in, check_out):
        row = rows.get(night)
        if row is None:
            result.missing.append(night)
            continue

        day = DayAvailability(
            date=night,
            available_units=row.available_units,
            is_blocked=bool(row.is_blocked),
            override_price=(
                Decimal(row.override_price) if row.override_price is not None else None
            ),
        )
        result.days.append(day)
        if day.is_blocked:
            result.blocked.append(night)
        elif day.available_units < units:
            result.exhausted.append(night)

    return result
