"""
Shared fixtures: a throwaway SQLite booking store per test.

The environment is pinned before any hotel_booking module is imported, since
configuration is read at import time.
"""

from __future__ import annotations

import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(
    tempfile.gettempdir(), "hotel_booking_pytest.db"
)
os.environ["PAYMENT_MODE"] = "inline"
os.environ["LOCK_TIMEOUT_MS"] = "10000"
os.environ["TAX_RATE"] = "0"
os.environ["SERVICE_CHARGE_RATE"] = "0"

from dataclasses import dataclass  # noqa: E402
from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any, Callable, Generator, Optional  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import insert, select  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from hotel_booking.db.engine import build_engine  # noqa: E402
from hotel_booking.db.writers.calendar import materialize_calendar  # noqa: E402
from hotel_booking.models.availability import AvailabilityDay  # noqa: E402
from hotel_booking.models.base import Base  # noqa: E402
from hotel_booking.models.bookings import Booking  # noqa: F401, E402
from hotel_booking.models.directory import Hotel, Room  # noqa: E402
from hotel_booking.models.payments import PaymentTransaction  # noqa: F401, E402
from hotel_booking.services.reservations import ReservationRequest  # noqa: E402

MANAGER_ID = 900
GUEST_ID = 7


@dataclass(frozen=True)
class SeededRoom:
    hotel_id: int
    room_id: int
    total_units: int


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """File-backed SQLite engine with the full schema, discarded after the test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'bookings.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seed_room(db_engine: Engine) -> Callable[..., SeededRoom]:
    """
    Factory creating an active hotel + room with a materialized calendar.

    The calendar covers [calendar_start, calendar_end) with every night at
    total_units; pass calendar_end=calendar_start for a room with no rows.
    """

    def _seed(
        total_units: int = 5,
        base_price: str = "100.00",
        calendar_start: date = date(2026, 4, 1),
        calendar_end: date = date(2026, 5, 1),
        manager_id: Optional[int] = MANAGER_ID,
        max_adults: int = 2,
        max_children: int = 1,
        room_active: bool = True,
    ) -> SeededRoom:
        with db_engine.begin() as conn:
            hotel_id = conn.execute(
                insert(Hotel)
                .values(
                    name="Harbour View",
                    manager_id=manager_id,
                    city="Lisbon",
                    country="Portugal",
                    is_active=True,
                )
                .returning(Hotel.id)
            ).scalar_one()
            room_id = conn.execute(
                insert(Room)
                .values(
                    hotel_id=hotel_id,
                    title="Double Room",
                    room_type="double",
                    base_price_per_night=Decimal(base_price),
                    max_adults=max_adults,
                    max_children=max_children,
                    total_quantity=total_units,
                    is_active=room_active,
                )
                .returning(Room.id)
            ).scalar_one()
            if calendar_end > calendar_start:
                materialize_calendar(conn, room_id, calendar_start, calendar_end)
        return SeededRoom(hotel_id=hotel_id, room_id=room_id, total_units=total_units)

    return _seed


@pytest.fixture
def room(seed_room: Callable[..., SeededRoom]) -> SeededRoom:
    """A 5-unit room at 100.00/night, bookable throughout April 2026."""
    return seed_room()


@pytest.fixture
def make_request(room: SeededRoom) -> Callable[..., ReservationRequest]:
    """Factory for reservation requests against the default room."""

    def _make(**overrides: Any) -> ReservationRequest:
        fields: dict[str, Any] = {
            "user_id": GUEST_ID,
            "room_id": room.room_id,
            "check_in": date(2026, 4, 10),
            "check_out": date(2026, 4, 12),
            "payment_token": "tok_test_visa",
        }
        fields.update(overrides)
        return ReservationRequest(**fields)

    return _make


@pytest.fixture
def units_on(db_engine: Engine) -> Callable[[int, date], int]:
    """Read available_units of one calendar night."""

    def _units(room_id: int, night: date) -> int:
        with db_engine.connect() as conn:
            return conn.execute(
                select(AvailabilityDay.available_units)
                .where(AvailabilityDay.room_id == room_id)
                .where(AvailabilityDay.date == night)
            ).scalar_one()

    return _units
