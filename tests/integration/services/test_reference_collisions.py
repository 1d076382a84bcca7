"""
Booking reference uniqueness under forced collisions.

Six-character base36 references collide by chance at scale, so the
coordinator must survive collisions rather than assume they never happen.
These tests force them with a generator that repeats itself.
"""

from __future__ import annotations

import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from hotel_booking.errors import InternalError
from hotel_booking.models.bookings import Booking
from hotel_booking.models.payments import PaymentTransaction
from hotel_booking.services.reservations import create_reservation


def _collisions() -> float:
    return REGISTRY.get_sample_value("hotel_booking_reference_collisions_total") or 0.0


def _repeating_factory() -> Callable[[], str]:
    """Hand out every reference twice in a row: BKG-000000, BKG-000000, BKG-000001, ..."""
    counter = itertools.count()
    lock = threading.Lock()

    def _next() -> str:
        with lock:
            n = next(counter)
        return f"BKG-{n // 2:06d}"

    return _next


@pytest.mark.integration
def test_colliding_reference_is_regenerated(
    db_engine: Engine, room, make_request: Callable
) -> None:
    factory = _repeating_factory()
    before = _collisions()

    first = create_reservation(db_engine, make_request(), reference_factory=factory)
    second = create_reservation(db_engine, make_request(user_id=8), reference_factory=factory)

    assert first.reference == "BKG-000000"
    assert second.reference == "BKG-000001"
    assert _collisions() == before + 1


@pytest.mark.integration
def test_references_stay_unique_under_concurrent_collisions(
    db_engine: Engine, seed_room: Callable, make_request: Callable, units_on: Callable
) -> None:
    seeded = seed_room(total_units=30)
    factory = _repeating_factory()
    requests = [make_request(user_id=100 + i, room_id=seeded.room_id) for i in range(30)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(
            pool.map(
                lambda r: create_reservation(
                    db_engine, r, reference_factory=factory, max_reference_attempts=10
                ),
                requests,
            )
        )

    references = [r.reference for r in results]
    assert len(set(references)) == 30
    assert units_on(seeded.room_id, date(2026, 4, 10)) == 0
    with db_engine.connect() as conn:
        stored = conn.execute(select(Booking.booking_reference)).scalars().all()
    assert sorted(stored) == sorted(references)


@pytest.mark.integration
def test_exhausted_reference_attempts_roll_back_the_reservation(
    db_engine: Engine, room, make_request: Callable, units_on: Callable
) -> None:
    create_reservation(db_engine, make_request(), reference_factory=lambda: "BKG-SAME00")

    with pytest.raises(InternalError, match="unique booking reference"):
        create_reservation(
            db_engine,
            make_request(user_id=8),
            reference_factory=lambda: "BKG-SAME00",
            max_reference_attempts=3,
        )

    assert units_on(room.room_id, date(2026, 4, 10)) == 4
    with db_engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(Booking.__table__)).scalar_one() == 1
        assert (
            conn.execute(select(func.count()).select_from(PaymentTransaction.__table__)).scalar_one()
            == 1
        )
