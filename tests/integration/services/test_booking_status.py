"""
Integration tests for booking lifecycle transitions.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable

import pytest
from sqlalchemy.engine import Engine

from hotel_booking.db.readers.bookings import get_booking_by_id
from hotel_booking.errors import BookingNotFound, InvalidStatusTransition, ValidationError
from hotel_booking.services.booking_status import complete_finished_stays, update_status
from hotel_booking.services.payments import settle_payment
from hotel_booking.services.reservations import create_reservation


@pytest.fixture
def booking_id(db_engine: Engine, make_request: Callable) -> int:
    """A confirmed, paid booking for 2026-04-10..12."""
    return create_reservation(db_engine, make_request(), payment_mode="inline").booking_id


@pytest.mark.integration
def test_cancel_releases_every_night(
    db_engine: Engine, room, booking_id: int, units_on: Callable
) -> None:
    change = update_status(db_engine, booking_id, "cancelled")

    assert change.previous_status == "confirmed"
    assert change.status == "cancelled"
    assert change.nights_released == 2
    assert units_on(room.room_id, date(2026, 4, 10)) == 5
    assert units_on(room.room_id, date(2026, 4, 11)) == 5


@pytest.mark.integration
def test_refund_after_cancel_records_refund_without_double_release(
    db_engine: Engine, room, booking_id: int, units_on: Callable
) -> None:
    update_status(db_engine, booking_id, "cancelled")
    change = update_status(db_engine, booking_id, "refunded", refund_transaction_id="re_123")

    assert change.nights_released == 0
    assert change.payment_status == "refunded"
    assert units_on(room.room_id, date(2026, 4, 10)) == 5

    with db_engine.connect() as conn:
        booking = get_booking_by_id(conn, booking_id)
    refunds = [p for p in booking["payments"] if p["transaction_type"] == "refund"]
    assert len(refunds) == 1
    assert refunds[0]["transaction_id"] == "re_123"
    assert refunds[0]["amount"] == Decimal("200.00")
    assert booking["payment_status"] == "refunded"


@pytest.mark.integration
def test_refund_of_confirmed_booking_releases_inventory(
    db_engine: Engine, room, booking_id: int, units_on: Callable
) -> None:
    change = update_status(db_engine, booking_id, "refunded")

    assert change.nights_released == 2
    assert units_on(room.room_id, date(2026, 4, 11)) == 5

    with db_engine.connect() as conn:
        booking = get_booking_by_id(conn, booking_id)
    refund = booking["payments"][-1]
    assert refund["transaction_type"] == "refund"
    assert refund["transaction_id"] == "refund-tok_test_visa"


@pytest.mark.integration
def test_refund_of_completed_stay_keeps_nights_consumed(
    db_engine: Engine, room, booking_id: int, units_on: Callable
) -> None:
    update_status(db_engine, booking_id, "completed")

    change = update_status(db_engine, booking_id, "refunded", refund_transaction_id="re_456")

    assert change.previous_status == "completed"
    assert change.nights_released == 0
    assert change.payment_status == "refunded"
    assert units_on(room.room_id, date(2026, 4, 10)) == 4
    assert units_on(room.room_id, date(2026, 4, 11)) == 4

    with db_engine.connect() as conn:
        booking = get_booking_by_id(conn, booking_id)
    refunds = [p for p in booking["payments"] if p["transaction_type"] == "refund"]
    assert [r["transaction_id"] for r in refunds] == ["re_456"]
    assert refunds[0]["amount"] == Decimal("200.00")


@pytest.mark.integration
def test_completed_stay_keeps_its_nights(
    db_engine: Engine, room, booking_id: int, units_on: Callable
) -> None:
    change = update_status(db_engine, booking_id, "completed")

    assert change.nights_released == 0
    assert units_on(room.room_id, date(2026, 4, 10)) == 4


@pytest.mark.integration
def test_same_status_is_a_no_op(db_engine: Engine, booking_id: int) -> None:
    change = update_status(db_engine, booking_id, "confirmed")

    assert not change.changed
    assert change.nights_released == 0


@pytest.mark.integration
@pytest.mark.parametrize(
    "path",
    [
        ["refunded", "confirmed"],
        ["cancelled", "confirmed"],
        ["completed", "cancelled"],
    ],
)
def test_disallowed_transitions_are_rejected(
    db_engine: Engine, room, booking_id: int, units_on: Callable, path: list[str]
) -> None:
    *allowed, rejected = path
    for status in allowed:
        update_status(db_engine, booking_id, status)
    units_before = units_on(room.room_id, date(2026, 4, 10))

    with pytest.raises(InvalidStatusTransition):
        update_status(db_engine, booking_id, rejected)

    assert units_on(room.room_id, date(2026, 4, 10)) == units_before


@pytest.mark.integration
def test_pending_booking_cannot_be_approved_before_payment_settles(
    db_engine: Engine, room, make_request: Callable, units_on: Callable
) -> None:
    pending = create_reservation(db_engine, make_request(), payment_mode="deferred")

    with pytest.raises(InvalidStatusTransition, match="payment is not settled"):
        update_status(db_engine, pending.booking_id, "confirmed")

    with db_engine.connect() as conn:
        booking = get_booking_by_id(conn, pending.booking_id)
    assert booking["status"] == "pending"
    assert booking["payments"][0]["status"] == "pending"
    assert units_on(room.room_id, date(2026, 4, 10)) == 4

    # The provider outcome can still be applied, including the compensation
    change = settle_payment(db_engine, pending.booking_id, succeeded=False)

    assert change.status == "cancelled"
    assert change.nights_released == 2
    assert units_on(room.room_id, date(2026, 4, 10)) == 5


@pytest.mark.integration
def test_cancelling_pending_booking_fails_its_payment(
    db_engine: Engine, room, make_request: Callable, units_on: Callable
) -> None:
    pending = create_reservation(db_engine, make_request(), payment_mode="deferred")

    change = update_status(db_engine, pending.booking_id, "cancelled")

    assert change.status == "cancelled"
    assert change.nights_released == 2
    assert units_on(room.room_id, date(2026, 4, 11)) == 5

    with db_engine.connect() as conn:
        booking = get_booking_by_id(conn, pending.booking_id)
    assert booking["payments"][0]["status"] == "failed"
    assert booking["payment_status"] == "pending"

    with pytest.raises(InvalidStatusTransition):
        settle_payment(db_engine, pending.booking_id, succeeded=True)


@pytest.mark.integration
def test_unknown_booking_and_status(db_engine: Engine, booking_id: int) -> None:
    with pytest.raises(BookingNotFound):
        update_status(db_engine, 9999, "cancelled")
    with pytest.raises(ValidationError):
        update_status(db_engine, booking_id, "checked_in")


@pytest.mark.integration
def test_complete_finished_stays_only_touches_ended_confirmed_bookings(
    db_engine: Engine, room, make_request: Callable
) -> None:
    ended = create_reservation(db_engine, make_request()).booking_id
    ongoing = create_reservation(
        db_engine, make_request(check_in=date(2026, 4, 11), check_out=date(2026, 4, 14))
    ).booking_id
    cancelled = create_reservation(db_engine, make_request()).booking_id
    update_status(db_engine, cancelled, "cancelled")

    completed = complete_finished_stays(db_engine, today=date(2026, 4, 12))

    assert completed == [ended]
    with db_engine.connect() as conn:
        assert get_booking_by_id(conn, ended)["status"] == "completed"
        assert get_booking_by_id(conn, ongoing)["status"] == "confirmed"
        assert get_booking_by_id(conn, cancelled)["status"] == "cancelled"
