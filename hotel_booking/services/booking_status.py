"""
Booking lifecycle transitions.

A transition locks the booking row first and then, when inventory is given
back, the calendar rows of its stay window in date order. Nothing here ever
locks calendar rows before a booking row, so status changes cannot deadlock
with each other; reservations lock calendar rows only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog
from sqlalchemy.engine import Engine

from hotel_booking.db.engine import apply_lock_timeout, translate_lock_errors
from hotel_booking.db.writers.bookings import (
    complete_checked_out_bookings,
    lock_booking,
    update_booking_status,
)
from hotel_booking.db.writers.calendar import increment_window
from hotel_booking.db.writers.payments import (
    get_payment_for_booking,
    insert_payment,
    update_payment_status,
)
from hotel_booking.errors import BookingNotFound, InvalidStatusTransition, ValidationError
from hotel_booking.metrics import inventory_units_released, status_transitions
from hotel_booking.models.bookings import ACTIVE_STATUSES, BookingStatus, PaymentStatus
from hotel_booking.models.payments import TransactionStatus, TransactionType

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.PENDING.value: frozenset(
        {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}
    ),
    BookingStatus.CONFIRMED.value: frozenset(
        {
            BookingStatus.COMPLETED.value,
            BookingStatus.CANCELLED.value,
            BookingStatus.REFUNDED.value,
        }
    ),
    BookingStatus.COMPLETED.value: frozenset({BookingStatus.REFUNDED.value}),
    BookingStatus.CANCELLED.value: frozenset({BookingStatus.REFUNDED.value}),
    BookingStatus.REFUNDED.value: frozenset(),
}

# Moving an active booking into one of these gives its nights back
RELEASING_STATUSES = frozenset({BookingStatus.CANCELLED.value, BookingStatus.REFUNDED.value})

REFUNDABLE_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.PAID.value, PaymentStatus.PARTIALLY_PAID.value}
)


@dataclass(frozen=True)
class StatusChange:
    booking_id: int
    previous_status: str
    status: str
    payment_status: str
    nights_released: int = 0

    @property
    def changed(self) -> bool:
        return self.previous_status != self.status


def update_status(
    engine: Engine,
    booking_id: int,
    new_status: str,
    refund_transaction_id: Optional[str] = None,
) -> StatusChange:
    """
    Move a booking to a new status, releasing inventory when it stops being active.

    Cancelling or refunding a pending/confirmed booking increments
    available_units on every night of its stay in the same transaction as the
    status write. Refunding a paid booking also records a refund transaction
    for the booking total and marks the payment refunded. Requesting the
    current status is a no-op.

    A pending booking whose payment is still pending cannot be confirmed
    here; that happens through settle_payment. Cancelling it marks the
    pending payment failed.

    Args:
        engine: SQLAlchemy engine
        booking_id: Booking to update
        new_status: Target status
        refund_transaction_id: Provider id of the refund, when one exists

    Returns:
        StatusChange: What was applied

    Raises:
        ValidationError: Unknown status value
        BookingNotFound: No such booking
        InvalidStatusTransition: Transition not allowed from the current status
        LockTimeout: Lock wait exceeded the bound
    """
    if new_status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Unknown booking status '{new_status}'")

    with translate_lock_errors("update the booking status"):
        with engine.begin() as conn:
            apply_lock_timeout(conn)

            booking = lock_booking(conn, booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)

            current = booking["status"]
            if new_status == current:
                logger.info("booking_status_unchanged", booking_id=booking_id, status=current)
                return StatusChange(booking_id, current, current, booking["payment_status"])

            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStatusTransition(booking_id, current, new_status)

            if current == BookingStatus.PENDING.value:
                payment = get_payment_for_booking(conn, booking_id, lock=True)
                if payment is not None and payment["status"] == TransactionStatus.PENDING.value:
                    # A deferred payment is confirmed only through settle_payment
                    if new_status == BookingStatus.CONFIRMED.value:
                        raise InvalidStatusTransition(
                            booking_id, current, new_status, reason="payment is not settled"
                        )
                    update_payment_status(conn, payment["id"], TransactionStatus.FAILED.value)

            released = 0
            if current in ACTIVE_STATUSES and new_status in RELEASING_STATUSES:
                released = increment_window(
                    conn, booking["room_id"], booking["check_in"], booking["check_out"]
                )

            payment_status = booking["payment_status"]
            if (
                new_status == BookingStatus.REFUNDED.value
                and payment_status in REFUNDABLE_PAYMENT_STATUSES
            ):
                payment = get_payment_for_booking(conn, booking_id)
                insert_payment(
                    conn,
                    booking_id=booking_id,
                    user_id=booking["user_id"],
                    transaction_id=refund_transaction_id
                    or f"refund-{payment['transaction_id'] if payment else booking_id}",
                    payment_provider=payment["payment_provider"] if payment else "manual",
                    amount=booking["total_price"],
                    status=TransactionStatus.SUCCEEDED.value,
                    transaction_type=TransactionType.REFUND.value,
                )
                payment_status = PaymentStatus.REFUNDED.value

            update_booking_status(
                conn, booking_id, status=new_status, payment_status=payment_status
            )

    if released:
        inventory_units_released.inc(released)
    status_transitions.labels(from_status=current, to_status=new_status).inc()
    logger.info(
        "booking_status_changed",
        booking_id=booking_id,
        from_status=current,
        to_status=new_status,
        nights_released=released,
    )
    return StatusChange(booking_id, current, new_status, payment_status, released)


def complete_finished_stays(engine: Engine, today: date) -> list[int]:
    """
    Complete every confirmed booking whose checkout day is on or before ``today``.

    Returns:
        list[int]: Ids of the bookings moved to completed
    """
    with translate_lock_errors("complete finished stays"):
        with engine.begin() as conn:
            apply_lock_timeout(conn)
            completed = complete_checked_out_bookings(conn, today)

    if completed:
        status_transitions.labels(
            from_status=BookingStatus.CONFIRMED.value, to_status=BookingStatus.COMPLETED.value
        ).inc(len(completed))
    return completed
