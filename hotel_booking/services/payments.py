"""
Settlement of deferred payments.

With PAYMENT_MODE=deferred a reservation commits as pending with a pending
payment transaction, keeping the provider call out of the calendar lock
window. The provider outcome is applied here in a second transaction: success
confirms the booking, failure runs the compensating step that cancels it and
gives its nights back.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.engine import Engine

from hotel_booking.db.engine import apply_lock_timeout, translate_lock_errors
from hotel_booking.db.writers.bookings import lock_booking, update_booking_status
from hotel_booking.db.writers.calendar import increment_window
from hotel_booking.db.writers.payments import get_payment_for_booking, update_payment_status
from hotel_booking.errors import BookingNotFound, InvalidStatusTransition
from hotel_booking.metrics import inventory_units_released, payment_settlements
from hotel_booking.models.bookings import BookingStatus, PaymentStatus
from hotel_booking.models.payments import TransactionStatus
from hotel_booking.services.booking_status import StatusChange

logger = structlog.get_logger(__name__)


def settle_payment(
    engine: Engine,
    booking_id: int,
    succeeded: bool,
    provider_transaction_id: Optional[str] = None,
) -> StatusChange:
    """
    Apply the payment provider's outcome to a pending booking.

    Args:
        engine: SQLAlchemy engine
        booking_id: Booking created in deferred mode
        succeeded: Whether the provider captured the payment
        provider_transaction_id: Capture id to store in place of the token

    Returns:
        StatusChange: confirmed/paid on success, cancelled with nights released on failure

    Raises:
        BookingNotFound: No such booking
        InvalidStatusTransition: Booking is not pending or its payment was already settled
        LockTimeout: Lock wait exceeded the bound
    """
    requested = BookingStatus.CONFIRMED.value if succeeded else BookingStatus.CANCELLED.value

    with translate_lock_errors("settle the payment"):
        with engine.begin() as conn:
            apply_lock_timeout(conn)

            booking = lock_booking(conn, booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)
            if booking["status"] != BookingStatus.PENDING.value:
                raise InvalidStatusTransition(booking_id, booking["status"], requested)

            payment = get_payment_for_booking(conn, booking_id, lock=True)
            if payment is None or payment["status"] != TransactionStatus.PENDING.value:
                raise InvalidStatusTransition(
                    booking_id, booking["payment_status"], "settled"
                )

            released = 0
            if succeeded:
                update_payment_status(
                    conn,
                    payment["id"],
                    TransactionStatus.SUCCEEDED.value,
                    transaction_id=provider_transaction_id,
                )
                payment_status = PaymentStatus.PAID.value
            else:
                update_payment_status(
                    conn,
                    payment["id"],
                    TransactionStatus.FAILED.value,
                    transaction_id=provider_transaction_id,
                )
                released = increment_window(
                    conn, booking["room_id"], booking["check_in"], booking["check_out"]
                )
                payment_status = booking["payment_status"]

            update_booking_status(
                conn, booking_id, status=requested, payment_status=payment_status
            )

    if succeeded:
        payment_settlements.labels(result="confirmed").inc()
        logger.info("payment_settled", booking_id=booking_id)
    else:
        payment_settlements.labels(result="compensated").inc()
        inventory_units_released.inc(released)
        logger.warning("payment_failed_booking_cancelled", booking_id=booking_id, nights_released=released)

    return StatusChange(
        booking_id, BookingStatus.PENDING.value, requested, payment_status, released
    )
