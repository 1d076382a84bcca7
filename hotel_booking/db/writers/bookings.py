from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection

from hotel_booking.models.bookings import Booking, BookingStatus
from hotel_booking.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_booking(
    conn: Connection,
    *,
    user_id: int,
    hotel_id: int,
    room_id: int,
    booking_reference: str,
    check_in: date,
    check_out: date,
    number_of_nights: int,
    adults: int,
    children: int,
    special_requests: Optional[str],
    room_price: Decimal,
    tax_amount: Decimal,
    service_charge: Decimal,
    total_price: Decimal,
    status: str,
    payment_status: str,
) -> int:
    """
    Insert a booking row and return its id.

    The unique constraint on booking_reference is what makes a reference
    collision surface as IntegrityError; callers run this inside a SAVEPOINT.

    Args:
        conn (Connection): Connection inside the reservation transaction.

    Returns:
        int: New booking id
    """
    now = utc_now()
    result = conn.execute(
        insert(Booking)
        .values(
            user_id=user_id,
            hotel_id=hotel_id,
            room_id=room_id,
            booking_reference=booking_reference,
            check_in=check_in,
            check_out=check_out,
            number_of_nights=number_of_nights,
            adults=adults,
            children=children,
            special_requests=special_requests,
            room_price=room_price,
            tax_amount=tax_amount,
            service_charge=service_charge,
            total_price=total_price,
            status=status,
            payment_status=payment_status,
            created_at=now,
            updated_at=now,
        )
        .returning(Booking.id)
    )
    return int(result.scalar_one())


def lock_booking(conn: Connection, booking_id: int) -> Optional[dict[str, Any]]:
    """
    Fetch a booking row under an exclusive row lock.

    Args:
        conn (Connection): Connection inside an open transaction.
        booking_id (int): Booking id.

    Returns:
        Optional[dict]: Booking columns, or None if no such booking
    """
    row = conn.execute(
        select(Booking.__table__).where(Booking.id == booking_id).with_for_update()
    ).mappings().fetchone()
    return dict(row) if row else None


def update_booking_status(
    conn: Connection,
    booking_id: int,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
) -> None:
    """
    Update lifecycle fields of a booking.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (int): Booking id.
        status (str): New booking status, if changing.
        payment_status (str): New payment status, if changing.
    """
    values: dict[str, Any] = {"updated_at": utc_now()}
    if status is not None:
        values["status"] = status
    if payment_status is not None:
        values["payment_status"] = payment_status

    conn.execute(update(Booking).where(Booking.id == booking_id).values(**values))


def complete_checked_out_bookings(conn: Connection, today: date) -> list[int]:
    """
    Mark confirmed bookings whose checkout day has arrived as completed.

    The consumed nights stay consumed, so the calendar is not touched.

    Returns:
        list[int]: Ids of the bookings completed
    """
    result = conn.execute(
        update(Booking)
        .where(Booking.status == BookingStatus.CONFIRMED.value)
        .where(Booking.check_out <= today)
        .values(status=BookingStatus.COMPLETED.value, updated_at=utc_now())
        .returning(Booking.id)
    )
    completed = [int(booking_id) for booking_id in result.scalars()]
    logger.info("bookings_completed", count=len(completed), today=str(today))
    return completed
