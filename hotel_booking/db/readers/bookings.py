"""
Read-side views over bookings.

These are pure reads joined with the property directory, consumed by user
history pages, manager dashboards and the booking detail view. They never
lock and never write.
"""

from datetime import date
from typing import Any, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Connection

from hotel_booking.models.bookings import ACTIVE_STATUSES, Booking
from hotel_booking.models.directory import Hotel, Room
from hotel_booking.models.payments import PaymentTransaction


def _detailed_booking_query() -> Select:
    return (
        select(
            Booking.__table__,
            Hotel.name.label("hotel_name"),
            Hotel.city.label("hotel_city"),
            Hotel.country.label("hotel_country"),
            Hotel.manager_id.label("manager_id"),
            Room.title.label("room_title"),
            Room.room_type.label("room_type"),
            Room.main_image.label("room_image"),
        )
        .join(Hotel, Hotel.id == Booking.hotel_id)
        .join(Room, Room.id == Booking.room_id)
    )


def _payments_for(conn: Connection, booking_id: int) -> list[dict[str, Any]]:
    rows = conn.execute(
        select(
            PaymentTransaction.id,
            PaymentTransaction.transaction_id,
            PaymentTransaction.payment_provider,
            PaymentTransaction.amount,
            PaymentTransaction.status,
            PaymentTransaction.transaction_type,
            PaymentTransaction.created_at,
        )
        .where(PaymentTransaction.booking_id == booking_id)
        .order_by(PaymentTransaction.id)
    ).mappings()
    return [dict(row) for row in rows]


def get_booking_by_id(conn: Connection, booking_id: int) -> Optional[dict[str, Any]]:
    """
    Fetch one booking with hotel/room display fields and its payments.

    manager_id is included so callers can decide whether the requester owns
    (user_id) or manages (manager_id) the booking.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        booking_id (int): Booking id.

    Returns:
        Optional[dict]: The detailed booking, or None if not found
    """
    row = conn.execute(
        _detailed_booking_query().where(Booking.id == booking_id)
    ).mappings().fetchone()
    if row is None:
        return None

    booking = dict(row)
    booking["payments"] = _payments_for(conn, booking_id)
    return booking


def get_booking_by_reference(conn: Connection, reference: str) -> Optional[dict[str, Any]]:
    """Same as get_booking_by_id, looked up by the human-facing reference."""
    booking_id = conn.execute(
        select(Booking.id).where(Booking.booking_reference == reference)
    ).scalar_one_or_none()
    if booking_id is None:
        return None
    return get_booking_by_id(conn, booking_id)


def list_bookings_for_user(conn: Connection, user_id: int) -> list[dict[str, Any]]:
    """Bookings made by a user, newest stay first."""
    rows = conn.execute(
        _detailed_booking_query()
        .where(Booking.user_id == user_id)
        .order_by(Booking.check_in.desc(), Booking.id.desc())
    ).mappings()
    return [dict(row) for row in rows]


def list_bookings_for_manager(conn: Connection, manager_id: int) -> list[dict[str, Any]]:
    """Bookings across every hotel managed by the given user."""
    rows = conn.execute(
        _detailed_booking_query()
        .where(Hotel.manager_id == manager_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    ).mappings()
    return [dict(row) for row in rows]


def list_bookings_for_hotel(conn: Connection, hotel_id: int) -> list[dict[str, Any]]:
    rows = conn.execute(
        _detailed_booking_query()
        .where(Booking.hotel_id == hotel_id)
        .order_by(Booking.check_in, Booking.id)
    ).mappings()
    return [dict(row) for row in rows]


def list_recent_bookings(conn: Connection, limit: int = 5) -> list[dict[str, Any]]:
    """Latest bookings for the admin dashboard feed."""
    rows = conn.execute(
        _detailed_booking_query().order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit)
    ).mappings()
    return [dict(row) for row in rows]


def count_active_bookings_on(conn: Connection, room_id: int, night: date) -> int:
    """
    Number of active bookings whose stay covers ``night``.

    Used to reconcile the calendar: active bookings on a night plus its
    available_units equals the room's total units.
    """
    return int(
        conn.execute(
            select(func.count())
            .select_from(Booking)
            .where(Booking.room_id == room_id)
            .where(Booking.status.in_(sorted(ACTIVE_STATUSES)))
            .where(Booking.check_in <= night)
            .where(Booking.check_out > night)
        ).scalar_one()
    )
