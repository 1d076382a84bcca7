from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.engine import Connection

from hotel_booking.errors import RoomNotFound
from hotel_booking.models.directory import Hotel, Room


@dataclass(frozen=True)
class RoomInfo:
    """Directory facts the reservation core needs about a room."""

    room_id: int
    hotel_id: int
    title: str
    total_units: int
    base_price_per_night: Decimal
    max_adults: int
    max_children: int


def get_room(conn: Connection, room_id: int) -> RoomInfo:
    """
    Resolve a room from the property directory.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        room_id (int): Room identifier.

    Returns:
        RoomInfo: The room and its owning hotel.

    Raises:
        RoomNotFound: If the room does not exist, or it or its hotel is inactive.
    """
    row = conn.execute(
        select(
            Room.id,
            Room.hotel_id,
            Room.title,
            Room.total_quantity,
            Room.base_price_per_night,
            Room.max_adults,
            Room.max_children,
        )
        .join(Hotel, Hotel.id == Room.hotel_id)
        .where(Room.id == room_id)
        .where(Room.is_active == True)  # noqa: E712
        .where(Hotel.is_active == True)  # noqa: E712
    ).fetchone()

    if row is None:
        raise RoomNotFound(room_id)

    return RoomInfo(
        room_id=row.id,
        hotel_id=row.hotel_id,
        title=row.title,
        total_units=row.total_quantity,
        base_price_per_night=Decimal(row.base_price_per_night),
        max_adults=row.max_adults,
        max_children=row.max_children,
    )


def get_hotel(conn: Connection, hotel_id: int) -> Optional[dict[str, Any]]:
    """Fetch a hotel's directory row (any activity state), or None."""
    row = conn.execute(
        select(Hotel.id, Hotel.name, Hotel.manager_id, Hotel.is_active).where(Hotel.id == hotel_id)
    ).mappings().fetchone()
    return dict(row) if row else None
