"""
Read-only mirrors of the property directory tables.

The catalog service owns these rows. The reservation core only reads them to
resolve a room's hotel, unit count and base price.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class Hotel(Base):
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    manager_id = Column(Integer, nullable=True, index=True)
    city = Column(String, nullable=False)
    country = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Room(Base):
    """
    ORM model for a room type offered by a hotel.

    total_quantity is the number of physical units of this type; it bounds
    every AvailabilityDay.available_units for the room.
    """

    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True)
    hotel_id = Column(
        Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    room_type = Column(String, nullable=False)
    base_price_per_night = Column(Numeric(10, 2), nullable=False)
    max_adults = Column(Integer, nullable=False, default=2)
    max_children = Column(Integer, nullable=False, default=1)
    total_quantity = Column(Integer, nullable=False, default=1)
    main_image = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
