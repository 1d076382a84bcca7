# models/availability.py

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class AvailabilityDay(Base):
    """
    One row per room per calendar day: the ground truth for how many units of
    the room can still be sold that night.

    A missing row means the night is not bookable. Rows are materialized by the
    provisioning step and only mutated inside reservation/status transactions.
    """

    __tablename__ = "room_availability"
    __table_args__ = (
        UniqueConstraint("room_id", "date", name="uq_room_availability_room_date"),
        CheckConstraint("available_units >= 0", name="ck_room_availability_non_negative"),
    )

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    available_units = Column(Integer, nullable=False)
    override_price = Column(Numeric(10, 2), nullable=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
