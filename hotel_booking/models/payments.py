"""SQLAlchemy model for payment transactions attached to bookings."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from hotel_booking.models.base import Base


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TransactionType(str, enum.Enum):
    PAYMENT = "payment"
    REFUND = "refund"


class PaymentTransaction(Base):
    """
    ORM model for a payment or refund recorded against a booking.

    transaction_id is the opaque token handed over by the payment vault; it is
    stored as-is and never validated here.
    """

    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    user_id = Column(Integer, nullable=False)
    transaction_id = Column(String, nullable=False)
    payment_provider = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False)
    transaction_type = Column(String(20), nullable=False, default=TransactionType.PAYMENT.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
