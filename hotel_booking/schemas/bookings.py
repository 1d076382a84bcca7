from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from hotel_booking.models.bookings import BookingStatus


class BookingCreatePayload(BaseModel):
    """
    Schema for requesting a reservation.

    user_id is not part of the body; it comes from the X-User-Id header.
    """

    room_id: int = Field(..., description="Room to reserve")
    check_in: date = Field(..., description="First night of the stay")
    check_out: date = Field(..., description="Departure day (not a consumed night)")
    adults: int = Field(1, description="Number of adults")
    children: int = Field(0, description="Number of children")
    special_requests: Optional[str] = Field(None, description="Free-text guest requests")
    payment_token: str = Field(..., description="Opaque token from the payment vault")
    payment_provider: Optional[str] = Field(None, description="Payment provider name")


class BookingCreatedResponse(BaseModel):
    booking_id: int
    reference: str
    status: str
    payment_status: str
    number_of_nights: int
    total_price: Decimal


class BookingStatusPayload(BaseModel):
    status: BookingStatus = Field(..., description="Target booking status")
    refund_transaction_id: Optional[str] = Field(
        None, description="Provider refund id, recorded when refunding"
    )


class PaymentSettlementPayload(BaseModel):
    """Outcome reported by the payment provider for a deferred payment."""

    succeeded: bool = Field(..., description="Whether the provider captured the payment")
    provider_transaction_id: Optional[str] = Field(
        None, description="Capture id returned by the provider"
    )
