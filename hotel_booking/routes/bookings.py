from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.engine import Engine

from hotel_booking.config import DEFAULT_PAYMENT_PROVIDER
from hotel_booking.db.readers.bookings import (
    get_booking_by_id,
    get_booking_by_reference,
    list_bookings_for_hotel,
    list_bookings_for_manager,
    list_bookings_for_user,
    list_recent_bookings,
)
from hotel_booking.db.readers.rooms import get_hotel
from hotel_booking.dependencies import Caller, get_caller, get_db_engine
from hotel_booking.errors import BookingError, BookingNotFound
from hotel_booking.routes._booking_helpers import (
    can_set_status,
    require_admin_or_403,
    require_booking_access_or_403,
    require_settlement_access_or_403,
    to_http_exception,
)
from hotel_booking.schemas.bookings import (
    BookingCreatedResponse,
    BookingCreatePayload,
    BookingStatusPayload,
    PaymentSettlementPayload,
)
from hotel_booking.services.booking_status import update_status
from hotel_booking.services.payments import settle_payment
from hotel_booking.services.reservations import ReservationRequest, create_reservation

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/bookings",
    status_code=status.HTTP_201_CREATED,
    response_model=BookingCreatedResponse,
)
def create_booking(
    payload: BookingCreatePayload,
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> BookingCreatedResponse:
    """
    Reserve a room for a stay window.

    The booking id and reference are returned only after the reservation
    transaction commits.

    Args:
        payload: Room, dates, guests and the opaque payment token
        caller: Identity from the X-User-Id header
        engine: Database engine

    Returns:
        BookingCreatedResponse: booking id, reference, status and price
    """
    try:
        result = create_reservation(
            engine,
            ReservationRequest(
                user_id=caller.user_id,
                room_id=payload.room_id,
                check_in=payload.check_in,
                check_out=payload.check_out,
                payment_token=payload.payment_token,
                adults=payload.adults,
                children=payload.children,
                special_requests=payload.special_requests,
                payment_provider=payload.payment_provider or DEFAULT_PAYMENT_PROVIDER,
            ),
        )
        return BookingCreatedResponse(
            booking_id=result.booking_id,
            reference=result.reference,
            status=result.status,
            payment_status=result.payment_status,
            number_of_nights=result.number_of_nights,
            total_price=result.total_price,
        )

    except HTTPException:
        raise
    except BookingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.exception("booking_creation_failed", room_id=payload.room_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/my-bookings")
def my_bookings(
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """Bookings made by the calling user, newest stay first."""
    try:
        with engine.connect() as conn:
            return list_bookings_for_user(conn, caller.user_id)
    except Exception as e:
        logger.exception("booking_list_failed", user_id=caller.user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/manager/all")
def manager_bookings(
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """Bookings across all hotels managed by the caller."""
    try:
        with engine.connect() as conn:
            return list_bookings_for_manager(conn, caller.user_id)
    except Exception as e:
        logger.exception("manager_booking_list_failed", manager_id=caller.user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/admin/recent")
def recent_bookings(
    limit: int = Query(5, ge=1, le=100, description="Number of bookings to return"),
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """Latest bookings across all hotels (admin only)."""
    require_admin_or_403(caller)
    try:
        with engine.connect() as conn:
            return list_recent_bookings(conn, limit=limit)
    except Exception as e:
        logger.exception("recent_booking_list_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/hotel/{hotel_id}")
def hotel_bookings(
    hotel_id: int,
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> list[dict[str, Any]]:
    """
    Bookings of one hotel, for its manager or an admin.

    Returns:
        list: Detailed bookings ordered by check-in

    Raises:
        HTTPException: 404 for an unknown hotel, 403 if the caller does not manage it
    """
    try:
        with engine.connect() as conn:
            hotel = get_hotel(conn, hotel_id)
            if hotel is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Hotel {hotel_id} not found",
                )
            if not caller.is_admin and hotel["manager_id"] != caller.user_id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not allowed to view this hotel's bookings",
                )
            return list_bookings_for_hotel(conn, hotel_id)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("hotel_booking_list_failed", hotel_id=hotel_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/reference/{reference}")
def booking_by_reference(
    reference: str,
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    try:
        with engine.connect() as conn:
            booking = get_booking_by_reference(conn, reference)
        if booking is None:
            raise to_http_exception(BookingNotFound(reference))
        require_booking_access_or_403(caller, booking)
        return booking

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("booking_lookup_failed", reference=reference, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/bookings/{booking_id}")
def booking_detail(
    booking_id: int,
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    One booking with hotel and room details and its payment transactions.

    Visible to the guest, the hotel's manager and admins.
    """
    try:
        with engine.connect() as conn:
            booking = get_booking_by_id(conn, booking_id)
        if booking is None:
            raise to_http_exception(BookingNotFound(booking_id))
        require_booking_access_or_403(caller, booking)
        return booking

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("booking_lookup_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/bookings/{booking_id}/status")
def change_booking_status(
    booking_id: int,
    payload: BookingStatusPayload,
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Move a booking through its lifecycle.

    Cancelling or refunding an active booking gives its nights back to the
    calendar. Guests may cancel their own bookings; other transitions are for
    the hotel's manager or an admin.

    Returns:
        dict: booking_id, previous_status, status, payment_status, nights_released
    """
    new_status = payload.status.value
    try:
        with engine.connect() as conn:
            booking = get_booking_by_id(conn, booking_id)
        if booking is None:
            raise to_http_exception(BookingNotFound(booking_id))
        require_booking_access_or_403(caller, booking)
        if not can_set_status(caller, booking, new_status):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not allowed to set status '{new_status}'",
            )

        change = update_status(
            engine,
            booking_id,
            new_status,
            refund_transaction_id=payload.refund_transaction_id,
        )
        return {
            "booking_id": change.booking_id,
            "previous_status": change.previous_status,
            "status": change.status,
            "payment_status": change.payment_status,
            "nights_released": change.nights_released,
        }

    except HTTPException:
        raise
    except BookingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.exception("booking_status_update_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/bookings/{booking_id}/payment")
def settle_booking_payment(
    booking_id: int,
    payload: PaymentSettlementPayload,
    caller: Caller = Depends(get_caller),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Apply the payment provider's outcome to a pending (deferred-mode) booking.

    A failed payment cancels the booking and releases its nights. Only the
    payment service (X-User-Role: payment_service) or an admin may call this.
    """
    require_settlement_access_or_403(caller)
    try:
        change = settle_payment(
            engine,
            booking_id,
            succeeded=payload.succeeded,
            provider_transaction_id=payload.provider_transaction_id,
        )
        return {
            "booking_id": change.booking_id,
            "status": change.status,
            "payment_status": change.payment_status,
            "nights_released": change.nights_released,
        }

    except HTTPException:
        raise
    except BookingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.exception("payment_settlement_failed", booking_id=booking_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
