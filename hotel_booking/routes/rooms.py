from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Engine

from hotel_booking.db.readers.calendar import check_window
from hotel_booking.db.readers.rooms import get_room
from hotel_booking.dependencies import get_db_engine
from hotel_booking.errors import BookingError, ValidationError
from hotel_booking.routes._booking_helpers import to_http_exception
from hotel_booking.services.pricing import quote_stay

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/rooms/{room_id}/availability")
def room_availability(
    room_id: int,
    check_in: date = Query(..., description="First night of the stay"),
    check_out: date = Query(..., description="Departure day"),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, Any]:
    """
    Optimistic availability pre-check for a stay window.

    Reads without locks, so the answer can be stale by the time a booking is
    attempted; the reservation itself re-checks under lock.

    Returns:
        dict: Per-night availability, the unavailable nights and a price quote
            when every night can be sold
    """
    try:
        if check_out <= check_in:
            raise ValidationError("check_out must be after check_in")

        with engine.connect() as conn:
            room = get_room(conn, room_id)
            window = check_window(conn, room_id, check_in, check_out)

        response: dict[str, Any] = {
            "room_id": room_id,
            "check_in": check_in,
            "check_out": check_out,
            "nights": window.nights,
            "available": window.is_available,
            "days": [
                {
                    "date": day.date,
                    "available_units": day.available_units,
                    "is_blocked": day.is_blocked,
                }
                for day in window.days
            ],
            "unavailable_days": sorted({*window.exhausted, *window.blocked, *window.missing}),
        }
        if window.is_available:
            quote = quote_stay(room, window)
            response["total_price"] = quote.total_price
        return response

    except BookingError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.exception("availability_check_failed", room_id=room_id, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
