"""
Internal helper functions for booking route handlers.

Translates reservation core errors into HTTP responses and holds the
ownership checks shared by the booking endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status

from hotel_booking.dependencies import Caller
from hotel_booking.errors import BookingError, LockTimeout, OutOfInventory

RETRY_AFTER_SECONDS = "1"


def to_http_exception(error: BookingError) -> HTTPException:
    """
    Map a reservation core error onto an HTTPException.

    OutOfInventory carries the unavailable days so clients can offer other
    dates; LockTimeout carries Retry-After since the identical request may
    succeed.

    Args:
        error: Raised by a service call

    Returns:
        HTTPException: With the error's http_status
    """
    detail: Any = error.message
    headers: Optional[dict[str, str]] = None

    if isinstance(error, OutOfInventory):
        detail = {
            "message": error.message,
            "room_id": error.room_id,
            "unavailable_days": [d.isoformat() for d in error.unavailable_days],
            "retryable": error.retryable,
        }
    elif isinstance(error, LockTimeout):
        headers = {"Retry-After": RETRY_AFTER_SECONDS}

    return HTTPException(status_code=error.http_status, detail=detail, headers=headers)


def require_booking_access_or_403(caller: Caller, booking: dict[str, Any]) -> None:
    """
    Allow the guest who made the booking, the hotel's manager, or an admin.

    Raises:
        HTTPException: 403 otherwise
    """
    if caller.is_admin:
        return
    if caller.user_id in (booking["user_id"], booking["manager_id"]):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to access this booking",
    )


def require_admin_or_403(caller: Caller) -> None:
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")


def require_settlement_access_or_403(caller: Caller) -> None:
    """
    Allow only the payment service callback or an admin to report a payment outcome.

    Raises:
        HTTPException: 403 for guests and managers
    """
    if caller.is_admin or caller.is_payment_service:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Payment outcomes are reported by the payment service",
    )


def can_set_status(caller: Caller, booking: dict[str, Any], new_status: str) -> bool:
    """
    Decide whether the caller may request this status change.

    Managers and admins drive the whole lifecycle. Guests may only cancel
    their own bookings.
    """
    if caller.is_admin or caller.user_id == booking["manager_id"]:
        return True
    return caller.user_id == booking["user_id"] and new_status == "cancelled"
