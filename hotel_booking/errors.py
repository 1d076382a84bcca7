"""
Typed errors raised by the reservation core.

Every error that escapes a reservation or status transaction is raised only
after that transaction has been rolled back, so callers never observe a
partially applied booking. Route handlers map these onto HTTP responses via
``http_status``; ``retryable`` tells the caller whether retrying can succeed.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional


class BookingError(Exception):
    """Base class for reservation core errors."""

    http_status = 500
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Missing or malformed request fields; raised before any lock is taken."""

    http_status = 400


class RoomNotFound(BookingError):
    """Referenced room does not exist, or it or its hotel is inactive."""

    http_status = 404

    def __init__(self, room_id: int) -> None:
        super().__init__(f"Room {room_id} not found or inactive")
        self.room_id = room_id


class BookingNotFound(BookingError):
    http_status = 404

    def __init__(self, booking_id: int | str) -> None:
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class OutOfInventory(BookingError):
    """
    At least one night in the requested window cannot be sold.

    Retryable with different dates or a different room.
    """

    http_status = 409
    retryable = True

    def __init__(
        self,
        room_id: int,
        exhausted: Iterable[date] = (),
        blocked: Iterable[date] = (),
        missing: Iterable[date] = (),
    ) -> None:
        self.room_id = room_id
        self.exhausted = sorted(exhausted)
        self.blocked = sorted(blocked)
        self.missing = sorted(missing)
        super().__init__(
            f"Room {room_id} is not available for the requested dates "
            f"(exhausted={_fmt(self.exhausted)}, blocked={_fmt(self.blocked)}, "
            f"missing={_fmt(self.missing)})"
        )

    @property
    def unavailable_days(self) -> list[date]:
        return sorted({*self.exhausted, *self.blocked, *self.missing})


class LockTimeout(BookingError):
    """
    Lock contention exceeded the configured bound.

    Safe to retry the identical request: nothing was written.
    """

    http_status = 503
    retryable = True


class InvalidStatusTransition(BookingError):
    http_status = 409

    def __init__(
        self, booking_id: int, current: str, requested: str, reason: Optional[str] = None
    ) -> None:
        message = f"Booking {booking_id} cannot move from '{current}' to '{requested}'"
        super().__init__(f"{message}: {reason}" if reason else message)
        self.booking_id = booking_id
        self.current = current
        self.requested = requested


class InternalError(BookingError):
    """Any other failure inside a reservation transaction (always rolled back)."""

    http_status = 500


def _fmt(days: list[date]) -> str:
    return "[" + ", ".join(d.isoformat() for d in days) + "]"
