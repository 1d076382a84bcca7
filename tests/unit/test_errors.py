"""
Unit tests for the reservation error hierarchy.
"""

from __future__ import annotations

from datetime import date

import pytest

from hotel_booking.errors import (
    BookingError,
    BookingNotFound,
    InternalError,
    InvalidStatusTransition,
    LockTimeout,
    OutOfInventory,
    RoomNotFound,
    ValidationError,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error, http_status, retryable",
    [
        (ValidationError("bad"), 400, False),
        (RoomNotFound(3), 404, False),
        (BookingNotFound(4), 404, False),
        (OutOfInventory(3), 409, True),
        (InvalidStatusTransition(4, "refunded", "confirmed"), 409, False),
        (LockTimeout("busy"), 503, True),
        (InternalError("boom"), 500, False),
    ],
)
def test_error_http_status_and_retryable(
    error: BookingError, http_status: int, retryable: bool
) -> None:
    assert isinstance(error, BookingError)
    assert error.http_status == http_status
    assert error.retryable is retryable


@pytest.mark.unit
def test_out_of_inventory_reports_sorted_unavailable_days() -> None:
    error = OutOfInventory(
        3,
        exhausted=[date(2026, 4, 12)],
        blocked=[date(2026, 4, 10)],
        missing=[date(2026, 4, 11)],
    )

    assert error.unavailable_days == [date(2026, 4, 10), date(2026, 4, 11), date(2026, 4, 12)]
    assert "2026-04-12" in error.message


@pytest.mark.unit
def test_invalid_status_transition_message_names_both_statuses() -> None:
    error = InvalidStatusTransition(4, "refunded", "confirmed")

    assert "'refunded'" in str(error)
    assert "'confirmed'" in str(error)


@pytest.mark.unit
def test_invalid_status_transition_appends_reason() -> None:
    error = InvalidStatusTransition(4, "pending", "confirmed", reason="payment is not settled")

    assert str(error).endswith(": payment is not settled")
