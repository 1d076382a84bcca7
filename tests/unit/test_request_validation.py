"""
Unit tests for request validation and error translation (no database).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from hotel_booking.db.engine import is_lock_timeout
from hotel_booking.errors import LockTimeout, OutOfInventory, ValidationError
from hotel_booking.routes._booking_helpers import to_http_exception
from hotel_booking.services.reservations import ReservationRequest, create_reservation, validate_request

VALID = ReservationRequest(
    user_id=7,
    room_id=1,
    check_in=date(2026, 4, 10),
    check_out=date(2026, 4, 12),
    payment_token="tok_test_visa",
)


@pytest.mark.unit
def test_validate_request_accepts_well_formed_request() -> None:
    validate_request(VALID)


@pytest.mark.unit
@pytest.mark.parametrize(
    "changes, message",
    [
        ({"user_id": 0}, "user_id"),
        ({"room_id": -1}, "room_id"),
        ({"room_id": True}, "room_id"),
        ({"check_in": datetime(2026, 4, 10, 15)}, "check_in"),
        ({"check_out": date(2026, 4, 10)}, "check_out must be after check_in"),
        ({"check_out": date(2026, 4, 9)}, "check_out must be after check_in"),
        ({"adults": 0}, "adult"),
        ({"children": -1}, "children"),
        ({"payment_token": "  "}, "payment_token"),
    ],
)
def test_validate_request_rejects(changes: dict[str, object], message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        validate_request(replace(VALID, **changes))


@pytest.mark.unit
def test_create_reservation_rejects_before_opening_a_transaction() -> None:
    """Malformed requests never reach the database."""
    engine = Mock()

    with pytest.raises(ValidationError):
        create_reservation(engine, replace(VALID, check_out=VALID.check_in))

    engine.begin.assert_not_called()


@pytest.mark.unit
@pytest.mark.parametrize(
    "orig, expected",
    [
        (SimpleNamespace(pgcode="55P03"), True),
        (SimpleNamespace(pgcode="40P01"), True),
        (Exception("database is locked"), True),
        (SimpleNamespace(pgcode="23505"), False),
    ],
)
def test_is_lock_timeout(orig: object, expected: bool) -> None:
    exc = OperationalError("SELECT ...", {}, orig)  # type: ignore[arg-type]

    assert is_lock_timeout(exc) is expected


@pytest.mark.unit
def test_out_of_inventory_maps_to_409_with_days() -> None:
    http_exc = to_http_exception(OutOfInventory(1, exhausted=[date(2026, 4, 11)]))

    assert http_exc.status_code == 409
    assert http_exc.detail["unavailable_days"] == ["2026-04-11"]
    assert http_exc.detail["retryable"] is True


@pytest.mark.unit
def test_lock_timeout_maps_to_503_with_retry_after() -> None:
    http_exc = to_http_exception(LockTimeout("busy"))

    assert http_exc.status_code == 503
    assert http_exc.headers == {"Retry-After": "1"}


@pytest.mark.unit
def test_validation_error_maps_to_400() -> None:
    http_exc = to_http_exception(ValidationError("check_out must be after check_in"))

    assert http_exc.status_code == 400
    assert http_exc.detail == "check_out must be after check_in"
