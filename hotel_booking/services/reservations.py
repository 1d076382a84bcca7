"""
Reservation coordinator: the transactional critical section of booking.

One reservation is one database transaction:

    Requested -> Validating -> Locked -> Committed

A request that fails validation, names an unknown room or finds no inventory
is Rejected; any failure after the locks are taken is RolledBack.

Calendar rows of the stay window are locked (SELECT ... FOR UPDATE, date
order) before availability is trusted. The decrement, the booking insert and
the payment insert then commit together or not at all. Concurrent requests
for overlapping nights of a room are serialized by those row locks; requests
on other rooms or disjoint nights never contend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

import structlog
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, IntegrityError

from hotel_booking.config import (
    DEFAULT_PAYMENT_PROVIDER,
    PAYMENT_MODE,
    REFERENCE_MAX_ATTEMPTS,
)
from hotel_booking.db.engine import apply_lock_timeout, is_lock_timeout
from hotel_booking.db.readers.calendar import check_window
from hotel_booking.db.readers.rooms import RoomInfo, get_room
from hotel_booking.db.writers.bookings import insert_booking
from hotel_booking.db.writers.calendar import decrement_window
from hotel_booking.db.writers.payments import insert_payment
from hotel_booking.errors import (
    BookingError,
    InternalError,
    LockTimeout,
    OutOfInventory,
    ValidationError,
)
from hotel_booking.metrics import reference_collisions, reservation_attempts, reservation_duration
from hotel_booking.models.bookings import BookingStatus, PaymentStatus
from hotel_booking.models.payments import TransactionStatus
from hotel_booking.services.pricing import quote_stay
from hotel_booking.services.references import generate_reference, is_reference_collision

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReservationRequest:
    user_id: int
    room_id: int
    check_in: date
    check_out: date
    payment_token: str
    adults: int = 1
    children: int = 0
    special_requests: Optional[str] = None
    payment_provider: str = DEFAULT_PAYMENT_PROVIDER


@dataclass(frozen=True)
class ReservationResult:
    booking_id: int
    reference: str
    status: str
    payment_status: str
    number_of_nights: int
    total_price: Decimal


def create_reservation(
    engine: Engine,
    request: ReservationRequest,
    payment_mode: str = PAYMENT_MODE,
    reference_factory: Callable[[], str] = generate_reference,
    max_reference_attempts: int = REFERENCE_MAX_ATTEMPTS,
) -> ReservationResult:
    """
    Reserve one unit of a room for a stay window and record its payment.

    In "inline" payment mode the booking is committed confirmed/paid with a
    succeeded payment transaction, the payment having been authorized
    upstream. In "deferred" mode it is committed pending with a pending
    payment transaction, to be settled by services.payments.settle_payment.

    Args:
        engine: SQLAlchemy engine of the shared store
        request: The reservation request
        payment_mode: "inline" or "deferred"
        reference_factory: Produces candidate booking references
        max_reference_attempts: Reference collisions tolerated before giving up

    Returns:
        ReservationResult: booking id and reference, available only after commit

    Raises:
        ValidationError: Malformed request (nothing locked)
        RoomNotFound: Unknown or inactive room
        OutOfInventory: A night is missing, blocked or sold out (retryable)
        LockTimeout: Lock wait exceeded the bound (retry the same request)
        InternalError: Anything else; the transaction was rolled back
    """
    log = logger.bind(
        user_id=request.user_id,
        room_id=request.room_id,
        check_in=str(request.check_in),
        check_out=str(request.check_out),
    )
    log.info("reservation_requested")

    try:
        log.debug("reservation_validating")
        validate_request(request)
        with reservation_duration.time():
            result = _reserve(
                engine, request, payment_mode, reference_factory, max_reference_attempts, log
            )
    except OutOfInventory as e:
        reservation_attempts.labels(outcome="out_of_inventory").inc()
        log.info(
            "reservation_rejected",
            reason="out_of_inventory",
            unavailable=[d.isoformat() for d in e.unavailable_days],
        )
        raise
    except LockTimeout:
        reservation_attempts.labels(outcome="lock_timeout").inc()
        log.warning("reservation_rolled_back", reason="lock_timeout")
        raise
    except InternalError as e:
        reservation_attempts.labels(outcome="rolled_back").inc()
        log.error("reservation_rolled_back", reason="internal_error", error=e.message)
        raise
    except BookingError as e:
        reservation_attempts.labels(outcome="rejected").inc()
        log.info("reservation_rejected", reason=type(e).__name__, error=e.message)
        raise
    except DBAPIError as e:
        if is_lock_timeout(e):
            reservation_attempts.labels(outcome="lock_timeout").inc()
            log.warning("reservation_rolled_back", reason="lock_timeout", error=str(e.orig))
            raise LockTimeout("Timed out waiting for calendar locks; retry the request") from e
        reservation_attempts.labels(outcome="rolled_back").inc()
        log.exception("reservation_rolled_back", reason="database_error")
        raise InternalError("Reservation failed and was rolled back") from e
    except Exception as e:
        reservation_attempts.labels(outcome="rolled_back").inc()
        log.exception("reservation_rolled_back", reason="unexpected_error")
        raise InternalError("Reservation failed and was rolled back") from e

    reservation_attempts.labels(outcome="committed").inc()
    log.info(
        "reservation_committed",
        booking_id=result.booking_id,
        reference=result.reference,
        status=result.status,
        total_price=str(result.total_price),
    )
    return result


def validate_request(request: ReservationRequest) -> None:
    """
    Reject malformed requests before any transaction is opened.

    Raises:
        ValidationError: Describing the first problem found
    """
    if not _is_positive_int(request.user_id):
        raise ValidationError("user_id must be a positive integer")
    if not _is_positive_int(request.room_id):
        raise ValidationError("room_id must be a positive integer")
    for name in ("check_in", "check_out"):
        value = getattr(request, name)
        if not isinstance(value, date) or isinstance(value, datetime):
            raise ValidationError(f"{name} must be a calendar date")
    if request.check_out <= request.check_in:
        raise ValidationError("check_out must be after check_in")
    if not isinstance(request.adults, int) or request.adults < 1:
        raise ValidationError("At least one adult is required")
    if not isinstance(request.children, int) or request.children < 0:
        raise ValidationError("children cannot be negative")
    if not isinstance(request.payment_token, str) or not request.payment_token.strip():
        raise ValidationError("payment_token is required")


def _reserve(
    engine: Engine,
    request: ReservationRequest,
    payment_mode: str,
    reference_factory: Callable[[], str],
    max_reference_attempts: int,
    log: Any,
) -> ReservationResult:
    if payment_mode == "deferred":
        booking_status = BookingStatus.PENDING.value
        payment_status = PaymentStatus.PENDING.value
        transaction_status = TransactionStatus.PENDING.value
    else:
        booking_status = BookingStatus.CONFIRMED.value
        payment_status = PaymentStatus.PAID.value
        transaction_status = TransactionStatus.SUCCEEDED.value

    with engine.begin() as conn:
        apply_lock_timeout(conn)

        room = get_room(conn, request.room_id)
        _validate_occupancy(request, room)

        window = check_window(conn, room.room_id, request.check_in, request.check_out, lock=True)
        log.debug("reservation_locked", nights=window.nights)
        if not window.is_available:
            raise OutOfInventory(room.room_id, window.exhausted, window.blocked, window.missing)

        nights = decrement_window(
            conn, room.room_id, request.check_in, request.check_out, checked=window
        )
        quote = quote_stay(room, window)

        booking_id, reference = _insert_with_unique_reference(
            conn,
            reference_factory,
            max_reference_attempts,
            user_id=request.user_id,
            hotel_id=room.hotel_id,
            room_id=room.room_id,
            check_in=request.check_in,
            check_out=request.check_out,
            number_of_nights=nights,
            adults=request.adults,
            children=request.children,
            special_requests=request.special_requests,
            room_price=quote.room_price,
            tax_amount=quote.tax_amount,
            service_charge=quote.service_charge,
            total_price=quote.total_price,
            status=booking_status,
            payment_status=payment_status,
        )

        insert_payment(
            conn,
            booking_id=booking_id,
            user_id=request.user_id,
            transaction_id=request.payment_token,
            payment_provider=request.payment_provider,
            amount=quote.total_price,
            status=transaction_status,
        )

    return ReservationResult(
        booking_id=booking_id,
        reference=reference,
        status=booking_status,
        payment_status=payment_status,
        number_of_nights=nights,
        total_price=quote.total_price,
    )


def _insert_with_unique_reference(
    conn: Connection,
    reference_factory: Callable[[], str],
    max_attempts: int,
    **booking_fields: object,
) -> tuple[int, str]:
    """
    Insert the booking, regenerating its reference on unique-constraint collisions.

    Each attempt runs in a SAVEPOINT so a collision undoes only the failed
    insert; the calendar decrement already made in this transaction stays.
    """
    for attempt in range(1, max_attempts + 1):
        reference = reference_factory()
        try:
            with conn.begin_nested():
                booking_id = insert_booking(conn, booking_reference=reference, **booking_fields)  # type: ignore[arg-type]
            return booking_id, reference
        except IntegrityError as e:
            if not is_reference_collision(e):
                raise
            reference_collisions.inc()
            logger.warning("booking_reference_collision", reference=reference, attempt=attempt)

    raise InternalError(
        f"Could not allocate a unique booking reference after {max_attempts} attempts"
    )


def _validate_occupancy(request: ReservationRequest, room: RoomInfo) -> None:
    if request.adults > room.max_adults:
        raise ValidationError(f"Room {room.room_id} allows at most {room.max_adults} adults")
    if request.children > room.max_children:
        raise ValidationError(f"Room {room.room_id} allows at most {room.max_children} children")


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
