from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection

from hotel_booking.models.payments import PaymentTransaction, TransactionType
from hotel_booking.utils.datetime import utc_now


def insert_payment(
    conn: Connection,
    *,
    booking_id: int,
    user_id: int,
    transaction_id: str,
    payment_provider: str,
    amount: Decimal,
    status: str,
    transaction_type: str = TransactionType.PAYMENT.value,
) -> int:
    """
    Record a payment or refund transaction against a booking.

    Args:
        conn (Connection): Connection inside the booking's transaction.
        transaction_id (str): Opaque token from the payment vault, stored as-is.

    Returns:
        int: New payment transaction id
    """
    now = utc_now()
    result = conn.execute(
        insert(PaymentTransaction)
        .values(
            booking_id=booking_id,
            user_id=user_id,
            transaction_id=transaction_id,
            payment_provider=payment_provider,
            amount=amount,
            status=status,
            transaction_type=transaction_type,
            created_at=now,
            updated_at=now,
        )
        .returning(PaymentTransaction.id)
    )
    return int(result.scalar_one())


def get_payment_for_booking(
    conn: Connection, booking_id: int, lock: bool = False
) -> Optional[dict]:
    """
    Return the original payment transaction of a booking.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        booking_id (int): Booking id.
        lock (bool): Lock the row (SELECT ... FOR UPDATE).

    Returns:
        Optional[dict]: Payment transaction columns, or None
    """
    stmt = (
        select(PaymentTransaction.__table__)
        .where(PaymentTransaction.booking_id == booking_id)
        .where(PaymentTransaction.transaction_type == TransactionType.PAYMENT.value)
        .order_by(PaymentTransaction.id)
        .limit(1)
    )
    if lock:
        stmt = stmt.with_for_update()
    row = conn.execute(stmt).mappings().fetchone()
    return dict(row) if row else None


def update_payment_status(
    conn: Connection,
    payment_id: int,
    status: str,
    transaction_id: Optional[str] = None,
) -> None:
    values: dict[str, Any] = {"status": status, "updated_at": utc_now()}
    if transaction_id:
        values["transaction_id"] = transaction_id
    conn.execute(
        update(PaymentTransaction).where(PaymentTransaction.id == payment_id).values(**values)
    )
