"""
Booking reference generation.

References are short and human-presentable (``BKG-7K2Q9Z``), so a random
collision is possible at scale. The generator does not try to prevent that on
its own: uniqueness is enforced by the unique constraint on
bookings.booking_reference, and the reservation coordinator regenerates and
retries the insert when it collides.
"""

import secrets
import string

from hotel_booking.config import REFERENCE_LENGTH, REFERENCE_PREFIX

BASE36_ALPHABET = string.digits + string.ascii_uppercase

UNIQUE_VIOLATION = "23505"
REFERENCE_CONSTRAINT = "uq_bookings_booking_reference"


def generate_reference(
    prefix: str = REFERENCE_PREFIX,
    length: int = REFERENCE_LENGTH,
    alphabet: str = BASE36_ALPHABET,
) -> str:
    """
    Generate a random booking reference.

    Args:
        prefix: Fixed prefix, "BKG-" by default
        length: Number of random characters after the prefix
        alphabet: Characters to draw from (upper-case base36 by default)

    Returns:
        str: e.g. "BKG-4F7Q0Z"
    """
    if length < 1:
        raise ValueError("reference length must be positive")
    return prefix + "".join(secrets.choice(alphabet) for _ in range(length))


def is_reference_collision(exc: Exception) -> bool:
    """
    Tell whether an IntegrityError was raised by the booking_reference constraint.

    psycopg2 reports SQLSTATE 23505 with the constraint name in ``diag``.
    SQLite only has the message, which names the column.
    """
    orig = getattr(exc, "orig", exc)
    pgcode = getattr(orig, "pgcode", None)
    if pgcode is not None:
        constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
        return pgcode == UNIQUE_VIOLATION and constraint == REFERENCE_CONSTRAINT
    message = str(orig)
    return "UNIQUE constraint failed" in message and "bookings.booking_reference" in message
