"""
FastAPI dependency injection providers.

Route handlers get the database engine and the caller's identity through
these providers, so tests can swap them with app.dependency_overrides.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generator, Optional

from fastapi import Header, HTTPException, status
from sqlalchemy.engine import Engine

from hotel_booking.db.engine import engine


@dataclass(frozen=True)
class Caller:
    """Identity asserted by the gateway in front of this service."""

    user_id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_payment_service(self) -> bool:
        return self.role == "payment_service"


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Yields:
        Engine: SQLAlchemy database engine

    Testing Example:
        >>> app.dependency_overrides[get_db_engine] = lambda: test_engine
        >>> client = TestClient(app)
        >>> response = client.post("/bookings", json={...}, headers={"X-User-Id": "7"})
    """
    yield engine


def get_caller(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Caller:
    """
    Resolve the authenticated caller from gateway headers.

    Authentication happens upstream; this service trusts the headers and only
    checks that a usable user id is present.

    Raises:
        HTTPException: 401 if X-User-Id is missing or not a positive integer
    """
    if not x_user_id or not x_user_id.isdigit() or int(x_user_id) < 1:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    return Caller(user_id=int(x_user_id), role=(x_user_role or "user").lower())
