"""
Unit tests for FastAPI dependency injection.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from hotel_booking.dependencies import Caller, get_caller, get_db_engine


@pytest.fixture
def caller_client() -> TestClient:
    app = FastAPI()

    @app.get("/whoami")
    def whoami(caller: Caller = Depends(get_caller)) -> dict[str, object]:
        return {"user_id": caller.user_id, "role": caller.role, "is_admin": caller.is_admin}

    return TestClient(app)


@pytest.mark.unit
def test_get_db_engine_dependency() -> None:
    """get_db_engine yields the module engine singleton."""
    engine1 = next(get_db_engine())
    engine2 = next(get_db_engine())

    assert isinstance(engine1, Engine)
    assert engine1 is engine2


@pytest.mark.unit
def test_dependency_injection_can_be_overridden() -> None:
    app = FastAPI()

    @app.get("/test")
    def test_endpoint(engine: Engine = Depends(get_db_engine)) -> dict[str, str]:
        return {"engine_name": engine.name}

    mock_engine = Mock(spec=Engine)
    mock_engine.name = "mock_engine"
    app.dependency_overrides[get_db_engine] = lambda: mock_engine

    response = TestClient(app).get("/test")

    assert response.status_code == 200
    assert response.json() == {"engine_name": "mock_engine"}


@pytest.mark.unit
def test_get_caller_reads_gateway_headers(caller_client: TestClient) -> None:
    response = caller_client.get("/whoami", headers={"X-User-Id": "42", "X-User-Role": "Admin"})

    assert response.status_code == 200
    assert response.json() == {"user_id": 42, "role": "admin", "is_admin": True}


@pytest.mark.unit
def test_get_caller_defaults_to_user_role(caller_client: TestClient) -> None:
    response = caller_client.get("/whoami", headers={"X-User-Id": "42"})

    assert response.json()["role"] == "user"
    assert response.json()["is_admin"] is False


@pytest.mark.unit
@pytest.mark.parametrize("headers", [{}, {"X-User-Id": "abc"}, {"X-User-Id": "0"}])
def test_get_caller_requires_positive_user_id(
    caller_client: TestClient, headers: dict[str, str]
) -> None:
    response = caller_client.get("/whoami", headers=headers)

    assert response.status_code == 401


@pytest.mark.unit
def test_payment_service_role_is_not_admin() -> None:
    caller = Caller(user_id=2, role="payment_service")

    assert caller.is_payment_service
    assert not caller.is_admin
    assert not Caller(user_id=7).is_payment_service
