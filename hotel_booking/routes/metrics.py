"""
Prometheus metrics endpoint.

Example:
    GET /metrics

    Response:
        # HELP hotel_reservation_attempts_total Reservation attempts by final outcome
        # TYPE hotel_reservation_attempts_total counter
        hotel_reservation_attempts_total{outcome="committed"} 42.0
        hotel_reservation_attempts_total{outcome="out_of_inventory"} 3.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """Expose the default registry in the Prometheus text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
