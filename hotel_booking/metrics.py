"""
Prometheus metrics for reservation admission control.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from hotel_booking.metrics import reservation_attempts, reservation_duration
    >>> with reservation_duration.time():
    ...     result = create_reservation(engine, request)
    >>> reservation_attempts.labels(outcome="committed").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Reservation Metrics
# =============================================================================

reservation_attempts = Counter(
    "hotel_reservation_attempts_total",
    "Reservation attempts by final outcome",
    ["outcome"],
)
"""
Counter for reservation attempts.

Labels:
    outcome: committed, rejected (validation / not found), out_of_inventory,
        lock_timeout, rolled_back
"""

reservation_duration = Histogram(
    "hotel_reservation_duration_seconds",
    "Wall time of the reservation transaction, lock wait included",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)
"""
Histogram for reservation duration.

Long tails here mean requests are queueing on calendar row locks.
"""

reference_collisions = Counter(
    "hotel_booking_reference_collisions_total",
    "Booking reference collisions resolved by regenerating the reference",
)

# =============================================================================
# Inventory & Lifecycle Metrics
# =============================================================================

inventory_units_released = Counter(
    "hotel_inventory_units_released_total",
    "Room-nights returned to the calendar by cancellations and refunds",
)

status_transitions = Counter(
    "hotel_booking_status_transitions_total",
    "Booking status transitions applied",
    ["from_status", "to_status"],
)
"""
Counter for booking lifecycle transitions.

Labels:
    from_status: Status before the transition
    to_status: Status after the transition
"""

payment_settlements = Counter(
    "hotel_payment_settlements_total",
    "Deferred payment settlements by result",
    ["result"],
)
"""
Counter for deferred payment settlements.

Labels:
    result: confirmed or compensated
"""
