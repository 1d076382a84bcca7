"""
Unit tests for half-open stay window helpers.
"""

from __future__ import annotations

from datetime import date, timezone

import pytest

from hotel_booking.utils.datetime import count_nights, stay_nights, utc_now


@pytest.mark.unit
def test_stay_nights_excludes_checkout_day() -> None:
    nights = list(stay_nights(date(2026, 4, 10), date(2026, 4, 12)))

    assert nights == [date(2026, 4, 10), date(2026, 4, 11)]


@pytest.mark.unit
def test_stay_nights_crosses_month_boundary() -> None:
    nights = list(stay_nights(date(2026, 4, 30), date(2026, 5, 2)))

    assert nights == [date(2026, 4, 30), date(2026, 5, 1)]


@pytest.mark.unit
def test_stay_nights_empty_for_non_positive_window() -> None:
    assert list(stay_nights(date(2026, 4, 12), date(2026, 4, 12))) == []
    assert list(stay_nights(date(2026, 4, 12), date(2026, 4, 10))) == []


@pytest.mark.unit
def test_count_nights() -> None:
    assert count_nights(date(2026, 4, 10), date(2026, 4, 13)) == 3
    assert count_nights(date(2026, 4, 13), date(2026, 4, 10)) == 0


@pytest.mark.unit
def test_utc_now_is_timezone_aware() -> None:
    assert utc_now().tzinfo == timezone.utc
