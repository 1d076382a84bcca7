"""Stay price quote from stored nightly rates (no dynamic pricing here)."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from hotel_booking.config import SERVICE_CHARGE_RATE, TAX_RATE
from hotel_booking.db.readers.calendar import WindowCheck
from hotel_booking.db.readers.rooms import RoomInfo

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    room_price: Decimal
    tax_amount: Decimal
    service_charge: Decimal
    total_price: Decimal


def quote_stay(
    room: RoomInfo,
    window: WindowCheck,
    tax_rate: Decimal = TAX_RATE,
    service_charge_rate: Decimal = SERVICE_CHARGE_RATE,
) -> PriceQuote:
    """
    Price a stay as the sum of its nightly rates plus tax and service charge.

    A night's rate is its calendar override_price when set, otherwise the
    room's base price. Amounts are rounded half-up to cents.
    """
    room_price = sum(
        (
            day.override_price if day.override_price is not None else room.base_price_per_night
            for day in window.days
        ),
        Decimal("0"),
    ).quantize(CENT, rounding=ROUND_HALF_UP)

    tax_amount = (room_price * tax_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    service_charge = (room_price * service_charge_rate).quantize(CENT, rounding=ROUND_HALF_UP)

    return PriceQuote(
        room_price=room_price,
        tax_amount=tax_amount,
        service_charge=service_charge,
        total_price=room_price + tax_amount + service_charge,
    )
