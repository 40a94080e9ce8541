# checkout_engine/domain/pricing.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from checkout_engine.data.models.coupon import DiscountType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    return money(Decimal(str(unit_price)) * quantity)


def cart_total(items: Iterable) -> Decimal:
    """Suma unit_price * quantity - liczona zawsze z pozycji, nigdy zapisywana."""
    return sum((line_total(i.unit_price, i.quantity) for i in items), ZERO)


def compute_discount(discount_type: DiscountType, value, total: Decimal, quantity: int) -> Decimal:
    value = Decimal(str(value))
    if discount_type == DiscountType.PERCENTAGE:
        return money(total * value / Decimal("100"))
    # kwota stala liczona per sztuka, nie per koszyk
    return money(value * quantity)


def discounted_unit_price(final_total: Decimal, quantity: int) -> Decimal:
    return money(Decimal(str(final_total)) / quantity)


def realized_discount(original_unit_price, charged_unit_price, quantity: int) -> Decimal:
    # cena katalogowa mogla spasc ponizej ceny z kuponem, rabat nie jest ujemny
    return max(ZERO, line_total(original_unit_price, quantity) - line_total(charged_unit_price, quantity))
