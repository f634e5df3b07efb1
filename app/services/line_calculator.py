# app/services/line_calculator.py
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from app.models.invoice import LineAmounts, coerce_decimal

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class RawLineAmounts(NamedTuple):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_components(quantity, unit_price, tax_rate, discount_rate) -> RawLineAmounts:
    """Montants non arrondis d'une ligne. La remise s'applique avant la taxe."""
    subtotal = coerce_decimal(quantity) * coerce_decimal(unit_price)
    discount = subtotal * coerce_decimal(discount_rate) / HUNDRED
    tax = (subtotal - discount) * coerce_decimal(tax_rate) / HUNDRED
    return RawLineAmounts(subtotal, discount, tax, subtotal - discount + tax)


def compute_line(quantity, unit_price, tax_rate, discount_rate) -> LineAmounts:
    raw = line_components(quantity, unit_price, tax_rate, discount_rate)
    return LineAmounts(
        subtotal=round_money(raw.subtotal),
        discount=round_money(raw.discount),
        tax=round_money(raw.tax),
        total=round_money(raw.total),
    )
