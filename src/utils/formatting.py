from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")
SATOSHI = Decimal("0.00000001")


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def round_currency(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(value: Decimal) -> str:
    return f"{round_currency(value):.2f}"


def format_amount(value: Decimal) -> str:
    return f"{value.quantize(SATOSHI, rounding=ROUND_HALF_UP):.8f}"


def format_us_date(value: datetime) -> str:
    return value.strftime("%m/%d/%Y")
