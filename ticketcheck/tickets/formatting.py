"""Display helpers shared by the email templates."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Iterable

from .models import LineItem

MASK_CHAR = "*"
_CENTS = Decimal("0.01")
_SUM_CONTEXT = Context(prec=60)


def mask_code(code: str) -> str:
    """Hide all but the first and last two characters of a ticket code."""

    if len(code) <= 4:
        return MASK_CHAR * 4
    return code[:2] + MASK_CHAR * (len(code) - 4) + code[-2:]


def format_amount(amount: Decimal) -> str:
    # Precision grows with the integer part so quantizing never overflows the context.
    context = Context(prec=max(28, amount.adjusted() + 6), rounding=ROUND_HALF_UP)
    return str(amount.quantize(_CENTS, context=context))


def total_amount(items: Iterable[LineItem]) -> Decimal:
    total = Decimal("0")
    for item in items:
        total = _SUM_CONTEXT.add(total, item.amount)
    return total


def format_total(items: Iterable[LineItem], currency: str | None = None) -> str:
    """Sum line item amounts to two decimals, optionally suffixed by currency."""

    formatted = format_amount(total_amount(items))
    if currency:
        return f"{formatted} {currency}"
    return formatted
