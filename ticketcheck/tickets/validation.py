"""Submission payload validation.

Accepts the JSON body posted by the verification form. Line items may arrive
either as a ``tickets`` list or as flat ``typeN``/``codeN``/``amountN`` keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Union

from .models import MAX_LINE_ITEMS, LineItem, TicketDraft

_EMAIL_KEYS = ("clientEmail", "email")
_CURRENCY_KEYS = ("currency", "devise")

# Upper bound on a single ticket amount, exclusive.
MAX_AMOUNT = Decimal("1000000000000")


@dataclass(frozen=True, slots=True)
class MissingField:
    field: str

    @property
    def message(self) -> str:
        return f"Missing required field: {self.field}"


@dataclass(frozen=True, slots=True)
class InvalidAmount:
    slot: int

    @property
    def message(self) -> str:
        return f"Ticket {self.slot} has an invalid amount"


@dataclass(frozen=True, slots=True)
class IncompleteLineItems:
    @property
    def message(self) -> str:
        return "At least one ticket needs a type, a code and an amount"


ValidationFailure = Union[MissingField, InvalidAmount, IncompleteLineItems]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first(payload: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = _text(payload.get(key))
        if value:
            return value
    return ""


def _slots(payload: Mapping[str, Any]) -> list[tuple[str, str, str]]:
    raw_items = payload.get("tickets")
    slots: list[tuple[str, str, str]] = []
    if isinstance(raw_items, list):
        for entry in raw_items[:MAX_LINE_ITEMS]:
            if not isinstance(entry, Mapping):
                entry = {}
            slots.append((_text(entry.get("type")), _text(entry.get("code")), _text(entry.get("amount"))))
        return slots

    for index in range(1, MAX_LINE_ITEMS + 1):
        slots.append(
            (
                _text(payload.get(f"type{index}")),
                _text(payload.get(f"code{index}")),
                _text(payload.get(f"amount{index}")),
            )
        )
    return slots


def _parse_amount(raw: str) -> Decimal | None:
    try:
        amount = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0 or amount >= MAX_AMOUNT:
        return None
    return amount


def validate_submission(payload: Mapping[str, Any]) -> TicketDraft | ValidationFailure:
    """Normalize a raw submission or describe why it is unacceptable."""

    client_email = _first(payload, _EMAIL_KEYS)
    if not client_email:
        return MissingField("email")

    currency = _first(payload, _CURRENCY_KEYS)
    if not currency:
        return MissingField("currency")

    slots = _slots(payload)
    if not any(type_ and code for type_, code, _ in slots):
        return MissingField("ticket code")

    line_items: list[LineItem] = []
    for index, (type_, code, raw_amount) in enumerate(slots, start=1):
        if not (type_ and code and raw_amount):
            continue
        amount = _parse_amount(raw_amount)
        if amount is None:
            return InvalidAmount(index)
        line_items.append(LineItem(type=type_, code=code, amount=amount))

    if not line_items:
        return IncompleteLineItems()

    return TicketDraft(client_email=client_email, currency=currency, line_items=tuple(line_items))
