from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from .state import TicketStatus

MAX_LINE_ITEMS = 3


@dataclass(frozen=True, slots=True)
class LineItem:
    """One ticket entry of a submission."""

    type: str
    code: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class TicketDraft:
    """Validated submission content, not yet persisted."""

    client_email: str
    currency: str
    line_items: tuple[LineItem, ...]


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a verification request."""

    id: UUID
    client_email: str
    currency: str
    line_items: tuple[LineItem, ...]
    status: TicketStatus
    submitted_at: datetime
    validated_at: datetime | None = None
    admin_notes: str | None = None
