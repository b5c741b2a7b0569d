from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from ticketcheck.core.config import NotificationSettings
from ticketcheck.notifications.mailer import ProviderError, SentMessage
from ticketcheck.tickets.models import LineItem, Ticket, TicketDraft
from ticketcheck.tickets.results import StoreFailure
from ticketcheck.tickets.state import TicketStatus

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def make_ticket(
    *,
    status: TicketStatus = TicketStatus.PENDING,
    line_items: tuple[LineItem, ...] | None = None,
    admin_notes: str | None = None,
) -> Ticket:
    return Ticket(
        id=uuid4(),
        client_email="client@example.com",
        currency="EUR",
        line_items=line_items
        or (
            LineItem(type="PCS", code="12345678", amount=Decimal("10.5")),
            LineItem(type="Transcash", code="ABCDEFGHIJ", amount=Decimal("20.25")),
        ),
        status=status,
        submitted_at=FIXED_NOW,
        admin_notes=admin_notes,
    )


class InMemoryTicketStore:
    """Ticket store double that keeps tickets in a dict."""

    def __init__(self, *, create_failure: StoreFailure | None = None) -> None:
        self.tickets: dict[UUID, Ticket] = {}
        self.create_failure = create_failure
        self.create_calls = 0
        self.get_calls = 0
        self.update_calls: list[dict[str, object]] = []

    def add(self, ticket: Ticket) -> Ticket:
        self.tickets[ticket.id] = ticket
        return ticket

    async def create_ticket(
        self, *, ticket_id: UUID, draft: TicketDraft, status: TicketStatus, submitted_at: datetime
    ) -> Ticket | StoreFailure:
        self.create_calls += 1
        if self.create_failure is not None:
            return self.create_failure
        ticket = Ticket(
            id=ticket_id,
            client_email=draft.client_email,
            currency=draft.currency,
            line_items=draft.line_items,
            status=status,
            submitted_at=submitted_at,
        )
        self.tickets[ticket_id] = ticket
        return replace(ticket)

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        self.get_calls += 1
        ticket = self.tickets.get(ticket_id)
        return replace(ticket) if ticket is not None else None

    async def update_status(
        self,
        ticket_id: UUID,
        *,
        status: TicketStatus,
        admin_notes: str | None,
        validated_at: datetime | None = None,
        expected_status: TicketStatus | None = None,
    ) -> Ticket | None:
        self.update_calls.append(
            {
                "ticket_id": ticket_id,
                "status": status,
                "admin_notes": admin_notes,
                "expected_status": expected_status,
            }
        )
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return None
        if expected_status is not None and ticket.status is not expected_status:
            return None
        ticket.status = status
        ticket.admin_notes = admin_notes
        if validated_at is not None:
            ticket.validated_at = validated_at
        return replace(ticket)

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        tickets = [t for t in self.tickets.values() if status is None or t.status == status]
        return sorted(tickets, key=lambda t: t.submitted_at, reverse=True)


@dataclass
class SentEmail:
    to: str
    subject: str
    html: str


class RecordingNotifier:
    """Notifier double that records messages and fails for chosen recipients."""

    def __init__(self, failures: dict[str, ProviderError] | None = None) -> None:
        self.sent: list[SentEmail] = []
        self.failures = failures or {}

    async def send(self, to: str, subject: str, html: str) -> SentMessage | ProviderError:
        self.sent.append(SentEmail(to=to, subject=subject, html=html))
        if to in self.failures:
            return self.failures[to]
        return SentMessage(message_id=f"msg-{len(self.sent)}")

    def to(self, address: str) -> list[SentEmail]:
        return [email for email in self.sent if email.to == address]


@pytest.fixture
def notification_settings() -> NotificationSettings:
    return NotificationSettings(
        sender="tickets@example.com",
        sender_name="Ticket Desk",
        admin_email="admin@example.com",
        admin_panel_url="https://tickets.example.com/admin/tickets",
        api_key="test-key",
    )


@pytest.fixture
def store() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
