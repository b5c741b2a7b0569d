from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from opentelemetry import trace

from ticketcheck.notifications.mailer import Notifier, ProviderError
from ticketcheck.notifications.templates import EmailRenderer

from .repository import TicketStore
from .results import (
    InvalidStatus,
    InvalidTransition,
    StatusEmailFailed,
    StatusUpdated,
    StatusUpdateResult,
    TicketMissing,
)
from .state import TicketStateMachine, TicketStatus, parse_admin_status

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusUpdateWorkflow:
    """Apply an administrator decision and email the outcome to the client.

    The status change is committed before the email is attempted and is never
    rolled back when delivery fails.
    """

    def __init__(
        self,
        store: TicketStore,
        notifier: Notifier,
        *,
        renderer: EmailRenderer | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._renderer = renderer or EmailRenderer()
        self._clock = clock

    async def update_status(
        self,
        ticket_id: UUID,
        new_status: str | TicketStatus,
        admin_notes: str | None = None,
    ) -> StatusUpdateResult:
        status = parse_admin_status(new_status)
        if status is None:
            requested = new_status.value if isinstance(new_status, TicketStatus) else str(new_status)
            return InvalidStatus(requested)

        with _tracer.start_as_current_span("ticket.update_status") as span:
            span.set_attribute("ticket.id", str(ticket_id))
            span.set_attribute("ticket.status", status.value)

            ticket = await self._store.get_ticket(ticket_id)
            if ticket is None:
                return TicketMissing(ticket_id)

            if not TicketStateMachine.can_transition(ticket.status, status):
                logger.info("Ticket %s is %s, refusing %s", ticket_id, ticket.status.value, status.value)
                return InvalidTransition(ticket.status, status)

            updated = await self._store.update_status(
                ticket_id,
                status=status,
                admin_notes=admin_notes or "",
                validated_at=self._clock(),
            )
            if updated is None:
                return TicketMissing(ticket_id)
            logger.info("Ticket %s marked %s", ticket_id, status.value)

            email = self._renderer.final_status(updated)
            sent = await self._notifier.send(updated.client_email, email.subject, email.html)
            if isinstance(sent, ProviderError):
                logger.warning("Status email for ticket %s failed: %s", ticket_id, sent.detail)
                return StatusEmailFailed(updated, sent.detail)
            return StatusUpdated(updated)
