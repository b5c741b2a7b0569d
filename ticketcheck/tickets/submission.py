from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping
from uuid import UUID, uuid4

from opentelemetry import trace

from ticketcheck.core.config import NotificationSettings
from ticketcheck.notifications.mailer import Notifier, ProviderError
from ticketcheck.notifications.templates import EmailRenderer

from .models import Ticket, TicketDraft
from .repository import TicketStore
from .results import (
    ConfigurationFailed,
    PersistenceFailed,
    StoreFailure,
    SubmissionResult,
    Submitted,
    SubmittedDegraded,
    ValidationFailed,
)
from .state import TicketStateMachine, TicketStatus
from .validation import validate_submission

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionWorkflow:
    """Validate, store and acknowledge a ticket verification request.

    The client confirmation is part of the contract with the submitter: when
    it cannot be delivered the ticket is kept but flagged ``error``. The admin
    notification is best effort and only logged on failure.
    """

    def __init__(
        self,
        store: TicketStore,
        notifier: Notifier,
        settings: NotificationSettings,
        *,
        renderer: EmailRenderer | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._settings = settings
        self._renderer = renderer or EmailRenderer()
        self._clock = clock
        self._id_factory = id_factory

    async def submit(self, payload: Mapping[str, Any]) -> SubmissionResult:
        with _tracer.start_as_current_span("ticket.submit") as span:
            missing = self._settings.missing()
            if missing:
                logger.error("Rejecting submission, notification settings missing: %s", ", ".join(missing))
                return ConfigurationFailed(missing)

            draft = validate_submission(payload)
            if not isinstance(draft, TicketDraft):
                logger.info("Submission rejected: %s", draft.message)
                return ValidationFailed(draft.message)

            created = await self._store.create_ticket(
                ticket_id=self._id_factory(),
                draft=draft,
                status=TicketStateMachine.initial_state(),
                submitted_at=self._clock(),
            )
            if isinstance(created, StoreFailure):
                logger.warning("Ticket could not be stored (%s): %s", created.kind.value, created.detail)
                return PersistenceFailed(created.kind, created.detail)

            span.set_attribute("ticket.id", str(created.id))
            logger.info("Ticket %s stored with %d line item(s)", created.id, len(created.line_items))

            result = await self._notify_client(created)
            await self._notify_admin(created)
            span.set_attribute("ticket.outcome", type(result).__name__)
            return result

    async def _notify_client(self, ticket: Ticket) -> Submitted | SubmittedDegraded:
        email = self._renderer.client_confirmation(ticket)
        sent = await self._notifier.send(ticket.client_email, email.subject, email.html)
        if not isinstance(sent, ProviderError):
            return Submitted(ticket.id)

        note = f"Confirmation email failed: {sent.detail}"
        TicketStateMachine.assert_transition(ticket.status, TicketStatus.ERROR)
        try:
            # Guarded on the status we read so an admin decision made meanwhile is kept.
            flagged = await self._store.update_status(
                ticket.id,
                status=TicketStatus.ERROR,
                admin_notes=note,
                expected_status=ticket.status,
            )
        except Exception:
            # The submission is stored either way; the caller still gets the degraded outcome.
            logger.exception("Could not flag ticket %s as error", ticket.id)
        else:
            if flagged is None:
                logger.warning(
                    "Ticket %s left its %s status before it could be flagged: %s",
                    ticket.id,
                    ticket.status.value,
                    note,
                )
            else:
                logger.warning("Ticket %s flagged as error: %s", ticket.id, note)
        return SubmittedDegraded(ticket.id, sent.detail)

    async def _notify_admin(self, ticket: Ticket) -> None:
        email = self._renderer.admin_notification(ticket, self._settings.admin_panel_url)
        sent = await self._notifier.send(self._settings.admin_email, email.subject, email.html)
        if isinstance(sent, ProviderError):
            logger.error("Admin notification for ticket %s failed: %s", ticket.id, sent.detail)
