from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from uuid import UUID

from .models import Ticket
from .repository import TicketStore
from .results import StatusUpdateResult, SubmissionResult
from .state import TicketStatus
from .status_update import StatusUpdateWorkflow
from .submission import SubmissionWorkflow


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


@dataclass(slots=True)
class TicketService:
    """Entry point the HTTP layer uses for every ticket operation."""

    repository: TicketStore
    submission: SubmissionWorkflow
    status_update: StatusUpdateWorkflow

    async def submit(self, payload: Mapping[str, Any]) -> SubmissionResult:
        return await self.submission.submit(payload)

    async def update_status(
        self,
        ticket_id: UUID,
        new_status: str | TicketStatus,
        admin_notes: str | None = None,
    ) -> StatusUpdateResult:
        return await self.status_update.update_status(ticket_id, new_status, admin_notes)

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        return await self.repository.list_tickets(status=status)

    async def get_ticket(self, ticket_id: UUID) -> Ticket:
        ticket = await self.repository.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket
