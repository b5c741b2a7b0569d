from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ticketcheck.dependencies.auth import AdminUser
from ticketcheck.dependencies.tickets import TicketServiceDep
from ticketcheck.tickets.models import Ticket
from ticketcheck.tickets.results import (
    InvalidStatus,
    InvalidTransition,
    StatusEmailFailed,
    StatusUpdated,
    StatusUpdateResult,
    TicketMissing,
)
from ticketcheck.tickets.service import TicketNotFoundError
from ticketcheck.tickets.state import TicketStatus

router = APIRouter(prefix="/admin/tickets", tags=["admin"])


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    code: str
    amount: Decimal


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_email: str
    currency: str
    line_items: list[LineItemResponse]
    status: TicketStatus
    submitted_at: datetime
    validated_at: datetime | None
    admin_notes: str | None


class TicketStatusChangeRequest(BaseModel):
    status: str
    admin_notes: str | None = Field(
        default=None,
        max_length=2000,
        validation_alias=AliasChoices("admin_notes", "adminNotes"),
    )


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _status_change_response(result: StatusUpdateResult) -> TicketResponse | JSONResponse:
    if isinstance(result, StatusUpdated):
        return _to_response(result.ticket)
    if isinstance(result, StatusEmailFailed):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "detail": f"Status saved but the notification email failed: {result.detail}",
                "ticket": _to_response(result.ticket).model_dump(mode="json"),
            },
        )
    if isinstance(result, InvalidStatus):
        raise HTTPException(status_code=400, detail=f"Invalid status: {result.requested}")
    if isinstance(result, TicketMissing):
        raise HTTPException(status_code=404, detail=f"Ticket {result.ticket_id} not found")
    if isinstance(result, InvalidTransition):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot transition {result.current.value} -> {result.requested.value}",
        )
    raise TypeError(f"Unhandled status update result: {result!r}")


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    _: AdminUser,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    tickets = await service.list_tickets(status=status_filter)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: UUID, service: TicketServiceDep, _: AdminUser) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: UUID,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    _: AdminUser,
) -> TicketResponse | JSONResponse:
    result = await service.update_status(ticket_id, payload.status, payload.admin_notes)
    return _status_change_response(result)
