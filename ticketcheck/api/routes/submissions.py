from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ticketcheck.dependencies.tickets import TicketServiceDep
from ticketcheck.tickets.results import (
    ConfigurationFailed,
    PersistenceErrorKind,
    PersistenceFailed,
    SubmissionResult,
    Submitted,
    SubmittedDegraded,
    ValidationFailed,
)
from ticketcheck.tickets.state import TicketStatus

router = APIRouter(tags=["submissions"])

_PERSISTENCE_STATUS = {
    PersistenceErrorKind.VALIDATION: 422,
    PersistenceErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    PersistenceErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class SubmissionResponse(BaseModel):
    ticket_id: UUID
    status: TicketStatus
    detail: str | None = None


def _to_response(result: SubmissionResult) -> JSONResponse:
    if isinstance(result, Submitted):
        body = SubmissionResponse(ticket_id=result.ticket_id, status=TicketStatus.PENDING)
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=body.model_dump(mode="json"))
    if isinstance(result, SubmittedDegraded):
        body = SubmissionResponse(ticket_id=result.ticket_id, status=TicketStatus.ERROR, detail=result.detail)
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body.model_dump(mode="json"))
    if isinstance(result, ValidationFailed):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.reason)
    if isinstance(result, PersistenceFailed):
        raise HTTPException(status_code=_PERSISTENCE_STATUS[result.kind], detail="Ticket could not be saved")
    if isinstance(result, ConfigurationFailed):
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.message)
    raise TypeError(f"Unhandled submission result: {result!r}")


@router.post(
    "/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit tickets for verification",
)
async def submit_tickets(service: TicketServiceDep, payload: dict[str, Any] = Body(...)) -> JSONResponse:
    result = await service.submit(payload)
    return _to_response(result)
