"""Ticket domain models and lifecycle."""

from .models import LineItem, Ticket, TicketDraft
from .results import PersistenceErrorKind, StatusUpdateResult, SubmissionResult
from .state import TicketStateMachine, TicketStatus

__all__ = [
    "LineItem",
    "PersistenceErrorKind",
    "StatusUpdateResult",
    "SubmissionResult",
    "Ticket",
    "TicketDraft",
    "TicketStateMachine",
    "TicketStatus",
]
