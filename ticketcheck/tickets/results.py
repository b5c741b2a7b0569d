"""Outcome types returned by the ticket workflows.

Each workflow returns exactly one variant of a closed union. Callers switch on
the concrete type; nothing here is raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union
from uuid import UUID

from .models import Ticket
from .state import TicketStatus


class PersistenceErrorKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class StoreFailure:
    """Store-level rejection of a write."""

    kind: PersistenceErrorKind
    detail: str


# Submission outcomes


@dataclass(frozen=True, slots=True)
class ConfigurationFailed:
    missing: tuple[str, ...]

    @property
    def message(self) -> str:
        return "Missing configuration: " + ", ".join(self.missing)


@dataclass(frozen=True, slots=True)
class ValidationFailed:
    reason: str


@dataclass(frozen=True, slots=True)
class PersistenceFailed:
    kind: PersistenceErrorKind
    detail: str


@dataclass(frozen=True, slots=True)
class Submitted:
    ticket_id: UUID


@dataclass(frozen=True, slots=True)
class SubmittedDegraded:
    """Ticket stored but the client confirmation email was not delivered."""

    ticket_id: UUID
    detail: str


SubmissionResult = Union[ConfigurationFailed, ValidationFailed, PersistenceFailed, Submitted, SubmittedDegraded]


# Status update outcomes


@dataclass(frozen=True, slots=True)
class InvalidStatus:
    requested: str


@dataclass(frozen=True, slots=True)
class TicketMissing:
    ticket_id: UUID


@dataclass(frozen=True, slots=True)
class InvalidTransition:
    current: TicketStatus
    requested: TicketStatus


@dataclass(frozen=True, slots=True)
class StatusUpdated:
    ticket: Ticket


@dataclass(frozen=True, slots=True)
class StatusEmailFailed:
    """Status change committed, final-status email not delivered."""

    ticket: Ticket
    detail: str


StatusUpdateResult = Union[InvalidStatus, TicketMissing, InvalidTransition, StatusUpdated, StatusEmailFailed]
