from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    ERROR = "error"


# Statuses an administrator may assign from the panel.
ADMIN_STATUSES: frozenset[TicketStatus] = frozenset({TicketStatus.VALIDATED, TicketStatus.REJECTED})


class TicketStateMachine:
    """Validate ticket lifecycle transitions."""

    # ``error`` has no outgoing transition until a recovery flow exists.
    _TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
        TicketStatus.PENDING: {TicketStatus.VALIDATED, TicketStatus.REJECTED, TicketStatus.ERROR},
        TicketStatus.VALIDATED: set(),
        TicketStatus.REJECTED: set(),
        TicketStatus.ERROR: set(),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.PENDING

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return not cls._TRANSITIONS.get(status)

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise ValueError(f"Invalid ticket status transition: {current.value} -> {new.value}")


def parse_admin_status(value: str | TicketStatus) -> TicketStatus | None:
    """Return the admin-assignable status named by ``value``, if any."""

    try:
        status = TicketStatus(value)
    except ValueError:
        return None
    return status if status in ADMIN_STATUSES else None
