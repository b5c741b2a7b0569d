from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

import asyncpg

from .models import LineItem, Ticket, TicketDraft
from .results import PersistenceErrorKind, StoreFailure
from .state import TicketStatus

logger = logging.getLogger(__name__)


class TicketStore(Protocol):
    async def create_ticket(
        self, *, ticket_id: UUID, draft: TicketDraft, status: TicketStatus, submitted_at: datetime
    ) -> Ticket | StoreFailure:
        ...

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        ...

    async def update_status(
        self,
        ticket_id: UUID,
        *,
        status: TicketStatus,
        admin_notes: str | None,
        validated_at: datetime | None = None,
        expected_status: TicketStatus | None = None,
    ) -> Ticket | None:
        ...

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        ...


class TicketRepository:
    """PostgreSQL access layer for ticket records."""

    _CREATE_TICKETS_SQL = """
    CREATE TABLE IF NOT EXISTS tickets (
        id UUID PRIMARY KEY,
        client_email TEXT NOT NULL CHECK (client_email <> ''),
        currency TEXT NOT NULL CHECK (currency <> ''),
        line_items JSONB NOT NULL CHECK (jsonb_array_length(line_items) BETWEEN 1 AND 3),
        status TEXT NOT NULL CHECK (status IN ('pending', 'validated', 'rejected', 'error')),
        submitted_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        validated_at TIMESTAMPTZ NULL,
        admin_notes TEXT NULL
    )
    """

    _CREATE_SUBMITTED_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS tickets_submitted_at_idx ON tickets (submitted_at DESC)
    """

    _INSERT_TICKET_SQL = """
    INSERT INTO tickets (id, client_email, currency, line_items, status, submitted_at)
    VALUES ($1, $2, $3, $4::jsonb, $5, $6)
    RETURNING id, client_email, currency, line_items, status, submitted_at, validated_at, admin_notes
    """

    _SELECT_TICKET_SQL = """
    SELECT id, client_email, currency, line_items, status, submitted_at, validated_at, admin_notes
    FROM tickets
    WHERE id = $1
    """

    _LIST_TICKETS_SQL = """
    SELECT id, client_email, currency, line_items, status, submitted_at, validated_at, admin_notes
    FROM tickets
    ORDER BY submitted_at DESC
    """

    _LIST_TICKETS_BY_STATUS_SQL = """
    SELECT id, client_email, currency, line_items, status, submitted_at, validated_at, admin_notes
    FROM tickets
    WHERE status = $1
    ORDER BY submitted_at DESC
    """

    # Only lifecycle columns are writable after creation. When an expected status
    # is given the row is only touched while it still holds that status.
    _UPDATE_STATUS_SQL = """
    UPDATE tickets
    SET status = $2,
        admin_notes = $3,
        validated_at = COALESCE($4, validated_at)
    WHERE id = $1 AND ($5::text IS NULL OR status = $5)
    RETURNING id, client_email, currency, line_items, status, submitted_at, validated_at, admin_notes
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_TICKETS_SQL)
            await connection.execute(self._CREATE_SUBMITTED_INDEX_SQL)

    async def create_ticket(
        self,
        *,
        ticket_id: UUID,
        draft: TicketDraft,
        status: TicketStatus,
        submitted_at: datetime,
    ) -> Ticket | StoreFailure:
        try:
            async with self._pool.acquire() as connection:
                row = await connection.fetchrow(
                    self._INSERT_TICKET_SQL,
                    ticket_id,
                    draft.client_email,
                    draft.currency,
                    _dump_line_items(draft.line_items),
                    status.value,
                    submitted_at,
                )
        except asyncpg.exceptions.UniqueViolationError as exc:
            return StoreFailure(PersistenceErrorKind.CONFLICT, str(exc))
        except (asyncpg.exceptions.IntegrityConstraintViolationError, asyncpg.exceptions.DataError) as exc:
            return StoreFailure(PersistenceErrorKind.VALIDATION, str(exc))
        except (asyncpg.PostgresError, asyncpg.exceptions.InterfaceError, OSError) as exc:
            logger.exception("Ticket insert failed")
            return StoreFailure(PersistenceErrorKind.UNKNOWN, str(exc))
        if row is None:
            return StoreFailure(PersistenceErrorKind.UNKNOWN, "Insert returned no row")
        return self._row_to_ticket(row)

    async def get_ticket(self, ticket_id: UUID) -> Ticket | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_TICKET_SQL, ticket_id)
            if row is None:
                return None
            return self._row_to_ticket(row)

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        async with self._pool.acquire() as connection:
            if status is None:
                rows = await connection.fetch(self._LIST_TICKETS_SQL)
            else:
                rows = await connection.fetch(self._LIST_TICKETS_BY_STATUS_SQL, status.value)
            return [self._row_to_ticket(row) for row in rows]

    async def update_status(
        self,
        ticket_id: UUID,
        *,
        status: TicketStatus,
        admin_notes: str | None,
        validated_at: datetime | None = None,
        expected_status: TicketStatus | None = None,
    ) -> Ticket | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(
                self._UPDATE_STATUS_SQL,
                ticket_id,
                status.value,
                admin_notes,
                validated_at,
                expected_status.value if expected_status is not None else None,
            )
            if row is None:
                return None
            return self._row_to_ticket(row)

    @staticmethod
    def _row_to_ticket(row: Any) -> Ticket:
        return Ticket(
            id=_to_uuid(row["id"]),
            client_email=str(row["client_email"]),
            currency=str(row["currency"]),
            line_items=_load_line_items(row["line_items"]),
            status=TicketStatus(str(row["status"])),
            submitted_at=row["submitted_at"],
            validated_at=row["validated_at"],
            admin_notes=row["admin_notes"],
        )


def _dump_line_items(items: tuple[LineItem, ...]) -> str:
    return json.dumps([{"type": item.type, "code": item.code, "amount": str(item.amount)} for item in items])


def _load_line_items(value: Any) -> tuple[LineItem, ...]:
    data = json.loads(value) if isinstance(value, (str, bytes)) else value
    return tuple(
        LineItem(type=str(entry["type"]), code=str(entry["code"]), amount=Decimal(str(entry["amount"])))
        for entry in data or []
    )


def _to_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    return UUID(str(value))
