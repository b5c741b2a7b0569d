from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from conftest import make_ticket
from ticketcheck.main import build_ticket_service
from ticketcheck.core.config import Settings
from ticketcheck.tickets.results import StatusUpdated, Submitted
from ticketcheck.tickets.service import TicketNotFoundError, TicketService
from ticketcheck.tickets.state import TicketStatus
from ticketcheck.tickets.status_update import StatusUpdateWorkflow
from ticketcheck.tickets.submission import SubmissionWorkflow


def _service(store, notifier, notification_settings) -> TicketService:
    return TicketService(
        repository=store,
        submission=SubmissionWorkflow(store, notifier, notification_settings),
        status_update=StatusUpdateWorkflow(store, notifier),
    )


@pytest.mark.asyncio
async def test_submit_then_validate_round_trip(store, notifier, notification_settings):
    service = _service(store, notifier, notification_settings)

    submitted = await service.submit(
        {"email": "client@example.com", "devise": "EUR", "tickets": [{"type": "PCS", "code": "A1B2C3D4", "amount": "25"}]}
    )
    assert isinstance(submitted, Submitted)

    updated = await service.update_status(submitted.ticket_id, "validated", "checked")

    assert isinstance(updated, StatusUpdated)
    assert (await service.get_ticket(submitted.ticket_id)).status is TicketStatus.VALIDATED
    # confirmation, admin notice, final status
    assert len(notifier.sent) == 3
    assert "A1****D4" in notifier.sent[-1].html


@pytest.mark.asyncio
async def test_list_tickets_newest_first(store, notifier, notification_settings):
    older = store.add(make_ticket())
    newer = make_ticket(status=TicketStatus.VALIDATED)
    newer.submitted_at = older.submitted_at + timedelta(minutes=5)
    store.add(newer)
    service = _service(store, notifier, notification_settings)

    assert [t.id for t in await service.list_tickets()] == [newer.id, older.id]
    assert [t.id for t in await service.list_tickets(status=TicketStatus.PENDING)] == [older.id]


@pytest.mark.asyncio
async def test_get_ticket_raises_when_missing(store, notifier, notification_settings):
    with pytest.raises(TicketNotFoundError):
        await _service(store, notifier, notification_settings).get_ticket(uuid4())


def test_build_ticket_service_passes_notification_settings(store, notifier):
    settings = Settings(mail_sender="tickets@example.com", admin_email="admin@example.com", mail_api_key="k")

    service = build_ticket_service(settings, store, notifier)

    assert service.repository is store
    assert service.submission._settings == settings.notification_settings()
