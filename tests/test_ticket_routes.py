from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from conftest import make_ticket
from ticketcheck.core.config import Settings, get_settings
from ticketcheck.dependencies.tickets import get_ticket_service
from ticketcheck.main import create_app
from ticketcheck.tickets.results import (
    ConfigurationFailed,
    InvalidStatus,
    InvalidTransition,
    PersistenceErrorKind,
    PersistenceFailed,
    StatusEmailFailed,
    StatusUpdated,
    Submitted,
    SubmittedDegraded,
    TicketMissing,
    ValidationFailed,
)
from ticketcheck.tickets.service import TicketNotFoundError
from ticketcheck.tickets.state import TicketStatus

ADMIN_AUTH = ("admin", "s3cret")


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[get_ticket_service] = override_service
    app.dependency_overrides[get_settings] = lambda: Settings(admin_username="admin", admin_password="s3cret")

    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_ping_reports_missing_service():
    client = TestClient(create_app())
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "tickets": "unavailable"}


def test_submit_returns_created(ticket_client):
    client, service = ticket_client
    ticket_id = uuid4()
    service.submit = AsyncMock(return_value=Submitted(ticket_id))
    payload = {"email": "client@example.com", "devise": "EUR", "tickets": [{"type": "PCS", "code": "1234", "amount": "5"}]}

    response = client.post("/submit", json=payload)

    assert response.status_code == 201
    assert response.json() == {"ticket_id": str(ticket_id), "status": "pending", "detail": None}
    service.submit.assert_awaited_with(payload)


def test_submit_degraded_is_accepted(ticket_client):
    client, service = ticket_client
    ticket_id = uuid4()
    service.submit = AsyncMock(return_value=SubmittedDegraded(ticket_id, "[500] down"))

    response = client.post("/submit", json={})

    assert response.status_code == 202
    assert response.json()["status"] == "error"
    assert response.json()["detail"] == "[500] down"


@pytest.mark.parametrize(
    ("result", "status_code"),
    [
        (ValidationFailed("Missing required field: email"), 400),
        (PersistenceFailed(PersistenceErrorKind.VALIDATION, "check"), 422),
        (PersistenceFailed(PersistenceErrorKind.CONFLICT, "dup"), 409),
        (PersistenceFailed(PersistenceErrorKind.UNKNOWN, "?"), 500),
        (ConfigurationFailed(("mail_api_key",)), 500),
    ],
)
def test_submit_failures_map_to_status_codes(ticket_client, result, status_code):
    client, service = ticket_client
    service.submit = AsyncMock(return_value=result)

    response = client.post("/submit", json={})

    assert response.status_code == status_code


def test_validation_message_reaches_the_client(ticket_client):
    client, service = ticket_client
    service.submit = AsyncMock(return_value=ValidationFailed("Missing required field: email"))

    response = client.post("/submit", json={})

    assert response.json()["detail"] == "Missing required field: email"


def test_admin_routes_require_credentials(ticket_client):
    client, service = ticket_client
    service.list_tickets = AsyncMock(return_value=[])

    assert client.get("/admin/tickets").status_code == 401
    response = client.get("/admin/tickets", auth=("admin", "wrong"))
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Basic"
    service.list_tickets.assert_not_awaited()


def test_admin_routes_unavailable_without_configured_credentials(ticket_client):
    client, service = ticket_client
    client.app.dependency_overrides[get_settings] = lambda: Settings(admin_username="", admin_password="")

    response = client.get("/admin/tickets", auth=ADMIN_AUTH)

    assert response.status_code == 503


def test_list_tickets_filters_by_status(ticket_client):
    client, service = ticket_client
    ticket = make_ticket(status=TicketStatus.VALIDATED)
    service.list_tickets = AsyncMock(return_value=[ticket])

    response = client.get("/admin/tickets", params={"status": "validated"}, auth=ADMIN_AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body[0]["id"] == str(ticket.id)
    assert body[0]["status"] == "validated"
    assert body[0]["line_items"][0]["code"] == "12345678"
    service.list_tickets.assert_awaited_with(status=TicketStatus.VALIDATED)


def test_get_ticket_not_found(ticket_client):
    client, service = ticket_client
    service.get_ticket = AsyncMock(side_effect=TicketNotFoundError("nope"))

    response = client.get(f"/admin/tickets/{uuid4()}", auth=ADMIN_AUTH)

    assert response.status_code == 404


def test_change_status_success(ticket_client):
    client, service = ticket_client
    ticket = make_ticket(status=TicketStatus.REJECTED, admin_notes="used")
    service.update_status = AsyncMock(return_value=StatusUpdated(ticket))

    response = client.post(
        f"/admin/tickets/{ticket.id}/status",
        json={"status": "rejected", "adminNotes": "used"},
        auth=ADMIN_AUTH,
    )

    assert response.status_code == 200
    assert response.json()["admin_notes"] == "used"
    service.update_status.assert_awaited_with(ticket.id, "rejected", "used")


def test_change_status_email_failure_returns_ticket_with_bad_gateway(ticket_client):
    client, service = ticket_client
    ticket = make_ticket(status=TicketStatus.VALIDATED)
    service.update_status = AsyncMock(return_value=StatusEmailFailed(ticket, "[500] down"))

    response = client.post(f"/admin/tickets/{ticket.id}/status", json={"status": "validated"}, auth=ADMIN_AUTH)

    assert response.status_code == 502
    body = response.json()
    assert body["ticket"]["status"] == "validated"
    assert "[500] down" in body["detail"]


@pytest.mark.parametrize(
    ("result", "status_code"),
    [
        (InvalidStatus("archived"), 400),
        (TicketMissing(uuid4()), 404),
        (InvalidTransition(TicketStatus.VALIDATED, TicketStatus.REJECTED), 409),
    ],
)
def test_change_status_failures(ticket_client, result, status_code):
    client, service = ticket_client
    service.update_status = AsyncMock(return_value=result)

    response = client.post(f"/admin/tickets/{uuid4()}/status", json={"status": "archived"}, auth=ADMIN_AUTH)

    assert response.status_code == status_code
