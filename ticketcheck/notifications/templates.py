"""HTML bodies for the emails sent during a ticket's lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from jinja2 import DictLoader, Environment, StrictUndefined

from ticketcheck.tickets.formatting import format_amount, format_total, mask_code
from ticketcheck.tickets.models import Ticket
from ticketcheck.tickets.state import TicketStatus

_LINE_ITEMS_MACRO = """
{% macro line_items(ticket, masked) %}
<ul>
{% for item in ticket.line_items %}
  <li>{{ item.type }}: {{ item.code | mask if masked else item.code }} ({{ item.amount | money }} {{ ticket.currency }})</li>
{% endfor %}
</ul>
{% endmacro %}
"""

TEMPLATES: dict[str, str] = {
    "client_confirmation.html": _LINE_ITEMS_MACRO
    + """
<p>Hello,</p>
<p>We have received your ticket verification request <strong>{{ ticket.id }}</strong>.</p>
{{ line_items(ticket, False) }}
<p>Total: <strong>{{ total }}</strong></p>
<p>You will receive another email once your tickets have been checked.</p>
""",
    "admin_notification.html": """
<h2>New ticket verification request</h2>
<p>Ticket: <strong>{{ ticket.id }}</strong></p>
<p>Email: {{ ticket.client_email }}</p>
<p>Currency: {{ ticket.currency }}</p>
<p>Submitted: {{ ticket.submitted_at | timestamp }}</p>
<table border="1" cellpadding="4" cellspacing="0">
  <thead><tr><th>Type</th><th>Code</th><th>Amount</th></tr></thead>
  <tbody>
  {% for item in ticket.line_items %}
    <tr><td>{{ item.type }}</td><td>{{ item.code }}</td><td>{{ item.amount | money }}</td></tr>
  {% endfor %}
    <tr><td colspan="2"><strong>Total</strong></td><td><strong>{{ total }}</strong></td></tr>
  </tbody>
</table>
<p><a href="{{ panel_url }}">Open the admin panel</a></p>
""",
    "status_validated.html": _LINE_ITEMS_MACRO
    + """
<p>Hello,</p>
<p>Good news: your ticket {{ first_code | mask }} has been validated.</p>
{{ line_items(ticket, True) }}
<p>Currency: {{ ticket.currency }}</p>
""",
    "status_rejected.html": _LINE_ITEMS_MACRO
    + """
<p>Hello,</p>
<p>Unfortunately your ticket {{ first_code | mask }} could not be validated.</p>
{% if ticket.admin_notes %}
<div class="rejection-reason">
  <p><strong>Reason for rejection:</strong></p>
  <p>{{ ticket.admin_notes }}</p>
</div>
{% endif %}
{{ line_items(ticket, True) }}
<p>Currency: {{ ticket.currency }}</p>
""",
}


@dataclass(frozen=True, slots=True)
class RenderedEmail:
    subject: str
    html: str


def _timestamp(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


class EmailRenderer:
    """Render the client, admin and final-status emails for a ticket."""

    def __init__(self, templates: dict[str, str] | None = None) -> None:
        self._env = Environment(
            loader=DictLoader(templates or TEMPLATES),
            undefined=StrictUndefined,
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["mask"] = mask_code
        self._env.filters["money"] = format_amount
        self._env.filters["timestamp"] = _timestamp

    def _render(self, name: str, **context: object) -> str:
        return self._env.get_template(name).render(**context).strip()

    def client_confirmation(self, ticket: Ticket) -> RenderedEmail:
        html = self._render(
            "client_confirmation.html",
            ticket=ticket,
            total=format_total(ticket.line_items, ticket.currency),
        )
        return RenderedEmail(subject=f"Ticket verification request received ({ticket.id})", html=html)

    def admin_notification(self, ticket: Ticket, panel_url: str) -> RenderedEmail:
        html = self._render(
            "admin_notification.html",
            ticket=ticket,
            total=format_total(ticket.line_items, ticket.currency),
            panel_url=panel_url,
        )
        return RenderedEmail(subject=f"New ticket to verify from {ticket.client_email}", html=html)

    def final_status(self, ticket: Ticket) -> RenderedEmail:
        if ticket.status not in (TicketStatus.VALIDATED, TicketStatus.REJECTED):
            raise ValueError(f"No final-status email for status {ticket.status.value}")
        first_code = ticket.line_items[0].code if ticket.line_items else ""
        name = "status_validated.html" if ticket.status is TicketStatus.VALIDATED else "status_rejected.html"
        html = self._render(name, ticket=ticket, first_code=first_code)
        if ticket.status is TicketStatus.VALIDATED:
            subject = "Your ticket has been validated"
        else:
            subject = "Your ticket has been rejected"
        return RenderedEmail(subject=subject, html=html)
