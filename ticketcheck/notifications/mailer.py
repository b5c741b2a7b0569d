from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SentMessage:
    message_id: str


@dataclass(frozen=True, slots=True)
class ProviderError:
    """Delivery failure reported by the email API or the transport."""

    status_code: int | None
    body: str

    @property
    def detail(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{self.body}"


SendResult = Union[SentMessage, ProviderError]


class Notifier(Protocol):
    async def send(self, to: str, subject: str, html: str) -> SendResult:
        ...


def _extract_message_id(response: httpx.Response) -> str:
    try:
        data: Any = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict):
        value = data.get("messageId") or data.get("message_id") or data.get("id")
        if value is not None:
            return str(value)
    return ""


class HttpMailer:
    """Client for a transactional email HTTP API (Brevo-compatible payload)."""

    def __init__(
        self,
        *,
        api_url: str,
        api_key: str,
        sender: str,
        sender_name: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._sender = sender
        self._sender_name = sender_name
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _payload(self, to: str, subject: str, html: str) -> dict[str, Any]:
        sender: dict[str, str] = {"email": self._sender}
        if self._sender_name:
            sender["name"] = self._sender_name
        return {
            "sender": sender,
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html,
        }

    async def send(self, to: str, subject: str, html: str) -> SendResult:
        headers = {
            "Accept": "application/json",
            "api-key": self._api_key,
        }
        try:
            response = await self._client.post(self._api_url, json=self._payload(to, subject, html), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Email transport error for %s: %s", to, exc)
            return ProviderError(status_code=None, body=str(exc) or exc.__class__.__name__)

        if response.status_code >= 400:
            return ProviderError(status_code=response.status_code, body=response.text)

        return SentMessage(message_id=_extract_message_id(response))

    async def close(self) -> None:
        await self._client.aclose()
