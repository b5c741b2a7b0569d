"""Email delivery and rendering."""

from .mailer import HttpMailer, Notifier, ProviderError, SendResult, SentMessage
from .templates import EmailRenderer, RenderedEmail

__all__ = [
    "EmailRenderer",
    "HttpMailer",
    "Notifier",
    "ProviderError",
    "RenderedEmail",
    "SendResult",
    "SentMessage",
]
