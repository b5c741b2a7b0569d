"""Logging and tracing setup for the ticket verification service.

Every record handled by the stream handler carries a ``trace_id`` attribute
holding the active OpenTelemetry trace id (``-`` outside a recorded span), so
submission and status update log lines can be matched with their spans.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ticketcheck.core.config import Settings

APP_LOGGER = "ticketcheck"

# Client libraries that log every request at INFO.
_QUIET_LOGGERS = {"httpx": "WARNING", "httpcore": "WARNING", "asyncpg": "WARNING"}

_TRACER_INITIALISED = False


def _pairs(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    pairs: dict[str, str] = {}
    for item in raw.split(","):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        if key.strip():
            pairs[key.strip()] = value.strip()
    return pairs


def parse_otlp_headers(header_string: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` exporter headers."""

    return _pairs(header_string)


def parse_logger_levels(raw: str | None) -> dict[str, str]:
    """Parse ``logger=LEVEL`` overrides, dropping unknown level names."""

    levels: dict[str, str] = {}
    for name, level in _pairs(raw).items():
        level = level.upper()
        if isinstance(logging.getLevelName(level), int):
            levels[name] = level
    return levels


class TraceContextFilter(logging.Filter):
    """Attach the current trace id to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "-"
        return True


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the stream handler and per-logger levels, return the app logger."""

    level = settings.log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    loggers: dict[str, dict[str, object]] = {name: {"level": lvl} for name, lvl in _QUIET_LOGGERS.items()}
    loggers[APP_LOGGER] = {"level": level}
    for name, override in parse_logger_levels(settings.log_levels).items():
        loggers[name] = {"level": override}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "trace_context": {"()": TraceContextFilter},
            },
            "formatters": {
                "default": {"format": settings.log_format},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["trace_context"],
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
            "loggers": loggers,
        }
    )
    return logging.getLogger(APP_LOGGER)


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP tracer provider when tracing is enabled."""

    global _TRACER_INITIALISED

    if _TRACER_INITIALISED or not settings.otel_enabled:
        return None

    resource = Resource(attributes={"service.name": settings.otel_service_name})
    provider = TracerProvider(resource=resource)

    exporter_kwargs: dict[str, object] = {}
    if settings.otel_exporter_otlp_endpoint:
        exporter_kwargs["endpoint"] = settings.otel_exporter_otlp_endpoint
    headers = parse_otlp_headers(settings.otel_exporter_otlp_headers)
    if headers:
        exporter_kwargs["headers"] = headers

    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_kwargs)))

    trace.set_tracer_provider(provider)
    _TRACER_INITIALISED = True
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is None:
        return

    global _TRACER_INITIALISED
    provider.shutdown()
    _TRACER_INITIALISED = False
