import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI

from ticketcheck.api.routes import admin, ping, submissions
from ticketcheck.core.config import Settings, get_settings
from ticketcheck.core.logging import configure_logging, init_tracer, shutdown_tracer
from ticketcheck.notifications.mailer import HttpMailer, Notifier
from ticketcheck.notifications.templates import EmailRenderer
from ticketcheck.tickets.repository import TicketRepository, TicketStore
from ticketcheck.tickets.service import TicketService
from ticketcheck.tickets.status_update import StatusUpdateWorkflow
from ticketcheck.tickets.submission import SubmissionWorkflow

logger = logging.getLogger(__name__)


def build_ticket_service(settings: Settings, repository: TicketStore, mailer: Notifier) -> TicketService:
    """Wire the workflows around one repository and one mailer."""

    renderer = EmailRenderer()
    return TicketService(
        repository=repository,
        submission=SubmissionWorkflow(
            repository,
            mailer,
            settings.notification_settings(),
            renderer=renderer,
        ),
        status_update=StatusUpdateWorkflow(repository, mailer, renderer=renderer),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider

    mailer = HttpMailer(
        api_url=settings.mail_api_url,
        api_key=settings.mail_api_key,
        sender=settings.mail_sender,
        sender_name=settings.mail_sender_name,
        timeout=settings.mail_timeout,
    )
    pool: asyncpg.Pool | None = None
    app.state.ticket_service = None
    try:
        pool = await asyncpg.create_pool(dsn=settings.postgres_dsn, min_size=1, max_size=5)
        repository = TicketRepository(pool)
        await repository.ensure_schema()
        app.state.ticket_service = build_ticket_service(settings, repository, mailer)
    except (asyncpg.PostgresError, OSError):
        logger.exception("Ticket storage unavailable; ticket routes will answer 503")
        if pool is not None:
            await pool.close()
            pool = None
    try:
        yield
    finally:
        if pool is not None:
            await pool.close()
        await mailer.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(submissions.router)
    app.include_router(admin.router)
    return app


app = create_app()
