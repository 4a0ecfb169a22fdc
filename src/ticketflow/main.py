"""
Ticketflow - Main Application
==============================

Ticket lifecycle and workflow automation service.

Modules:
- Tickets: create / update / bulk update with a status state machine
- SLA: deadline resolution from tenant policies and defaults
- Routing: keyword-based auto-assignment
- Workflows: tenant trigger -> condition -> action rules

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, state machine, rule evaluation
- Infrastructure: Database, email provider
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketflow.config import Settings, get_settings
from ticketflow.core import ApplicationException
from ticketflow.infrastructure.database import (
    close_database,
    create_tables,
    get_session_maker,
    init_database,
)
from ticketflow.infrastructure.database.store import session_store_factory
from ticketflow.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from ticketflow.shared.infrastructure.background import BackgroundTaskRunner
from ticketflow.shared.infrastructure.logging import get_logger, setup_logging
from ticketflow.sla.infrastructure import load_sla_defaults
from ticketflow.tickets.application import TicketService
from ticketflow.tickets.infrastructure import EmailProviderClient, TemplateEmailService
from ticketflow.tickets.interfaces import tickets_router
from ticketflow.workflows.application import WorkflowEngine

logger = get_logger(__name__)

# Seconds to wait for in-flight workflow/email tasks at shutdown
SHUTDOWN_DRAIN_TIMEOUT = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database (and tables, when enabled)
    3. Load SLA defaults
    4. Wire the email provider, workflow engine and ticket service

    SHUTDOWN:
    1. Drain background tasks
    2. Close the email client
    3. Close database connections
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Ticketflow", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database(settings.database_url)
    if settings.create_tables_on_startup:
        logger.info("Creating database tables")
        await create_tables()

    store_factory = session_store_factory(get_session_maker())
    sla_defaults = load_sla_defaults(settings.sla_config_path)

    background = BackgroundTaskRunner()
    email_provider = EmailProviderClient(
        api_url=settings.email_api_url,
        api_key=settings.email_api_key,
        sender=settings.email_from,
        timeout=settings.email_timeout_seconds,
    )
    email_service = TemplateEmailService(store_factory, email_provider)
    workflow_engine = WorkflowEngine(store_factory)

    app.state.background = background
    app.state.ticket_service = TicketService(
        store_factory=store_factory,
        background=background,
        workflow_engine=workflow_engine,
        email_service=email_service,
        sla_defaults=sla_defaults,
        bulk_max_ids=settings.bulk_update_max_ids,
        frontend_url=settings.frontend_url,
    )

    logger.info("Ticketflow started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Ticketflow")
    await background.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
    await email_provider.close()
    await close_database()
    logger.info("Ticketflow shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Ticketflow API",
        description="""
        ## Ticket Lifecycle & Workflow Automation

        **Endpoints:**
        - `POST /tickets` - Create a ticket (SLA deadlines and auto-assignment applied)
        - `PUT /tickets/{id}` - Update a ticket (status changes follow the state machine)
        - `PUT /tickets/bulk` - Apply one change set to up to 100 tickets
        - `GET /tickets/{id}/transitions` - Allowed next statuses
        - `GET /tickets/{id}/audit` - Audit trail
        - `POST /tickets/webhooks/email` - Inbound email channel
        - `POST /tickets/public` - Public support form

        **Status transitions:**

        | From     | To                         |
        |----------|----------------------------|
        | new      | open, closed               |
        | open     | pending, resolved, closed  |
        | pending  | open, resolved, closed     |
        | resolved | closed, open               |
        | closed   | open                       |
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last runs first: correlation id is set before request logging
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(tickets_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers and orchestrators."""
        background = getattr(app.state, "background", None)
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": {
                "ticket_service": "ready" if getattr(app.state, "ticket_service", None) else "not_initialized",
                "background_tasks": background.pending if background else 0,
            }
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Ticketflow",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "ticketflow.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
    )
