"""
Test configuration and fixtures.

Provides:
- A file-backed SQLite database per test (aiosqlite), schema created from the models
- A store factory and a fixed clock
- A recording email service
- A fully wired TicketService and an HTTPX AsyncClient over the FastAPI app
"""

import uuid
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ticketflow.config import Settings
from ticketflow.infrastructure.database import build_session_maker, create_tables
from ticketflow.infrastructure.database.store import session_store_factory
from ticketflow.routing.infrastructure import AssignmentRuleModel, TeamModel
from ticketflow.shared.infrastructure.background import BackgroundTaskRunner
from ticketflow.sla.infrastructure import SLAPolicyModel
from ticketflow.tickets.application import IEmailService, TicketService
from ticketflow.tickets.infrastructure import EmailTemplateModel, TicketModel
from ticketflow.workflows.application import WorkflowEngine
from ticketflow.workflows.infrastructure import WorkflowModel


FIXED_NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def naive(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo on the way back; compare wall-clock UTC values."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RecordingEmailService(IEmailService):
    """Email service that records every send instead of delivering it."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def send_template(self, recipient: str, template_name: str, context: Dict[str, Any]) -> bool:
        self.sent.append({"to": recipient, "template": template_name, "context": dict(context)})
        return True

    def templates(self) -> List[str]:
        return [item["template"] for item in self.sent]


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ticketflow.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(engine)


@pytest.fixture
def store_factory(session_maker):
    return session_store_factory(session_maker)


@pytest.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and asserting directly against the tables."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def actor_id() -> uuid.UUID:
    return uuid.uuid4()


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
async def background() -> AsyncGenerator[BackgroundTaskRunner, None]:
    runner = BackgroundTaskRunner()
    yield runner
    await runner.drain(timeout=5)


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def workflow_engine(store_factory, clock) -> WorkflowEngine:
    return WorkflowEngine(store_factory, clock=clock)


@pytest.fixture
def ticket_service(store_factory, background, workflow_engine, email_service, clock) -> TicketService:
    return TicketService(
        store_factory=store_factory,
        background=background,
        workflow_engine=workflow_engine,
        email_service=email_service,
        bulk_max_ids=100,
        frontend_url="https://support.example.com/",
        clock=clock,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="development", webhook_secret="hook-secret")


@pytest.fixture
async def client(settings, ticket_service, background) -> AsyncGenerator[AsyncClient, None]:
    from ticketflow.main import create_app

    app = create_app(settings)
    app.state.ticket_service = ticket_service
    app.state.background = background

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# =============================================================================
# Seed helpers
# =============================================================================

async def seed_team(db: AsyncSession, tenant_id: uuid.UUID, name: str) -> uuid.UUID:
    team = TeamModel(id=uuid.uuid4(), tenant_id=tenant_id, name=name)
    db.add(team)
    await db.commit()
    return team.id


async def seed_rule(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    keyword: str,
    user_id: uuid.UUID,
    created_at: Optional[datetime] = None,
    is_active: bool = True
) -> uuid.UUID:
    rule = AssignmentRuleModel(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        keyword=keyword,
        assigned_user_id=user_id,
        is_active=is_active,
        created_at=created_at or FIXED_NOW,
    )
    db.add(rule)
    await db.commit()
    return rule.id


async def seed_sla_policy(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    priority: str,
    response_minutes: int,
    resolution_minutes: int
) -> None:
    db.add(SLAPolicyModel(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        priority=priority,
        response_time_minutes=response_minutes,
        resolution_time_minutes=resolution_minutes,
    ))
    await db.commit()


async def seed_workflow(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    trigger_event: str,
    conditions: List[Dict[str, Any]],
    actions: List[Dict[str, Any]],
    name: str = "Test workflow",
    is_active: bool = True
) -> uuid.UUID:
    workflow = WorkflowModel(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        name=name,
        trigger_event=trigger_event,
        is_active=is_active,
        conditions=conditions,
        actions=actions,
    )
    db.add(workflow)
    await db.commit()
    return workflow.id


async def seed_email_template(
    db: AsyncSession,
    stage_name: str,
    subject_template: str,
    body_html: Optional[str] = None,
    body_text: Optional[str] = None,
    is_active: bool = True
) -> None:
    db.add(EmailTemplateModel(
        id=uuid.uuid4(),
        stage_name=stage_name,
        subject_template=subject_template,
        body_html=body_html,
        body_text=body_text,
        is_active=is_active,
    ))
    await db.commit()


async def seed_ticket(db: AsyncSession, tenant_id: uuid.UUID, **overrides: Any) -> TicketModel:
    values: Dict[str, Any] = {
        "id": uuid.uuid4(),
        "tenant_id": tenant_id,
        "code": f"TCK-{uuid.uuid4().int % 900000 + 100000}",
        "subject": "Seeded ticket",
        "description": "",
        "priority": "medium",
        "status": "new",
        "channel": "web",
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    ticket = TicketModel(**values)
    db.add(ticket)
    await db.commit()
    return ticket


async def fetch_ticket(db: AsyncSession, ticket_id: uuid.UUID) -> Optional[TicketModel]:
    """Re-read a ticket, bypassing the identity map."""
    return await db.get(TicketModel, ticket_id, populate_existing=True)


async def fetch_all(db: AsyncSession, model, *criteria) -> list:
    result = await db.execute(
        select(model).where(*criteria).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
