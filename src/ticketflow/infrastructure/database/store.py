"""
SQLAlchemy Data Store
=====================

Binds every context's repositories to one ``AsyncSession``.

Importing this module also registers every ORM model on ``Base.metadata``.
"""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketflow.core import IDataStore, StoreFactory
from ticketflow.routing.infrastructure import SQLAlchemyAssignmentDirectory
from ticketflow.sla.infrastructure import SQLAlchemySLAPolicyRepository
from ticketflow.tickets.infrastructure import (
    SQLAlchemyAuditLogRepository,
    SQLAlchemyContactRepository,
    SQLAlchemyEmailTemplateRepository,
    SQLAlchemyNotificationRepository,
    SQLAlchemyTicketRepository,
)
from ticketflow.workflows.infrastructure import SQLAlchemyWorkflowRepository


class SQLAlchemyDataStore(IDataStore):
    """All repositories over a single session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tickets = SQLAlchemyTicketRepository(session)
        self.contacts = SQLAlchemyContactRepository(session)
        self.audit_logs = SQLAlchemyAuditLogRepository(session)
        self.notifications = SQLAlchemyNotificationRepository(session)
        self.email_templates = SQLAlchemyEmailTemplateRepository(session)
        self.sla_policies = SQLAlchemySLAPolicyRepository(session)
        self.assignment = SQLAlchemyAssignmentDirectory(session)
        self.workflows = SQLAlchemyWorkflowRepository(session)

    def transaction(self) -> AsyncContextManager:
        # Reads issued earlier on the session have already autobegun one
        if self.session.in_transaction():
            return _join(self.session)
        return self.session.begin()


@asynccontextmanager
async def _join(session: AsyncSession) -> AsyncIterator[None]:
    """Commit the session's open transaction on clean exit, roll back on error."""
    try:
        yield
    except BaseException:
        await session.rollback()
        raise
    await session.commit()


def session_store_factory(session_maker: async_sessionmaker[AsyncSession]) -> StoreFactory:
    """Store factory opening a fresh session per use."""

    @asynccontextmanager
    async def open_store() -> AsyncIterator[SQLAlchemyDataStore]:
        async with session_maker() as session:
            yield SQLAlchemyDataStore(session)

    return open_store
