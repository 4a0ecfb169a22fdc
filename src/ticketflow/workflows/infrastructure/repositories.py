"""
Workflow Infrastructure Repositories
=====================================
"""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketflow.workflows.application import IWorkflowRepository
from ticketflow.workflows.domain import Workflow
from ticketflow.workflows.infrastructure.models import WorkflowModel


class SQLAlchemyWorkflowRepository(IWorkflowRepository):
    """Reads workflows for the rule engine."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_active(self, tenant_id: UUID, trigger_event: str) -> List[Workflow]:
        stmt = (
            select(WorkflowModel)
            .where(
                WorkflowModel.tenant_id == tenant_id,
                WorkflowModel.trigger_event == trigger_event,
                WorkflowModel.is_active.is_(True),
            )
            .order_by(WorkflowModel.created_at.asc(), WorkflowModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [
            Workflow(
                id=model.id,
                tenant_id=model.tenant_id,
                name=model.name,
                trigger_event=model.trigger_event,
                is_active=model.is_active,
                conditions=model.conditions or [],
                actions=model.actions or [],
                created_at=model.created_at,
            )
            for model in result.scalars().all()
        ]
