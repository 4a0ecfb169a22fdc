"""
Routing Infrastructure Repositories
====================================

SQLAlchemy implementation of the assignment directory.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketflow.routing.application import IAssignmentDirectory
from ticketflow.routing.domain import AssignmentRule
from ticketflow.routing.infrastructure.models import AssignmentRuleModel, TeamModel


class SQLAlchemyAssignmentDirectory(IAssignmentDirectory):
    """Reads assignment rules and teams for one tenant."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_active_rules(self, tenant_id: UUID) -> List[AssignmentRule]:
        stmt = (
            select(AssignmentRuleModel)
            .where(
                AssignmentRuleModel.tenant_id == tenant_id,
                AssignmentRuleModel.is_active.is_(True),
            )
            .order_by(AssignmentRuleModel.created_at.asc(), AssignmentRuleModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [
            AssignmentRule(
                id=model.id,
                tenant_id=model.tenant_id,
                keyword=model.keyword,
                assigned_user_id=model.assigned_user_id,
                is_active=model.is_active,
                created_at=model.created_at,
            )
            for model in result.scalars().all()
        ]

    async def find_team_id_by_name(self, tenant_id: UUID, name: str) -> Optional[UUID]:
        stmt = (
            select(TeamModel.id)
            .where(TeamModel.tenant_id == tenant_id, TeamModel.name == name)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
