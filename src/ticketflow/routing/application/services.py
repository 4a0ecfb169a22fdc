"""
Routing Application Services
=============================

Auto-assignment of new tickets to a user (tenant keyword rules) or a
default team (built-in keyword buckets).
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ticketflow.routing.domain import (
    AssignmentRule,
    RoutingDecision,
    default_team_name,
    first_matching_rule,
    routing_text,
)
from ticketflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IAssignmentDirectory(ABC):
    """Interface for assignment rules and the tenant team directory."""

    @abstractmethod
    async def list_active_rules(self, tenant_id: UUID) -> List[AssignmentRule]:
        """Active rules for the tenant, oldest first."""

    @abstractmethod
    async def find_team_id_by_name(self, tenant_id: UUID, name: str) -> Optional[UUID]:
        """Id of the tenant's team with exactly ``name``, or None."""


# ========== Application Services ==========

class AutoAssignmentRouter:
    """Decides the initial assignee of a ticket."""

    def __init__(self, directory: IAssignmentDirectory):
        self._directory = directory

    async def route(
        self,
        tenant_id: UUID,
        subject: Optional[str],
        description: Optional[str]
    ) -> RoutingDecision:
        text = routing_text(subject, description)

        rules = await self._directory.list_active_rules(tenant_id)
        rule = first_matching_rule(text, rules)
        if rule is not None:
            logger.info(
                "Ticket routed by assignment rule",
                extra={"tenant_id": str(tenant_id), "rule_id": str(rule.id), "keyword": rule.keyword}
            )
            # A rule match suppresses team defaults
            return RoutingDecision(assigned_user_id=rule.assigned_user_id)

        team_name = default_team_name(text)
        team_id = await self._directory.find_team_id_by_name(tenant_id, team_name)
        if team_id is None:
            logger.info(
                "Default team not found, ticket left unassigned",
                extra={"tenant_id": str(tenant_id), "team": team_name}
            )
        return RoutingDecision(assigned_team_id=team_id)
