"""
SLA Application Services
=========================

Resolves SLA deadlines for a new ticket from the tenant's policy table,
falling back to the built-in defaults.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from ticketflow.sla.domain import SLACalculator, SLADeadlines, SLADefaults, SLATargets


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLAPolicyRepository(ABC):
    """Interface for tenant SLA policy lookup."""

    @abstractmethod
    async def get_targets(self, tenant_id: UUID, priority: str) -> Optional[SLATargets]:
        """Targets for ``(tenant_id, priority)``, or None when no policy exists."""


# ========== Application Services ==========

class SLAResolver:
    """Computes first-response and resolution deadlines."""

    def __init__(
        self,
        policy_repository: ISLAPolicyRepository,
        defaults: Optional[SLADefaults] = None
    ):
        self._policies = policy_repository
        self._defaults = defaults or SLADefaults()

    async def resolve(
        self,
        tenant_id: UUID,
        priority: str,
        now: datetime
    ) -> SLADeadlines:
        """
        Deadlines for a ticket of ``priority`` created at ``now``.

        A tenant policy row wins; otherwise the default table applies.
        """
        targets = await self._policies.get_targets(tenant_id, priority)
        if targets is None:
            targets = self._defaults.targets_for(priority)
        return SLACalculator.calculate_deadlines(now, targets)
