"""
SLA Infrastructure Repositories
=================================

SQLAlchemy policy lookup and the YAML loader for the default SLA table.
"""

from pathlib import Path
from typing import Optional
from uuid import UUID

import yaml
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketflow.core import ConfigurationException
from ticketflow.sla.application import ISLAPolicyRepository
from ticketflow.sla.domain import SLADefaults, SLATargets
from ticketflow.sla.infrastructure.models import SLAPolicyModel
from ticketflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SQLAlchemySLAPolicyRepository(ISLAPolicyRepository):
    """Reads tenant SLA policies."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_targets(self, tenant_id: UUID, priority: str) -> Optional[SLATargets]:
        stmt = select(SLAPolicyModel).where(
            SLAPolicyModel.tenant_id == tenant_id,
            SLAPolicyModel.priority == priority,
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        if model is None:
            return None
        return SLATargets(
            response_minutes=model.response_time_minutes,
            resolution_minutes=model.resolution_time_minutes,
        )


def load_sla_defaults(path: Optional[Path]) -> SLADefaults:
    """
    Load the default SLA table.

    A missing file means the built-in table. Expected layout::

        default_targets:
          urgent: {response: 60, resolution: 240}
          high:   {response: 240, resolution: 1440}
    """
    if path is None or not Path(path).exists():
        logger.info("SLA config file not found, using built-in defaults", extra={"path": str(path)})
        return SLADefaults()

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    try:
        defaults = SLADefaults(**data)
    except ValueError as e:
        raise ConfigurationException(f"Invalid SLA config {path}: {e}") from e

    logger.info("Loaded SLA defaults", extra={"path": str(path)})
    return defaults
