"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA resolution:
- Models: SQLAlchemy ORM models
- Repositories: policy lookup and the YAML defaults loader
"""

from ticketflow.sla.infrastructure.models import SLAPolicyModel
from ticketflow.sla.infrastructure.repositories import (
    SQLAlchemySLAPolicyRepository,
    load_sla_defaults,
)

__all__ = [
    "SLAPolicyModel",
    "SQLAlchemySLAPolicyRepository",
    "load_sla_defaults",
]
