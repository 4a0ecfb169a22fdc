"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the SLA module.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ticketflow.infrastructure.database import Base


class SLAPolicyModel(Base):
    """
    Tenant SLA policy for one priority.

    Maps to the 'sla_policies' table.
    """
    __tablename__ = "sla_policies"
    __table_args__ = (
        UniqueConstraint("tenant_id", "priority", name="uq_sla_policies_tenant_priority"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    priority: Mapped[str] = mapped_column(String(50), nullable=False)

    response_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
