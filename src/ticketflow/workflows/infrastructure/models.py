"""
Workflow Infrastructure Models
===============================

SQLAlchemy ORM models for the workflows module.
"""

from datetime import datetime, timezone
from typing import Any, List
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ticketflow.infrastructure.database import Base


class WorkflowModel(Base):
    """
    Workflow rule.

    Maps to the 'workflows' table. Conditions and actions are stored as JSON
    descriptors.
    """
    __tablename__ = "workflows"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_event: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    conditions: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)
    actions: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_workflows_tenant_trigger", "tenant_id", "trigger_event", "is_active"),
    )
