"""
Workflows Infrastructure Layer
===============================

- Models: the workflows table
- Repositories: active workflow lookup by tenant and trigger
"""

from ticketflow.workflows.infrastructure.models import WorkflowModel
from ticketflow.workflows.infrastructure.repositories import SQLAlchemyWorkflowRepository

__all__ = ["WorkflowModel", "SQLAlchemyWorkflowRepository"]
