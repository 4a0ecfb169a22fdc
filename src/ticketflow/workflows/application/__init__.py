"""
Workflows Application Layer
============================

Contains the workflow rule engine and the repository interface it reads.
"""

from ticketflow.workflows.application.services import WorkflowEngine, IWorkflowRepository

__all__ = ["WorkflowEngine", "IWorkflowRepository"]
