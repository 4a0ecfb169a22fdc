"""
Routing Infrastructure Layer
=============================

- Models: teams and assignment rules
- Repositories: the SQLAlchemy assignment directory
"""

from ticketflow.routing.infrastructure.models import TeamModel, AssignmentRuleModel
from ticketflow.routing.infrastructure.repositories import SQLAlchemyAssignmentDirectory

__all__ = ["TeamModel", "AssignmentRuleModel", "SQLAlchemyAssignmentDirectory"]
