"""
Routing Domain Layer
====================

Contains:
- Entities: AssignmentRule, RoutingDecision
- Pure matching functions for keyword rules and default team buckets
"""

from ticketflow.routing.domain.rules import (
    AssignmentRule,
    RoutingDecision,
    routing_text,
    first_matching_rule,
    default_team_name,
    BILLING_TEAM,
    TECHNICAL_TEAM,
    GENERAL_SUPPORT_TEAM,
)

__all__ = [
    "AssignmentRule",
    "RoutingDecision",
    "routing_text",
    "first_matching_rule",
    "default_team_name",
    "BILLING_TEAM",
    "TECHNICAL_TEAM",
    "GENERAL_SUPPORT_TEAM",
]
