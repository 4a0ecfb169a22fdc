"""
Routing Domain Rules
====================

Pure matching logic for auto-assignment.

Two tiers, first decisive tier wins:

1. Tenant keyword rules, in creation order. The first rule whose keyword is
   a case-insensitive substring of the ticket text assigns a user.
2. Built-in keyword buckets that pick a default team by name.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple
from uuid import UUID


BILLING_TEAM = "Billing"
TECHNICAL_TEAM = "Technical"
GENERAL_SUPPORT_TEAM = "General Support"

# Checked in order; the first bucket with a hit wins
TEAM_BUCKETS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (BILLING_TEAM, ("bill", "invoc", "payment")),
    (TECHNICAL_TEAM, ("error", "bug", "fail")),
)


@dataclass(frozen=True)
class AssignmentRule:
    """Tenant keyword rule that routes matching tickets to a user."""
    id: UUID
    tenant_id: UUID
    keyword: str
    assigned_user_id: Optional[UUID]
    is_active: bool = True
    created_at: Optional[datetime] = None

    def matches(self, text: str) -> bool:
        """``text`` must already be lowercased."""
        keyword = (self.keyword or "").lower()
        return bool(keyword) and keyword in text


@dataclass(frozen=True)
class RoutingDecision:
    """
    Outcome of auto-assignment.

    Both fields may be None; an unassigned ticket is valid.
    """
    assigned_team_id: Optional[UUID] = None
    assigned_user_id: Optional[UUID] = None


def routing_text(subject: Optional[str], description: Optional[str]) -> str:
    """Lowercased ``subject + " " + description``."""
    return f"{subject or ''} {description or ''}".lower()


def first_matching_rule(
    text: str,
    rules: Iterable[AssignmentRule]
) -> Optional[AssignmentRule]:
    """First active rule matching ``text``, in the given order."""
    for rule in rules:
        if rule.is_active and rule.matches(text):
            return rule
    return None


def default_team_name(text: str) -> str:
    """Team name chosen by the built-in keyword buckets."""
    for team_name, keywords in TEAM_BUCKETS:
        if any(keyword in text for keyword in keywords):
            return team_name
    return GENERAL_SUPPORT_TEAM
