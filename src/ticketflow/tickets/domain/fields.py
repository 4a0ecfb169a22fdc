"""
Ticket Field Rules
==================

Which ticket fields callers may change, and how submitted values are
normalised before they reach storage.
"""

from typing import Any, Dict, Iterable
from uuid import UUID

from ticketflow.config import VALID_PRIORITIES, VALID_STATUSES
from ticketflow.core import ValidationException


# Fields a single update may change
UPDATABLE_FIELDS = (
    "status", "priority", "assigned_user_id", "assigned_team_id",
    "request_type", "impact", "description",
    "issue", "analysis", "solution",
    "mode", "level", "urgency",
    "group_name", "category", "assets",
)

# Fields a bulk update may change
BULK_UPDATABLE_FIELDS = ("status", "priority", "assigned_user_id", "assigned_team_id")

UUID_FIELDS = ("assigned_user_id", "assigned_team_id", "contact_id", "account_id")


def pick_allowed(fields: Dict[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    """Keep only keys in ``allowed``; unknown keys are dropped silently."""
    allowed = tuple(allowed)
    return {key: value for key, value in fields.items() if key in allowed}


def normalize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate enum fields and coerce id fields to UUID.

    Raises:
        ValidationException: a value is not acceptable for its field.
    """
    normalized = dict(fields)

    if "status" in normalized and normalized["status"] not in VALID_STATUSES:
        raise ValidationException(
            f"Invalid status '{normalized['status']}'",
            {"field": "status", "allowed": VALID_STATUSES}
        )
    if "priority" in normalized and normalized["priority"] not in VALID_PRIORITIES:
        raise ValidationException(
            f"Invalid priority '{normalized['priority']}'",
            {"field": "priority", "allowed": VALID_PRIORITIES}
        )

    for key in UUID_FIELDS:
        value = normalized.get(key)
        if value is None or isinstance(value, UUID):
            continue
        try:
            normalized[key] = UUID(str(value))
        except ValueError as e:
            raise ValidationException(f"Invalid {key} '{value}'", {"field": key}) from e

    return normalized
