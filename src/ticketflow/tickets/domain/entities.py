"""
Ticket Domain Entities
======================

Pure Python domain entities for the ticket lifecycle.

These entities carry no infrastructure concerns; repositories translate
them to and from ORM rows.
"""

import random
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python

from ticketflow.config import TicketStatus, Priority, Channel


def generate_ticket_code(rng: random.Random | None = None) -> str:
    """Human-readable ticket code, e.g. ``TCK-482913``."""
    rng = rng or random
    return f"TCK-{rng.randint(100000, 999999)}"


@dataclass
class Ticket:
    """
    Support ticket.

    ``closed_at`` is set exactly when ``status`` is closed.
    """

    id: Optional[UUID]
    tenant_id: UUID
    code: str
    subject: str
    description: str = ""
    priority: str = Priority.MEDIUM
    status: str = TicketStatus.NEW
    channel: str = Channel.WEB

    contact_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    assigned_team_id: Optional[UUID] = None
    assigned_user_id: Optional[UUID] = None

    # Free-form service desk attributes
    request_type: Optional[str] = None
    impact: Optional[str] = None
    issue: Optional[str] = None
    analysis: Optional[str] = None
    solution: Optional[str] = None
    mode: Optional[str] = None
    level: Optional[str] = None
    urgency: Optional[str] = None
    group_name: Optional[str] = None
    category: Optional[str] = None
    assets: Optional[Any] = None

    # SLA deadlines
    first_response_due_at: Optional[datetime] = None
    resolution_due_at: Optional[datetime] = None

    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_snapshot(self) -> Dict[str, Any]:
        """
        JSON-compatible view of the ticket.

        Workflow conditions compare against this, so ids are strings and
        datetimes are ISO-8601.
        """
        return to_jsonable_python(
            {f.name: getattr(self, f.name) for f in fields(self)}
        )


@dataclass
class Contact:
    """Requester of a ticket."""
    id: UUID
    tenant_id: UUID
    name: str
    email: Optional[str] = None


@dataclass
class AuditLogEntry:
    """Append-only record of a change to an entity."""
    entity_type: str
    entity_id: UUID
    action: str
    details: Dict[str, Any]
    actor_id: Optional[UUID] = None
    id: Optional[UUID] = None
    created_at: Optional[datetime] = None


@dataclass
class AllowedTransitions:
    """Current status of a ticket and where it may go next."""
    current_status: str
    allowed_transitions: List[str]


@dataclass
class BulkItemError:
    """Why one ticket of a bulk update was not changed."""
    id: UUID
    error: str
    allowed_transitions: Optional[List[str]] = None


@dataclass
class BulkUpdateResult:
    """
    Partial-success report of a bulk update.

    ``updated`` lists the ids whose changes were committed; ``errors``
    lists the rest with a reason each.
    """
    updated: List[UUID] = field(default_factory=list)
    errors: List[BulkItemError] = field(default_factory=list)


@dataclass
class Notification:
    """In-app notification for one user."""
    tenant_id: UUID
    user_id: UUID
    title: str
    message: str
    type: str
    reference_id: Optional[UUID] = None
    is_read: bool = False
    id: Optional[UUID] = None
    created_at: Optional[datetime] = None


@dataclass
class EmailTemplate:
    """Lifecycle email template, selected by stage."""
    stage_name: str
    subject_template: str
    body_html: Optional[str] = None
    body_text: Optional[str] = None
    is_active: bool = True
