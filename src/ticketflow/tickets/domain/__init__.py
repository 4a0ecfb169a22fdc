"""
Ticket Domain Layer
===================

Contains:
- Entities: Ticket, Contact, AuditLogEntry, Notification, EmailTemplate
  and the bulk-update result types
- Domain Services: TicketStateMachine (status transition rules)
- Field rules: update allow-lists and value normalisation

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from ticketflow.tickets.domain.entities import (
    Ticket,
    Contact,
    AuditLogEntry,
    Notification,
    EmailTemplate,
    AllowedTransitions,
    BulkItemError,
    BulkUpdateResult,
    generate_ticket_code,
)
from ticketflow.tickets.domain.fields import (
    UPDATABLE_FIELDS,
    BULK_UPDATABLE_FIELDS,
    pick_allowed,
    normalize_fields,
)
from ticketflow.tickets.domain.state_machine import (
    TicketStateMachine,
    VALID_TRANSITIONS,
)

__all__ = [
    "Ticket",
    "Contact",
    "AuditLogEntry",
    "Notification",
    "EmailTemplate",
    "AllowedTransitions",
    "BulkItemError",
    "BulkUpdateResult",
    "generate_ticket_code",
    "UPDATABLE_FIELDS",
    "BULK_UPDATABLE_FIELDS",
    "pick_allowed",
    "normalize_fields",
    "TicketStateMachine",
    "VALID_TRANSITIONS",
]
