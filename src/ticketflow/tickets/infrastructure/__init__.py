"""
Ticket Infrastructure Layer
============================

Infrastructure implementations for the ticket lifecycle:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- Email: template rendering and the HTTP email provider client
"""

from ticketflow.tickets.infrastructure.models import (
    TicketModel,
    ContactModel,
    AuditLogModel,
    NotificationModel,
    EmailTemplateModel,
)
from ticketflow.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyContactRepository,
    SQLAlchemyAuditLogRepository,
    SQLAlchemyNotificationRepository,
    SQLAlchemyEmailTemplateRepository,
)
from ticketflow.tickets.infrastructure.email import (
    CircuitBreaker,
    EmailMessage,
    EmailProviderClient,
    TemplateEmailService,
    render_placeholders,
)

__all__ = [
    "TicketModel",
    "ContactModel",
    "AuditLogModel",
    "NotificationModel",
    "EmailTemplateModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyContactRepository",
    "SQLAlchemyAuditLogRepository",
    "SQLAlchemyNotificationRepository",
    "SQLAlchemyEmailTemplateRepository",
    "CircuitBreaker",
    "EmailMessage",
    "EmailProviderClient",
    "TemplateEmailService",
    "render_placeholders",
]
