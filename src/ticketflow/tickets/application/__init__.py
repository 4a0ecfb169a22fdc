"""
Ticket Application Layer
=========================

Contains:
- Services: TicketService (create, update, bulk update, queries)
- DTOs: request/response models for the API layer
- Interfaces: repository and email service contracts
"""

from ticketflow.tickets.application.interfaces import (
    ITicketRepository,
    IContactRepository,
    IAuditLogRepository,
    INotificationRepository,
    IEmailTemplateRepository,
    IEmailService,
)
from ticketflow.tickets.application.dto import (
    TicketCreateDTO,
    TicketUpdateDTO,
    BulkChangesDTO,
    BulkUpdateRequest,
    EmailWebhookRequest,
    PublicTicketRequest,
    TicketResponse,
    AllowedTransitionsResponse,
    BulkItemErrorResponse,
    BulkUpdateResponse,
    AuditLogResponse,
)
from ticketflow.tickets.application.services import TicketService

__all__ = [
    "ITicketRepository",
    "IContactRepository",
    "IAuditLogRepository",
    "INotificationRepository",
    "IEmailTemplateRepository",
    "IEmailService",
    "TicketCreateDTO",
    "TicketUpdateDTO",
    "BulkChangesDTO",
    "BulkUpdateRequest",
    "EmailWebhookRequest",
    "PublicTicketRequest",
    "TicketResponse",
    "AllowedTransitionsResponse",
    "BulkItemErrorResponse",
    "BulkUpdateResponse",
    "AuditLogResponse",
    "TicketService",
]
