"""
Ticket Controllers (API Routes)
================================

FastAPI routes for the ticket lifecycle.

Controllers are thin - they delegate to ``TicketService``. The tenant and
the acting user arrive in the ``X-Tenant-ID`` / ``X-User-ID`` headers set by
the authenticating gateway.
"""

import secrets
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ticketflow.shared.infrastructure.logging import get_logger
from ticketflow.tickets.application import (
    AllowedTransitionsResponse,
    AuditLogResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    EmailWebhookRequest,
    PublicTicketRequest,
    TicketCreateDTO,
    TicketResponse,
    TicketService,
    TicketUpdateDTO,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "subject": "Invoice charged twice",
    "description": "My card was billed twice for the March invoice.",
    "priority": "high",
    "contact_email": "jane@example.com",
    "contact_name": "Jane Doe"
}

TRANSITION_ERROR_EXAMPLE = {
    "error": "Invalid status transition from 'resolved' to 'new'",
    "currentStatus": "resolved",
    "allowedTransitions": ["closed", "open"]
}


# ========== Dependencies ==========

def get_ticket_service(request: Request) -> TicketService:
    """Ticket service built at startup."""
    return request.app.state.ticket_service


def verify_webhook_secret(
    request: Request,
    x_webhook_secret: Optional[str] = Header(None)
) -> None:
    """Reject inbound webhooks without the shared secret, when one is configured."""
    expected = getattr(getattr(request.app.state, "settings", None), "webhook_secret", None)
    if not expected:
        return
    if not x_webhook_secret or not secrets.compare_digest(x_webhook_secret, expected):
        logger.warning("Email webhook rejected, bad secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket",
    responses={201: {"description": "Ticket created"}},
    openapi_extra={"requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}}
)
async def create_ticket(
    payload: TicketCreateDTO,
    x_tenant_id: UUID = Header(...),
    x_user_id: Optional[UUID] = Header(None),
    service: TicketService = Depends(get_ticket_service)
) -> TicketResponse:
    ticket = await service.create_ticket(x_tenant_id, x_user_id, payload)
    return TicketResponse.from_entity(ticket)


@router.post(
    "/webhooks/email",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket from an inbound email",
    dependencies=[Depends(verify_webhook_secret)]
)
async def email_webhook(
    payload: EmailWebhookRequest,
    service: TicketService = Depends(get_ticket_service)
) -> TicketResponse:
    ticket = await service.create_ticket_from_email(
        payload.tenant_id, payload.sender, payload.subject, payload.body
    )
    return TicketResponse.from_entity(ticket)


@router.post(
    "/public",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ticket from the public support form"
)
async def public_ticket(
    payload: PublicTicketRequest,
    service: TicketService = Depends(get_ticket_service)
) -> TicketResponse:
    ticket = await service.create_ticket_from_public_form(
        payload.tenant_id, payload.name, payload.email, payload.subject, payload.description
    )
    return TicketResponse.from_entity(ticket)


@router.put(
    "/bulk",
    response_model=BulkUpdateResponse,
    response_model_exclude_none=True,
    summary="Apply one change set to many tickets",
    description="""
    Partial success: tickets that are missing or cannot make the requested
    status transition are reported in `errors`; the rest are updated together.
    At most 100 ids per request.
    """
)
async def bulk_update_tickets(
    payload: BulkUpdateRequest,
    x_tenant_id: UUID = Header(...),
    x_user_id: Optional[UUID] = Header(None),
    service: TicketService = Depends(get_ticket_service)
) -> BulkUpdateResponse:
    result = await service.bulk_update_tickets(
        x_tenant_id,
        x_user_id,
        payload.ticket_ids,
        payload.updates.model_dump(exclude_unset=True),
    )
    return BulkUpdateResponse.from_entity(result)


@router.get("/{ticket_id}", response_model=TicketResponse, summary="Get a ticket")
async def get_ticket(
    ticket_id: UUID,
    x_tenant_id: UUID = Header(...),
    service: TicketService = Depends(get_ticket_service)
) -> TicketResponse:
    ticket = await service.get_ticket(x_tenant_id, ticket_id)
    return TicketResponse.from_entity(ticket)


@router.put(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update a ticket",
    responses={400: {"description": "Invalid transition", "content": {"application/json": {"example": TRANSITION_ERROR_EXAMPLE}}}}
)
async def update_ticket(
    ticket_id: UUID,
    payload: TicketUpdateDTO,
    x_tenant_id: UUID = Header(...),
    x_user_id: Optional[UUID] = Header(None),
    service: TicketService = Depends(get_ticket_service)
) -> TicketResponse:
    ticket = await service.update_ticket(x_tenant_id, x_user_id, ticket_id, payload.changes())
    return TicketResponse.from_entity(ticket)


@router.get(
    "/{ticket_id}/transitions",
    response_model=AllowedTransitionsResponse,
    summary="Statuses the ticket can move to"
)
async def get_allowed_transitions(
    ticket_id: UUID,
    x_tenant_id: UUID = Header(...),
    service: TicketService = Depends(get_ticket_service)
) -> AllowedTransitionsResponse:
    transitions = await service.get_allowed_transitions(x_tenant_id, ticket_id)
    return AllowedTransitionsResponse.from_entity(transitions)


@router.get(
    "/{ticket_id}/audit",
    response_model=List[AuditLogResponse],
    summary="Audit trail of a ticket, newest first"
)
async def list_audit_log(
    ticket_id: UUID,
    x_tenant_id: UUID = Header(...),
    service: TicketService = Depends(get_ticket_service)
) -> List[AuditLogResponse]:
    entries = await service.list_audit_log(x_tenant_id, ticket_id)
    return [AuditLogResponse.from_entity(entry) for entry in entries]
