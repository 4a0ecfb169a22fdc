"""
Ticket Application DTOs
========================

Data Transfer Objects for the ticket API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ticketflow.tickets.domain import (
    AllowedTransitions,
    AuditLogEntry,
    BulkUpdateResult,
    Ticket,
)


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
TicketStatusStr = Literal["new", "open", "pending", "resolved", "closed"]
ChannelStr = Literal["web", "email"]


# ========== Request DTOs ==========

class TicketCreateDTO(BaseModel):
    """DTO for creating a ticket."""
    subject: str = Field(..., min_length=1, max_length=500, description="Ticket subject")
    description: str = Field(default="", description="Ticket description")
    priority: PriorityStr = Field(default="medium", description="Ticket priority")
    status: TicketStatusStr = Field(default="new", description="Initial status")
    channel: ChannelStr = Field(default="web", description="Channel the ticket arrived through")
    contact_id: Optional[UUID] = Field(None, description="Existing contact")
    account_id: Optional[UUID] = Field(None, description="Customer account")
    contact_email: Optional[str] = Field(None, description="Requester email, used when contact_id is absent")
    contact_name: Optional[str] = Field(None, description="Requester name for a new contact")

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("subject must not be blank")
        return v.strip()


class TicketUpdateDTO(BaseModel):
    """
    DTO for updating a ticket.

    Only fields present in the request are applied; unknown keys are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    assigned_user_id: Optional[UUID] = None
    assigned_team_id: Optional[UUID] = None
    request_type: Optional[str] = None
    impact: Optional[str] = None
    description: Optional[str] = None
    issue: Optional[str] = None
    analysis: Optional[str] = None
    solution: Optional[str] = None
    mode: Optional[str] = None
    level: Optional[str] = None
    urgency: Optional[str] = None
    group_name: Optional[str] = None
    category: Optional[str] = None
    assets: Optional[Any] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BulkChangesDTO(BaseModel):
    """Shared field changes of a bulk update."""
    model_config = ConfigDict(extra="ignore")

    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    assigned_user_id: Optional[UUID] = None
    assigned_team_id: Optional[UUID] = None


class BulkUpdateRequest(BaseModel):
    """Request model for bulk ticket updates."""
    model_config = ConfigDict(populate_by_name=True)

    ticket_ids: List[UUID] = Field(..., alias="ticketIds", description="Tickets to update")
    updates: BulkChangesDTO = Field(..., description="Changes applied to every ticket")


class EmailWebhookRequest(BaseModel):
    """Inbound email forwarded by the mail provider."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(..., alias="from", min_length=3, description="Sender, 'Name <addr>' or bare address")
    subject: Optional[str] = Field(None, description="Email subject")
    body: Optional[str] = Field(None, description="Plain-text body")
    tenant_id: UUID = Field(..., alias="tenantId", description="Receiving tenant")


class PublicTicketRequest(BaseModel):
    """Ticket submitted through the public support form."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Requester name")
    email: str = Field(..., min_length=3, description="Requester email")
    subject: str = Field(..., min_length=1, description="Ticket subject")
    description: str = Field(default="", description="Ticket description")
    tenant_id: UUID = Field(..., alias="tenantId", description="Receiving tenant")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v.strip()


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    """Response model for a ticket."""
    id: UUID
    tenant_id: UUID
    code: str
    subject: str
    description: str
    priority: str
    status: str
    channel: str
    contact_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    assigned_team_id: Optional[UUID] = None
    assigned_user_id: Optional[UUID] = None
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
    first_response_due_at: Optional[datetime] = None
    resolution_due_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, ticket: Ticket) -> "TicketResponse":
        return cls.model_validate(ticket, from_attributes=True)


class AllowedTransitionsResponse(BaseModel):
    """Current status and the statuses reachable from it."""
    model_config = ConfigDict(populate_by_name=True)

    current_status: str = Field(..., alias="currentStatus")
    allowed_transitions: List[str] = Field(..., alias="allowedTransitions")

    @classmethod
    def from_entity(cls, value: AllowedTransitions) -> "AllowedTransitionsResponse":
        return cls(
            current_status=value.current_status,
            allowed_transitions=value.allowed_transitions,
        )


class BulkItemErrorResponse(BaseModel):
    """Why one ticket was not updated."""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    error: str
    allowed_transitions: Optional[List[str]] = Field(None, alias="allowedTransitions")


class BulkUpdateResponse(BaseModel):
    """Partial-success report of a bulk update."""
    updated: List[UUID] = Field(default_factory=list)
    errors: List[BulkItemErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, result: BulkUpdateResult) -> "BulkUpdateResponse":
        return cls(
            updated=list(result.updated),
            errors=[
                BulkItemErrorResponse(
                    id=item.id,
                    error=item.error,
                    allowed_transitions=item.allowed_transitions,
                )
                for item in result.errors
            ],
        )


class AuditLogResponse(BaseModel):
    """One audit log entry."""
    id: UUID
    entity_type: str
    entity_id: UUID
    action: str
    details: Dict[str, Any]
    actor_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        return cls.model_validate(entry, from_attributes=True)
