"""
Ticket Repository Interfaces
============================

Abstract data access contracts for the tickets context (Dependency
Inversion). Concrete SQLAlchemy implementations live in
``ticketflow.tickets.infrastructure``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from ticketflow.tickets.domain import (
    AuditLogEntry,
    Contact,
    EmailTemplate,
    Notification,
    Ticket,
)


class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get(self, tenant_id: UUID, ticket_id: UUID) -> Optional[Ticket]:
        """Ticket scoped to the tenant, or None."""

    @abstractmethod
    async def get_statuses(self, tenant_id: UUID, ticket_ids: Sequence[UUID]) -> Dict[UUID, str]:
        """Current status of each found ticket, in one query."""

    @abstractmethod
    async def get_with_contact(
        self,
        tenant_id: UUID,
        ticket_id: UUID
    ) -> Tuple[Optional[Ticket], Optional[Contact]]:
        """Ticket and its contact (either may be None)."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket and return it with generated fields."""

    @abstractmethod
    async def update_fields(
        self,
        tenant_id: UUID,
        ticket_id: UUID,
        fields: Dict[str, Any]
    ) -> Optional[Ticket]:
        """Apply ``fields`` and return the updated ticket, or None if missing."""

    @abstractmethod
    async def bulk_update(self, tenant_id: UUID, ticket_id: UUID, fields: Dict[str, Any]) -> None:
        """Apply ``fields`` without reading the row back."""


class IContactRepository(ABC):
    """Interface for contact lookup and creation."""

    @abstractmethod
    async def get_by_id(self, tenant_id: UUID, contact_id: UUID) -> Optional[Contact]:
        """Contact scoped to the tenant, or None."""

    @abstractmethod
    async def find_by_email(self, tenant_id: UUID, email: str) -> Optional[Contact]:
        """Contact with ``email`` (case-insensitive), or None."""

    @abstractmethod
    async def create(self, tenant_id: UUID, name: str, email: Optional[str]) -> Contact:
        """Insert a new contact."""


class IAuditLogRepository(ABC):
    """Interface for the append-only audit log."""

    @abstractmethod
    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Insert one entry."""

    @abstractmethod
    async def add_many(self, entries: List[AuditLogEntry]) -> None:
        """Insert all entries in one multi-row statement."""

    @abstractmethod
    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> List[AuditLogEntry]:
        """Entries for one entity, newest first."""


class INotificationRepository(ABC):
    """Interface for in-app notifications."""

    @abstractmethod
    async def create(self, notification: Notification) -> Notification:
        """Insert a notification."""


class IEmailTemplateRepository(ABC):
    """Interface for lifecycle email templates."""

    @abstractmethod
    async def get_active(self, stage_name: str) -> Optional[EmailTemplate]:
        """Active template for ``stage_name``, or None."""


class IEmailService(ABC):
    """Interface for outbound template email."""

    @abstractmethod
    async def send_template(
        self,
        recipient: str,
        template_name: str,
        context: Dict[str, Any]
    ) -> bool:
        """
        Render and send a template.

        Returns False when there is nothing to send (no template).
        """
