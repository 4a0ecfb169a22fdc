"""
Ticket Infrastructure Repositories
===================================

Concrete implementations of the ticket repository interfaces using
SQLAlchemy.

Every repository is bound to one ``AsyncSession``; transaction boundaries
belong to the caller.
"""

from dataclasses import fields as dataclass_fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from pydantic_core import to_jsonable_python
from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketflow.core import RepositoryException
from ticketflow.tickets.application.interfaces import (
    IAuditLogRepository,
    IContactRepository,
    IEmailTemplateRepository,
    INotificationRepository,
    ITicketRepository,
)
from ticketflow.tickets.domain import (
    AuditLogEntry,
    Contact,
    EmailTemplate,
    Notification,
    Ticket,
)
from ticketflow.tickets.infrastructure.models import (
    AuditLogModel,
    ContactModel,
    EmailTemplateModel,
    NotificationModel,
    TicketModel,
)

_TICKET_FIELDS = tuple(f.name for f in dataclass_fields(Ticket))


def _ticket_to_entity(model: TicketModel) -> Ticket:
    return Ticket(**{name: getattr(model, name) for name in _TICKET_FIELDS})


def _contact_to_entity(model: ContactModel) -> Contact:
    return Contact(id=model.id, tenant_id=model.tenant_id, name=model.name, email=model.email)


def _audit_to_entity(model: AuditLogModel) -> AuditLogEntry:
    return AuditLogEntry(
        id=model.id,
        entity_type=model.entity_type,
        entity_id=model.entity_id,
        action=model.action,
        details=model.details or {},
        actor_id=model.actor_id,
        created_at=model.created_at,
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Every query is scoped to the tenant.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, tenant_id: UUID, ticket_id: UUID) -> Optional[TicketModel]:
        stmt = select(TicketModel).where(
            TicketModel.id == ticket_id,
            TicketModel.tenant_id == tenant_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, tenant_id: UUID, ticket_id: UUID) -> Optional[Ticket]:
        model = await self._get_model(tenant_id, ticket_id)
        return _ticket_to_entity(model) if model else None

    async def get_statuses(self, tenant_id: UUID, ticket_ids: Sequence[UUID]) -> Dict[UUID, str]:
        if not ticket_ids:
            return {}
        stmt = select(TicketModel.id, TicketModel.status).where(
            TicketModel.tenant_id == tenant_id,
            TicketModel.id.in_(list(ticket_ids)),
        )
        result = await self._session.execute(stmt)
        return {row.id: row.status for row in result}

    async def get_with_contact(
        self,
        tenant_id: UUID,
        ticket_id: UUID
    ) -> Tuple[Optional[Ticket], Optional[Contact]]:
        stmt = (
            select(TicketModel, ContactModel)
            .outerjoin(ContactModel, ContactModel.id == TicketModel.contact_id)
            .where(TicketModel.id == ticket_id, TicketModel.tenant_id == tenant_id)
        )
        result = await self._session.execute(stmt)
        row = result.first()
        if row is None:
            return None, None
        ticket_model, contact_model = row
        return (
            _ticket_to_entity(ticket_model),
            _contact_to_entity(contact_model) if contact_model else None,
        )

    async def create(self, ticket: Ticket) -> Ticket:
        now = datetime.now(timezone.utc)
        values = {name: getattr(ticket, name) for name in _TICKET_FIELDS}
        values["id"] = values["id"] or uuid4()
        values["created_at"] = values["created_at"] or now
        values["updated_at"] = values["updated_at"] or values["created_at"]

        model = TicketModel(**values)
        self._session.add(model)
        await self._session.flush()
        return _ticket_to_entity(model)

    async def update_fields(
        self,
        tenant_id: UUID,
        ticket_id: UUID,
        fields: Dict[str, Any]
    ) -> Optional[Ticket]:
        model = await self._get_model(tenant_id, ticket_id)
        if model is None:
            return None

        for key, value in fields.items():
            if key not in _TICKET_FIELDS or key in ("id", "tenant_id"):
                raise RepositoryException(f"Ticket field '{key}' is not writable")
            setattr(model, key, value)
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return _ticket_to_entity(model)

    async def bulk_update(self, tenant_id: UUID, ticket_id: UUID, fields: Dict[str, Any]) -> None:
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket_id, TicketModel.tenant_id == tenant_id)
            .values(**fields, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)


class SQLAlchemyContactRepository(IContactRepository):
    """SQLAlchemy implementation of contact repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, tenant_id: UUID, contact_id: UUID) -> Optional[Contact]:
        stmt = select(ContactModel).where(
            ContactModel.id == contact_id,
            ContactModel.tenant_id == tenant_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _contact_to_entity(model) if model else None

    async def find_by_email(self, tenant_id: UUID, email: str) -> Optional[Contact]:
        stmt = (
            select(ContactModel)
            .where(
                ContactModel.tenant_id == tenant_id,
                func.lower(ContactModel.email) == email.lower(),
            )
            .order_by(ContactModel.created_at.asc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _contact_to_entity(model) if model else None

    async def create(self, tenant_id: UUID, name: str, email: Optional[str]) -> Contact:
        model = ContactModel(id=uuid4(), tenant_id=tenant_id, name=name, email=email)
        self._session.add(model)
        await self._session.flush()
        return _contact_to_entity(model)


class SQLAlchemyAuditLogRepository(IAuditLogRepository):
    """
    SQLAlchemy implementation of the audit log.

    ``details`` are stored as JSON; UUIDs and datetimes are serialised to
    strings on the way in.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _row(entry: AuditLogEntry, now: datetime) -> Dict[str, Any]:
        return {
            "id": entry.id or uuid4(),
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "action": entry.action,
            "details": to_jsonable_python(entry.details or {}),
            "actor_id": entry.actor_id,
            "created_at": entry.created_at or now,
        }

    async def add(self, entry: AuditLogEntry) -> AuditLogEntry:
        model = AuditLogModel(**self._row(entry, datetime.now(timezone.utc)))
        self._session.add(model)
        await self._session.flush()
        return _audit_to_entity(model)

    async def add_many(self, entries: List[AuditLogEntry]) -> None:
        if not entries:
            return
        now = datetime.now(timezone.utc)
        # Single multi-row INSERT ... VALUES (...), (...)
        stmt = insert(AuditLogModel).values([self._row(entry, now) for entry in entries])
        await self._session.execute(stmt)

    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> List[AuditLogEntry]:
        stmt = (
            select(AuditLogModel)
            .where(
                AuditLogModel.entity_type == entity_type,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(AuditLogModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [_audit_to_entity(model) for model in result.scalars().all()]


class SQLAlchemyNotificationRepository(INotificationRepository):
    """SQLAlchemy implementation of notification repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, notification: Notification) -> Notification:
        model = NotificationModel(
            id=notification.id or uuid4(),
            tenant_id=notification.tenant_id,
            user_id=notification.user_id,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            reference_id=notification.reference_id,
            is_read=notification.is_read,
        )
        self._session.add(model)
        await self._session.flush()

        notification.id = model.id
        notification.created_at = model.created_at
        return notification


class SQLAlchemyEmailTemplateRepository(IEmailTemplateRepository):
    """SQLAlchemy implementation of email template lookup."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_active(self, stage_name: str) -> Optional[EmailTemplate]:
        stmt = select(EmailTemplateModel).where(
            EmailTemplateModel.stage_name == stage_name,
            EmailTemplateModel.is_active.is_(True),
        ).order_by(EmailTemplateModel.updated_at.desc()).limit(1)
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        if model is None:
            return None
        return EmailTemplate(
            stage_name=model.stage_name,
            subject_template=model.subject_template,
            body_html=model.body_html,
            body_text=model.body_text,
            is_active=model.is_active,
        )
