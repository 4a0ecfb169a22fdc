"""
Ticket Application Services
============================

``TicketService`` orchestrates the ticket lifecycle: it composes the SLA
resolver, the auto-assignment router and the state machine, owns the
transaction boundaries, and schedules the best-effort side effects
(workflow evaluation and lifecycle emails) after commit.

Transactional guarantees:
- create: contact, ticket and the creation audit row commit together
- update: ticket, audit row and assignment notification commit together
- bulk update: every surviving row and its audit row commit together

Nothing spawned after commit can fail or roll back the mutation that
triggered it.
"""

from datetime import datetime, timezone
from email.utils import parseaddr
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from ticketflow.config import (
    Channel,
    EmailStage,
    NotificationType,
    TicketStatus,
    TriggerEvent,
)
from ticketflow.core import (
    IDataStore,
    InvalidTransitionException,
    ResourceNotFoundException,
    StoreFactory,
    ValidationException,
)
from ticketflow.routing.application import AutoAssignmentRouter
from ticketflow.shared.infrastructure.background import BackgroundTaskRunner
from ticketflow.shared.infrastructure.logging import get_logger, log_latency
from ticketflow.sla.application import SLAResolver
from ticketflow.sla.domain import SLADefaults
from ticketflow.tickets.application.dto import TicketCreateDTO
from ticketflow.tickets.application.interfaces import IEmailService
from ticketflow.tickets.domain import (
    AllowedTransitions,
    AuditLogEntry,
    BULK_UPDATABLE_FIELDS,
    BulkItemError,
    BulkUpdateResult,
    Contact,
    Notification,
    Ticket,
    TicketStateMachine,
    UPDATABLE_FIELDS,
    generate_ticket_code,
    normalize_fields,
    pick_allowed,
)

if TYPE_CHECKING:
    from ticketflow.workflows.application import WorkflowEngine

logger = get_logger(__name__)

ENTITY_TYPE = "ticket"
ASSIGNMENT_TITLE = "Ticket Assigned"
NO_RESOLUTION_NOTES = "No details provided."


def _build_payload(**values: Any) -> TicketCreateDTO:
    try:
        return TicketCreateDTO(**values)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        raise ValidationException("Invalid ticket", {"errors": errors}) from e


class TicketService:
    """Create, update and bulk-update tickets."""

    def __init__(
        self,
        store_factory: StoreFactory,
        background: BackgroundTaskRunner,
        workflow_engine: Optional["WorkflowEngine"] = None,
        email_service: Optional[IEmailService] = None,
        sla_defaults: Optional[SLADefaults] = None,
        bulk_max_ids: int = 100,
        frontend_url: str = "",
        clock: Optional[Callable[[], datetime]] = None,
        code_generator: Callable[[], str] = generate_ticket_code
    ):
        self._store_factory = store_factory
        self._background = background
        self._workflow_engine = workflow_engine
        self._email_service = email_service
        self._sla_defaults = sla_defaults or SLADefaults()
        self._bulk_max_ids = bulk_max_ids
        self._frontend_url = frontend_url.rstrip("/")
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._generate_code = code_generator

    # ========== Create ==========

    async def create_ticket(
        self,
        tenant_id: UUID,
        actor_id: Optional[UUID],
        payload: TicketCreateDTO
    ) -> Ticket:
        """
        Create a ticket with SLA deadlines and an initial assignee.

        Raises:
            ValidationException: the given contact does not exist in the tenant.
        """
        now = self._clock()

        with log_latency(logger, "create_ticket", tenant_id=str(tenant_id)):
            async with self._store_factory() as store:
                async with store.transaction():
                    contact = await self._resolve_contact(store, tenant_id, payload)

                    deadlines = await SLAResolver(store.sla_policies, self._sla_defaults).resolve(
                        tenant_id, payload.priority, now
                    )
                    decision = await AutoAssignmentRouter(store.assignment).route(
                        tenant_id, payload.subject, payload.description
                    )

                    ticket = await store.tickets.create(Ticket(
                        id=None,
                        tenant_id=tenant_id,
                        code=self._generate_code(),
                        subject=payload.subject,
                        description=payload.description or "",
                        priority=payload.priority,
                        status=payload.status,
                        channel=payload.channel,
                        contact_id=contact.id if contact else None,
                        account_id=payload.account_id,
                        assigned_team_id=decision.assigned_team_id,
                        assigned_user_id=decision.assigned_user_id,
                        first_response_due_at=deadlines.first_response_due_at,
                        resolution_due_at=deadlines.resolution_due_at,
                        closed_at=now if payload.status == TicketStatus.CLOSED else None,
                        created_at=now,
                        updated_at=now,
                    ))

                    await store.audit_logs.add(AuditLogEntry(
                        entity_type=ENTITY_TYPE,
                        entity_id=ticket.id,
                        action="create",
                        details={
                            "code": ticket.code,
                            "channel": ticket.channel,
                            "priority": ticket.priority,
                            "status": ticket.status,
                            "assigned_team_id": ticket.assigned_team_id,
                            "assigned_user_id": ticket.assigned_user_id,
                        },
                        actor_id=actor_id,
                        created_at=now,
                    ))

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": str(ticket.id),
                "code": ticket.code,
                "tenant_id": str(tenant_id),
                "channel": ticket.channel,
                "priority": ticket.priority,
            }
        )

        self._spawn_workflows(ticket, TriggerEvent.TICKET_CREATED)
        if contact is not None and contact.email:
            self._spawn_email(
                contact.email,
                EmailStage.CREATION,
                {
                    "customer_name": contact.name,
                    "ticket_code": ticket.code,
                    "subject": ticket.subject,
                },
                ticket.id,
            )
        return ticket

    async def create_ticket_from_email(
        self,
        tenant_id: UUID,
        sender: str,
        subject: Optional[str],
        body: Optional[str]
    ) -> Ticket:
        """Create a ticket from an inbound email; the sender becomes the contact."""
        name, address = parseaddr(sender)
        if not address or "@" not in address:
            raise ValidationException(f"Invalid sender address '{sender}'")

        payload = _build_payload(
            subject=(subject or "").strip() or "(no subject)",
            description=body or "",
            channel=Channel.EMAIL,
            contact_email=address,
            contact_name=name or None,
        )
        return await self.create_ticket(tenant_id, None, payload)

    async def create_ticket_from_public_form(
        self,
        tenant_id: UUID,
        name: str,
        email: str,
        subject: str,
        description: str = ""
    ) -> Ticket:
        """Create a ticket submitted anonymously through the public form."""
        payload = _build_payload(
            subject=subject,
            description=description or "",
            channel=Channel.WEB,
            contact_email=email,
            contact_name=name,
        )
        return await self.create_ticket(tenant_id, None, payload)

    async def _resolve_contact(
        self,
        store: IDataStore,
        tenant_id: UUID,
        payload: TicketCreateDTO
    ) -> Optional[Contact]:
        if payload.contact_id is not None:
            contact = await store.contacts.get_by_id(tenant_id, payload.contact_id)
            if contact is None:
                raise ValidationException(
                    f"Contact '{payload.contact_id}' not found",
                    {"field": "contact_id"}
                )
            return contact

        if not payload.contact_email:
            return None

        email = payload.contact_email.strip()
        contact = await store.contacts.find_by_email(tenant_id, email)
        if contact is None:
            name = (payload.contact_name or "").strip() or email.split("@", 1)[0]
            contact = await store.contacts.create(tenant_id, name, email)
        return contact

    # ========== Update ==========

    async def update_ticket(
        self,
        tenant_id: UUID,
        actor_id: Optional[UUID],
        ticket_id: UUID,
        fields: Dict[str, Any]
    ) -> Ticket:
        """
        Apply allow-listed field changes to one ticket.

        The status change, if any, is checked against the ticket's stored
        status. An invalid transition rejects the whole update.

        Raises:
            ValidationException: no updatable fields, or a bad value.
            ResourceNotFoundException: ticket not in the tenant.
            InvalidTransitionException: status change not allowed.
        """
        changes = pick_allowed(fields, UPDATABLE_FIELDS)
        if not changes:
            raise ValidationException("No valid fields to update", {"allowed": list(UPDATABLE_FIELDS)})
        changes = normalize_fields(changes)
        now = self._clock()

        async with self._store_factory() as store:
            async with store.transaction():
                current = await store.tickets.get(tenant_id, ticket_id)
                if current is None:
                    raise ResourceNotFoundException("Ticket", str(ticket_id))

                target_status = changes.pop("status", None)
                changes.update(
                    TicketStateMachine.transition_changes(current.status, target_status, now)
                )
                if not changes:
                    return current

                assignee_changed = (
                    changes.get("assigned_user_id") is not None
                    and changes["assigned_user_id"] != current.assigned_user_id
                )

                updated = await store.tickets.update_fields(tenant_id, ticket_id, changes)

                await store.audit_logs.add(AuditLogEntry(
                    entity_type=ENTITY_TYPE,
                    entity_id=ticket_id,
                    action="update",
                    details=changes,
                    actor_id=actor_id,
                    created_at=now,
                ))

                if assignee_changed:
                    await store.notifications.create(Notification(
                        tenant_id=tenant_id,
                        user_id=changes["assigned_user_id"],
                        title=ASSIGNMENT_TITLE,
                        message=f"You have been assigned ticket {updated.code}: {updated.subject}",
                        type=NotificationType.ASSIGNMENT,
                        reference_id=ticket_id,
                    ))

        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": str(ticket_id),
                "tenant_id": str(tenant_id),
                "fields": sorted(changes),
                "status": updated.status,
            }
        )

        self._spawn_workflows(updated, TriggerEvent.TICKET_UPDATED)

        stages = self._lifecycle_stages(changes, assignee_changed)
        if stages and self._email_service is not None:
            self._background.spawn(
                self._dispatch_lifecycle_emails(tenant_id, ticket_id, stages),
                name=f"lifecycle-emails:{ticket_id}",
                context={"ticket_id": str(ticket_id)},
            )
        return updated

    def _lifecycle_stages(
        self,
        changes: Dict[str, Any],
        assignee_changed: bool
    ) -> List[Tuple[str, Dict[str, Any]]]:
        stages: List[Tuple[str, Dict[str, Any]]] = []
        if assignee_changed:
            stages.append((EmailStage.IN_PROGRESS, {}))
        status = changes.get("status")
        if status == TicketStatus.RESOLVED:
            stages.append((
                EmailStage.RESOLUTION,
                {"resolution_notes": changes.get("solution") or NO_RESOLUTION_NOTES},
            ))
        elif status == TicketStatus.CLOSED:
            stages.append((EmailStage.CLOSURE, {}))
        return stages

    async def _dispatch_lifecycle_emails(
        self,
        tenant_id: UUID,
        ticket_id: UUID,
        stages: List[Tuple[str, Dict[str, Any]]]
    ) -> None:
        """Re-read the committed ticket and send each lifecycle email."""
        async with self._store_factory() as store:
            ticket, contact = await store.tickets.get_with_contact(tenant_id, ticket_id)

        if ticket is None or contact is None or not contact.email:
            logger.debug("No contact email, lifecycle emails skipped", extra={"ticket_id": str(ticket_id)})
            return

        base_context = {
            "customer_name": contact.name,
            "ticket_code": ticket.code,
            "subject": ticket.subject,
        }
        for stage, extra in stages:
            context = {**base_context, **extra}
            if stage == EmailStage.CLOSURE:
                context["survey_link"] = f"{self._frontend_url}/feedback/{ticket.code}"
            try:
                await self._email_service.send_template(contact.email, stage, context)
            except Exception as e:
                logger.error(
                    "Lifecycle email failed",
                    extra={"ticket_id": str(ticket_id), "stage": stage, "error": str(e)}
                )

    # ========== Bulk update ==========

    async def bulk_update_tickets(
        self,
        tenant_id: UUID,
        actor_id: Optional[UUID],
        ticket_ids: Sequence[UUID],
        fields: Dict[str, Any]
    ) -> BulkUpdateResult:
        """
        Apply one change set to many tickets.

        Each ticket is checked on its own: missing tickets and invalid
        transitions are reported per item, the rest are written with one
        audit row each in a single multi-row insert, all in one transaction.

        Raises:
            ValidationException: empty or oversized id list, or no updatable fields.
        """
        if not ticket_ids:
            raise ValidationException("ticketIds array required")
        if len(ticket_ids) > self._bulk_max_ids:
            raise ValidationException(
                f"Too many tickets in one bulk update (max {self._bulk_max_ids})",
                {"max": self._bulk_max_ids, "received": len(ticket_ids)}
            )

        shared = pick_allowed(fields, BULK_UPDATABLE_FIELDS)
        if not shared:
            raise ValidationException("No valid fields to update", {"allowed": list(BULK_UPDATABLE_FIELDS)})
        shared = normalize_fields(shared)
        target_status = shared.pop("status", None)

        ids = list(dict.fromkeys(ticket_ids))
        now = self._clock()
        result = BulkUpdateResult()

        async with self._store_factory() as store:
            async with store.transaction():
                statuses = await store.tickets.get_statuses(tenant_id, ids)

                write_set: List[Tuple[UUID, Dict[str, Any]]] = []
                for ticket_id in ids:
                    current_status = statuses.get(ticket_id)
                    if current_status is None:
                        result.errors.append(BulkItemError(id=ticket_id, error="Not found"))
                        continue
                    try:
                        transition = TicketStateMachine.transition_changes(
                            current_status, target_status, now
                        )
                    except InvalidTransitionException as e:
                        result.errors.append(BulkItemError(
                            id=ticket_id,
                            error=f"Invalid transition from {current_status} to {target_status}",
                            allowed_transitions=e.allowed_transitions,
                        ))
                        continue
                    write_set.append((ticket_id, {**shared, **transition}))

                audit_entries: List[AuditLogEntry] = []
                for ticket_id, changes in write_set:
                    if changes:
                        await store.tickets.bulk_update(tenant_id, ticket_id, changes)
                    audit_entries.append(AuditLogEntry(
                        entity_type=ENTITY_TYPE,
                        entity_id=ticket_id,
                        action="bulk_update",
                        details=changes,
                        actor_id=actor_id,
                        created_at=now,
                    ))
                    result.updated.append(ticket_id)

                await store.audit_logs.add_many(audit_entries)

        logger.info(
            "Bulk update completed",
            extra={
                "tenant_id": str(tenant_id),
                "requested": len(ids),
                "updated": len(result.updated),
                "failed": len(result.errors),
            }
        )
        return result

    # ========== Queries ==========

    async def get_ticket(self, tenant_id: UUID, ticket_id: UUID) -> Ticket:
        async with self._store_factory() as store:
            ticket = await store.tickets.get(tenant_id, ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", str(ticket_id))
        return ticket

    async def get_allowed_transitions(self, tenant_id: UUID, ticket_id: UUID) -> AllowedTransitions:
        ticket = await self.get_ticket(tenant_id, ticket_id)
        return AllowedTransitions(
            current_status=ticket.status,
            allowed_transitions=TicketStateMachine.allowed_transitions(ticket.status),
        )

    async def list_audit_log(self, tenant_id: UUID, ticket_id: UUID) -> List[AuditLogEntry]:
        """Audit entries of a ticket, newest first."""
        async with self._store_factory() as store:
            ticket = await store.tickets.get(tenant_id, ticket_id)
            if ticket is None:
                raise ResourceNotFoundException("Ticket", str(ticket_id))
            return await store.audit_logs.list_for_entity(ENTITY_TYPE, ticket_id)

    # ========== Background side effects ==========

    def _spawn_workflows(self, ticket: Ticket, trigger_event: str) -> None:
        if self._workflow_engine is None:
            return
        self._background.spawn(
            self._workflow_engine.evaluate(ENTITY_TYPE, ticket.to_snapshot(), trigger_event),
            name=f"workflows:{trigger_event}:{ticket.id}",
            context={"ticket_id": str(ticket.id), "trigger": trigger_event},
        )

    def _spawn_email(
        self,
        recipient: str,
        stage: str,
        context: Dict[str, Any],
        ticket_id: Optional[UUID]
    ) -> None:
        if self._email_service is None:
            return
        self._background.spawn(
            self._email_service.send_template(recipient, stage, context),
            name=f"email:{stage}:{ticket_id}",
            context={"ticket_id": str(ticket_id), "stage": stage},
        )
