"""
Workflow Application Services
==============================

The workflow rule engine: loads the tenant's active workflows for a trigger,
checks their conditions against an entity snapshot, and executes the
actions of every match.

Evaluation is best-effort. ``WorkflowEngine.evaluate`` never raises: every
failure is logged and discarded. Each action runs in its own transaction,
so one failing action neither rolls back nor blocks the others.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional
from uuid import UUID

from ticketflow.config import NotificationType
from ticketflow.core import (
    ResourceNotFoundException,
    StoreFactory,
    ValidationException,
)
from ticketflow.shared.infrastructure.logging import get_logger
from ticketflow.tickets.domain import (
    AuditLogEntry,
    Notification,
    TicketStateMachine,
    UPDATABLE_FIELDS,
    normalize_fields,
)
from ticketflow.workflows.domain import (
    ActionResult,
    SendEmailAction,
    SendNotificationAction,
    UnknownAction,
    UpdateFieldAction,
    Workflow,
    WorkflowAction,
    check_conditions,
    parse_actions,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IWorkflowRepository(ABC):
    """Interface for workflow lookup."""

    @abstractmethod
    async def list_active(self, tenant_id: UUID, trigger_event: str) -> List[Workflow]:
        """Active workflows for the trigger, oldest first."""


def _as_uuid(value: Any) -> Optional[UUID]:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


# ========== Application Services ==========

class WorkflowEngine:
    """
    Evaluates tenant workflows against entity snapshots.

    Conditions of one workflow all read the same pre-action snapshot; an
    action that changes the ticket does not cause re-evaluation.
    """

    def __init__(
        self,
        store_factory: StoreFactory,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._store_factory = store_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def evaluate(
        self,
        entity_type: str,
        entity: Mapping[str, Any],
        trigger_event: str
    ) -> int:
        """
        Run every matching workflow for ``trigger_event``.

        Returns the number of workflows whose conditions matched.
        """
        tenant_id = _as_uuid(entity.get("tenant_id"))
        if tenant_id is None:
            logger.debug("Workflow evaluation skipped, no tenant", extra={"trigger": trigger_event})
            return 0

        try:
            async with self._store_factory() as store:
                workflows = await store.workflows.list_active(tenant_id, trigger_event)
        except Exception as e:
            logger.error(
                "Failed to load workflows",
                extra={"tenant_id": str(tenant_id), "trigger": trigger_event, "error": str(e)}
            )
            return 0

        matched = 0
        for workflow in workflows:
            try:
                if not check_conditions(workflow.conditions, entity):
                    continue
                matched += 1
                logger.info(
                    "Workflow matched",
                    extra={
                        "workflow_id": str(workflow.id),
                        "workflow": workflow.name,
                        "entity_type": entity_type,
                        "entity_id": entity.get("id"),
                        "trigger": trigger_event,
                    }
                )
                await self.execute_actions(workflow.actions, entity, workflow_id=workflow.id)
            except Exception as e:
                logger.error(
                    "Workflow evaluation failed",
                    extra={"workflow_id": str(workflow.id), "error_type": type(e).__name__, "error": str(e)}
                )
        return matched

    async def execute_actions(
        self,
        actions: Any,
        entity: Mapping[str, Any],
        workflow_id: Optional[UUID] = None
    ) -> List[ActionResult]:
        """Execute actions in order; a failing action does not stop the rest."""
        results: List[ActionResult] = []
        for action in parse_actions(actions):
            action_type = action.type.value
            try:
                executed = await self._execute(action, entity, workflow_id)
                results.append(ActionResult(action_type=action_type, success=True, skipped=not executed))
            except Exception as e:
                logger.error(
                    "Workflow action failed",
                    extra={
                        "workflow_id": str(workflow_id) if workflow_id else None,
                        "action": action_type,
                        "entity_id": entity.get("id"),
                        "error_type": type(e).__name__,
                        "error": str(e),
                    }
                )
                results.append(ActionResult(action_type=action_type, success=False, error=str(e)))
        return results

    async def _execute(
        self,
        action: WorkflowAction,
        entity: Mapping[str, Any],
        workflow_id: Optional[UUID]
    ) -> bool:
        if isinstance(action, UpdateFieldAction):
            return await self._update_field(action, entity, workflow_id)
        if isinstance(action, SendNotificationAction):
            return await self._send_notification(action, entity)
        if isinstance(action, SendEmailAction):
            logger.info(
                "Workflow email requested",
                extra={"to": action.to, "subject": action.subject, "entity_id": entity.get("id")}
            )
            return True
        if isinstance(action, UnknownAction):
            raise ValidationException(f"Unknown action type: {action.type_name}")
        raise ValidationException(f"Unsupported action: {action!r}")

    async def _update_field(
        self,
        action: UpdateFieldAction,
        entity: Mapping[str, Any],
        workflow_id: Optional[UUID]
    ) -> bool:
        """Write one field on the ticket; workflows may only write ``UPDATABLE_FIELDS``."""
        ticket_id = _as_uuid(entity.get("id"))
        tenant_id = _as_uuid(entity.get("tenant_id"))
        if ticket_id is None:
            raise ValidationException("update_field requires an entity id")
        if action.field not in UPDATABLE_FIELDS:
            raise ValidationException(f"Field '{action.field}' cannot be updated by a workflow")

        changes = normalize_fields({action.field: action.value})

        async with self._store_factory() as store:
            async with store.transaction():
                ticket = await store.tickets.get(tenant_id, ticket_id)
                if ticket is None:
                    raise ResourceNotFoundException("Ticket", str(ticket_id))

                if action.field == "status":
                    changes = TicketStateMachine.transition_changes(
                        ticket.status, action.value, self._clock()
                    )
                    if not changes:
                        return False

                await store.tickets.update_fields(tenant_id, ticket_id, changes)
                await store.audit_logs.add(AuditLogEntry(
                    entity_type="ticket",
                    entity_id=ticket_id,
                    action="workflow_update",
                    details={**changes, "workflow_id": workflow_id},
                ))
        return True

    async def _send_notification(
        self,
        action: SendNotificationAction,
        entity: Mapping[str, Any]
    ) -> bool:
        user_id = _as_uuid(entity.get("assigned_user_id")) or _as_uuid(action.target_user_id)
        if user_id is None:
            return False

        async with self._store_factory() as store:
            async with store.transaction():
                await store.notifications.create(Notification(
                    tenant_id=_as_uuid(entity.get("tenant_id")),
                    user_id=user_id,
                    title=action.title_for(entity),
                    message=action.message_for(entity),
                    type=NotificationType.WORKFLOW,
                    reference_id=_as_uuid(entity.get("id")),
                ))
        return True
