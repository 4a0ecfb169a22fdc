"""
Data Store Contract
===================

A data store is a scoped handle over one database session. Every repository
it exposes writes through that session, so writes issued inside
``transaction()`` share a single commit or rollback.

Services never hold a "current transaction" of their own: they open a store
from a ``StoreFactory`` per operation and bind repositories to it.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, AsyncContextManager, Callable

if TYPE_CHECKING:
    from ticketflow.routing.application.services import IAssignmentDirectory
    from ticketflow.sla.application.services import ISLAPolicyRepository
    from ticketflow.tickets.application.interfaces import (
        IAuditLogRepository,
        IContactRepository,
        IEmailTemplateRepository,
        INotificationRepository,
        ITicketRepository,
    )
    from ticketflow.workflows.application.services import IWorkflowRepository


class IDataStore(ABC):
    """Repositories bound to one unit of work."""

    tickets: "ITicketRepository"
    contacts: "IContactRepository"
    audit_logs: "IAuditLogRepository"
    notifications: "INotificationRepository"
    email_templates: "IEmailTemplateRepository"
    sla_policies: "ISLAPolicyRepository"
    assignment: "IAssignmentDirectory"
    workflows: "IWorkflowRepository"

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Any]:
        """Begin a transaction; commits on clean exit, rolls back on error."""


StoreFactory = Callable[[], AsyncContextManager[IDataStore]]
