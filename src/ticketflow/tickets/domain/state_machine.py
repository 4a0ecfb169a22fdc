"""
Ticket State Machine
====================

Validates and applies ticket status transitions.

Transition map (directed)::

    new      -> open, closed
    open     -> pending, resolved, closed
    pending  -> open, resolved, closed
    resolved -> closed, open
    closed   -> open

Moving to the current status is not a transition: it passes without a check
and changes nothing. ``closed_at`` is stamped when a ticket is closed and
cleared when a closed ticket is reopened.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from ticketflow.config import TicketStatus
from ticketflow.core import InvalidTransitionException

if TYPE_CHECKING:
    from ticketflow.tickets.domain.entities import Ticket


VALID_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    TicketStatus.NEW: (TicketStatus.OPEN, TicketStatus.CLOSED),
    TicketStatus.OPEN: (TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.CLOSED),
    TicketStatus.PENDING: (TicketStatus.OPEN, TicketStatus.RESOLVED, TicketStatus.CLOSED),
    TicketStatus.RESOLVED: (TicketStatus.CLOSED, TicketStatus.OPEN),
    TicketStatus.CLOSED: (TicketStatus.OPEN,),
}


class TicketStateMachine:
    """
    Pure functions over the transition map.

    Stateless; callers pass the current status they read from storage.
    """

    @staticmethod
    def allowed_transitions(current_status: str) -> List[str]:
        """Statuses reachable from ``current_status`` in one step."""
        return list(VALID_TRANSITIONS.get(current_status, ()))

    @staticmethod
    def can_transition(from_status: str, to_status: str) -> bool:
        """Whether ``from_status -> to_status`` is an edge of the map."""
        return to_status in VALID_TRANSITIONS.get(from_status, ())

    @staticmethod
    def transition_changes(
        current_status: str,
        target_status: Optional[str],
        now: datetime
    ) -> dict:
        """
        Field changes implied by moving a ticket to ``target_status``.

        Returns an empty dict when there is no status change. The returned
        dict carries ``status`` and, when applicable, ``closed_at``.

        Raises:
            InvalidTransitionException: target is not reachable from current.
        """
        if target_status is None or target_status == current_status:
            return {}

        if not TicketStateMachine.can_transition(current_status, target_status):
            raise InvalidTransitionException(
                current_status,
                target_status,
                TicketStateMachine.allowed_transitions(current_status),
            )

        changes: dict = {"status": target_status}
        if target_status == TicketStatus.CLOSED:
            changes["closed_at"] = now
        elif current_status == TicketStatus.CLOSED and target_status == TicketStatus.OPEN:
            changes["closed_at"] = None
        return changes

    @staticmethod
    def apply_transition(
        ticket: "Ticket",
        target_status: str,
        now: Optional[datetime] = None
    ) -> "Ticket":
        """
        Return a copy of ``ticket`` moved to ``target_status``.

        The input ticket is never mutated, so a rejected transition leaves it
        exactly as it was.
        """
        changes = TicketStateMachine.transition_changes(
            ticket.status, target_status, now or datetime.now(timezone.utc)
        )
        if not changes:
            return ticket
        return replace(ticket, **changes)
