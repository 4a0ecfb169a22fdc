"""
Workflow Actions
================

Tagged action descriptors.

Stored actions look like ``{"type": "update_field", "field": ..., "value": ...}``.
Parameters may also be nested under ``config``; top-level keys win over
nested ones. Unknown types parse to ``UnknownAction``, which the engine
reports as a failed action.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from ticketflow.workflows.domain.conditions import get_field_value


class ActionType(str, Enum):
    UPDATE_FIELD = "update_field"
    SEND_NOTIFICATION = "send_notification"
    SEND_EMAIL = "send_email"
    UNKNOWN = "unknown"


DEFAULT_NOTIFICATION_TITLE = "Workflow Notification"
DEFAULT_NOTIFICATION_MESSAGE = "A workflow was triggered for ticket {{code}}"

_TEMPLATE_PATTERN = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


def render_template(text: Optional[str], entity: Mapping[str, Any]) -> Optional[str]:
    """Replace ``{{path}}`` placeholders with snapshot values; missing ones become ''."""
    if text is None:
        return None

    def _substitute(match: re.Match) -> str:
        value = get_field_value(entity, match.group(1))
        return "" if value is None else str(value)

    return _TEMPLATE_PATTERN.sub(_substitute, str(text))


@dataclass(frozen=True)
class UpdateFieldAction:
    field: Optional[str]
    value: Any = None
    type: ActionType = ActionType.UPDATE_FIELD


@dataclass(frozen=True)
class SendNotificationAction:
    subject: Optional[str] = None
    message: Optional[str] = None
    target_user_id: Optional[str] = None
    type: ActionType = ActionType.SEND_NOTIFICATION

    def title_for(self, entity: Mapping[str, Any]) -> str:
        return render_template(self.subject or DEFAULT_NOTIFICATION_TITLE, entity)

    def message_for(self, entity: Mapping[str, Any]) -> str:
        return render_template(self.message or DEFAULT_NOTIFICATION_MESSAGE, entity)


@dataclass(frozen=True)
class SendEmailAction:
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    type: ActionType = ActionType.SEND_EMAIL


@dataclass(frozen=True)
class UnknownAction:
    type_name: Any
    params: Dict[str, Any] = field(default_factory=dict)
    type: ActionType = ActionType.UNKNOWN


WorkflowAction = Union[UpdateFieldAction, SendNotificationAction, SendEmailAction, UnknownAction]


def parse_action(raw: Any) -> WorkflowAction:
    if not isinstance(raw, Mapping):
        return UnknownAction(type_name=raw)

    params: Dict[str, Any] = {}
    if isinstance(raw.get("config"), Mapping):
        params.update(raw["config"])
    params.update({k: v for k, v in raw.items() if k != "config"})

    type_name = params.get("type")
    if type_name == ActionType.UPDATE_FIELD.value:
        return UpdateFieldAction(field=params.get("field"), value=params.get("value"))
    if type_name == ActionType.SEND_NOTIFICATION.value:
        return SendNotificationAction(
            subject=params.get("subject") or params.get("title"),
            message=params.get("message"),
            target_user_id=params.get("target_user_id") or params.get("userId"),
        )
    if type_name == ActionType.SEND_EMAIL.value:
        return SendEmailAction(
            to=params.get("to"),
            subject=params.get("subject"),
            body=params.get("body"),
        )
    return UnknownAction(type_name=type_name, params=params)


def parse_actions(actions: Union[None, str, List[Any]]) -> List[WorkflowAction]:
    """Accepts None, a JSON string, or a list of action dicts."""
    if actions is None:
        return []
    if isinstance(actions, str):
        actions = json.loads(actions) if actions.strip() else []
        if actions is None:
            return []
    return [parse_action(raw) for raw in actions]


@dataclass
class ActionResult:
    """Outcome of one executed action."""
    action_type: str
    success: bool
    skipped: bool = False
    error: Optional[str] = None
