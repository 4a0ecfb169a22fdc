"""
Workflows Domain Layer
======================

Contains:
- Entities: Workflow
- Conditions: ConditionOperator, Condition, check_conditions
- Actions: tagged action descriptors and their parser

This layer is framework-agnostic and contains pure business logic.
"""

from ticketflow.workflows.domain.entities import Workflow
from ticketflow.workflows.domain.conditions import (
    ConditionOperator,
    Condition,
    check_conditions,
    parse_conditions,
    get_field_value,
    loose_equals,
)
from ticketflow.workflows.domain.actions import (
    ActionType,
    ActionResult,
    UpdateFieldAction,
    SendNotificationAction,
    SendEmailAction,
    UnknownAction,
    WorkflowAction,
    parse_action,
    parse_actions,
    render_template,
    DEFAULT_NOTIFICATION_TITLE,
    DEFAULT_NOTIFICATION_MESSAGE,
)

__all__ = [
    "Workflow",
    "ConditionOperator",
    "Condition",
    "check_conditions",
    "parse_conditions",
    "get_field_value",
    "loose_equals",
    "ActionType",
    "ActionResult",
    "UpdateFieldAction",
    "SendNotificationAction",
    "SendEmailAction",
    "UnknownAction",
    "WorkflowAction",
    "parse_action",
    "parse_actions",
    "render_template",
    "DEFAULT_NOTIFICATION_TITLE",
    "DEFAULT_NOTIFICATION_MESSAGE",
]
