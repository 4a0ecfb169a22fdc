"""
SLA Value Objects
==================

Immutable value objects for SLA deadline computation.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict

from pydantic import BaseModel, Field, field_validator

from ticketflow.config import Priority


@dataclass(frozen=True)
class SLATargets:
    """Response and resolution targets, in minutes."""
    response_minutes: int
    resolution_minutes: int


@dataclass(frozen=True)
class SLADeadlines:
    """Absolute deadlines for a ticket."""
    first_response_due_at: datetime
    resolution_due_at: datetime


# Used when a tenant has no policy for the priority
DEFAULT_SLA_TARGETS: Dict[str, SLATargets] = {
    Priority.URGENT: SLATargets(response_minutes=60, resolution_minutes=240),
    Priority.HIGH: SLATargets(response_minutes=240, resolution_minutes=1440),
    Priority.LOW: SLATargets(response_minutes=2880, resolution_minutes=4320),
}

# Medium and any unrecognised priority
FALLBACK_SLA_TARGETS = SLATargets(response_minutes=1440, resolution_minutes=2880)


class SLADefaults(BaseModel):
    """
    Built-in SLA table, optionally overridden from YAML.

    ``default_targets`` maps priority to ``{"response": m, "resolution": m}``.
    Priorities missing from the mapping keep the built-in values.
    """
    default_targets: Dict[str, Dict[str, int]] = Field(
        default_factory=dict,
        validate_default=True,
        description="SLA targets in minutes by priority"
    )
    fallback: Dict[str, int] = Field(
        default_factory=lambda: {
            "response": FALLBACK_SLA_TARGETS.response_minutes,
            "resolution": FALLBACK_SLA_TARGETS.resolution_minutes,
        },
        description="Targets for medium and unknown priorities"
    )

    @field_validator("default_targets")
    @classmethod
    def validate_default_targets(cls, v: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
        """Fill in the built-in table under any overrides."""
        merged = {
            priority: {
                "response": targets.response_minutes,
                "resolution": targets.resolution_minutes,
            }
            for priority, targets in DEFAULT_SLA_TARGETS.items()
        }
        for priority, targets in v.items():
            for sla_type, minutes in targets.items():
                if sla_type not in ("response", "resolution"):
                    raise ValueError(f"unknown SLA type '{sla_type}' for priority '{priority}'")
                if minutes <= 0:
                    raise ValueError(f"SLA minutes must be positive, got {minutes}")
            merged.setdefault(priority, {}).update(targets)
        return merged

    def targets_for(self, priority: str) -> SLATargets:
        """Default targets for ``priority``."""
        entry = self.default_targets.get(priority, self.fallback)
        return SLATargets(
            response_minutes=entry.get("response", self.fallback["response"]),
            resolution_minutes=entry.get("resolution", self.fallback["resolution"]),
        )


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Deterministic given ``now``.
    """

    @staticmethod
    def calculate_deadlines(now: datetime, targets: SLATargets) -> SLADeadlines:
        return SLADeadlines(
            first_response_due_at=now + timedelta(minutes=targets.response_minutes),
            resolution_due_at=now + timedelta(minutes=targets.resolution_minutes),
        )
