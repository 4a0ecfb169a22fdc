"""
SLA Domain Layer
================

Value objects and pure calculations for SLA deadlines.
"""

from ticketflow.sla.domain.value_objects import (
    SLATargets,
    SLADeadlines,
    SLADefaults,
    SLACalculator,
    DEFAULT_SLA_TARGETS,
    FALLBACK_SLA_TARGETS,
)

__all__ = [
    "SLATargets",
    "SLADeadlines",
    "SLADefaults",
    "SLACalculator",
    "DEFAULT_SLA_TARGETS",
    "FALLBACK_SLA_TARGETS",
]
