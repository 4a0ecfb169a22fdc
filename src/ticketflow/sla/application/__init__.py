"""
SLA Application Layer
======================

Contains the SLA resolver service and the policy repository interface it
depends on.
"""

from ticketflow.sla.application.services import SLAResolver, ISLAPolicyRepository

__all__ = ["SLAResolver", "ISLAPolicyRepository"]
