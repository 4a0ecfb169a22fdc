"""
Routing Application Layer
==========================

Contains the auto-assignment router and the directory interface it reads.
"""

from ticketflow.routing.application.services import AutoAssignmentRouter, IAssignmentDirectory

__all__ = ["AutoAssignmentRouter", "IAssignmentDirectory"]
