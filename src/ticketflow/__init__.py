"""
Ticketflow
==========

Ticket lifecycle and workflow automation service.

Architecture Pattern: Modular Monolith
- Each module (tickets, sla, routing, workflows) is a bounded context
- Shared kernel (core, shared, infrastructure) contains only generic plumbing
- Each context is split into domain / application / infrastructure layers
"""

__version__ = "1.0.0"
