"""
Ticket Interfaces Layer
========================

FastAPI routes for the tickets module.
"""

from ticketflow.tickets.interfaces.controllers import router as tickets_router

__all__ = ["tickets_router"]
