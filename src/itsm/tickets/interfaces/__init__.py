"""
Tickets Interfaces Layer
========================

FastAPI route handlers for ticket intake.
"""

from itsm.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
