"""
Notifications Interfaces Layer
==============================

FastAPI route handlers for notification settings.
"""

from itsm.notifications.interfaces.controllers import notifications_router

__all__ = ["notifications_router"]
