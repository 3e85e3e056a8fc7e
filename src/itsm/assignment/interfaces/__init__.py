"""
Assignment Interfaces Layer
===========================

FastAPI route handlers exposing workload and next-agent lookups.
"""

from itsm.assignment.interfaces.controllers import assignment_router, get_policy_provider

__all__ = ["assignment_router", "get_policy_provider"]
