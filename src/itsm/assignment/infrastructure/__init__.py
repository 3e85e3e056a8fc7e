"""
Assignment Infrastructure Layer
===============================

- Repositories: SQLAlchemy reads of users and open-ticket counts
- External: YAML assignment policy with file watching
"""

from itsm.assignment.infrastructure.repositories import (
    SQLAlchemyAgentRepository,
    SQLAlchemyTicketCountRepository,
)
from itsm.assignment.infrastructure.external import (
    AssignmentPolicyManager,
    PolicyFileHandler,
    get_policy_manager,
)

__all__ = [
    "SQLAlchemyAgentRepository",
    "SQLAlchemyTicketCountRepository",
    "AssignmentPolicyManager",
    "PolicyFileHandler",
    "get_policy_manager",
]
