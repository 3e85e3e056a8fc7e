"""
Assignment Application Layer
============================

Contains:
- Services: WorkloadBalancer
- Repository interfaces the balancer reads through
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from itsm.assignment.application.dto import (
    AgentWorkloadResponse,
    WorkloadResponse,
    NextAgentResponse,
)
from itsm.assignment.application.services import (
    WorkloadBalancer,
    IAgentRepository,
    ITicketCountRepository,
    IAssignmentPolicyProvider,
    StaticPolicyProvider,
)

__all__ = [
    # DTOs
    "AgentWorkloadResponse",
    "WorkloadResponse",
    "NextAgentResponse",
    # Services
    "WorkloadBalancer",
    "StaticPolicyProvider",
    # Repository Interfaces
    "IAgentRepository",
    "ITicketCountRepository",
    "IAssignmentPolicyProvider",
]
