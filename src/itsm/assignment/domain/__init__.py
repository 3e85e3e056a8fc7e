"""
Assignment Domain Layer
=======================

Contains:
- Entities: Agent, WorkloadSnapshot
- Value Objects: AssignmentPolicy
- Domain Services: WorkloadCalculator (merge and least-loaded selection)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from itsm.assignment.domain.entities import Agent, WorkloadSnapshot
from itsm.assignment.domain.value_objects import AssignmentPolicy, WorkloadCalculator

__all__ = [
    "Agent",
    "WorkloadSnapshot",
    "AssignmentPolicy",
    "WorkloadCalculator",
]
