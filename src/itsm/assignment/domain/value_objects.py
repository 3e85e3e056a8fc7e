"""
Assignment Value Objects
=========================

Immutable value objects and stateless calculations for the assignment domain.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from itsm.config import DEFAULT_CLOSED_STATUSES, DEFAULT_ELIGIBLE_ROLES, TICKET_CATEGORIES


class WorkloadCalculator:
    """
    Pure functions for workload aggregation.

    All merge and selection rules live here so the balancer service and
    tests share one implementation.
    """

    @staticmethod
    def merge_counts(
        agent_ids: Iterable[int],
        category_counts: Iterable[Mapping[Optional[int], int]]
    ) -> Dict[int, int]:
        """
        Sum per-category open counts into one map keyed by eligible agent.

        Args:
            agent_ids: Eligible agent identifiers; each appears in the result
            category_counts: One assignee -> count map per ticket category

        Returns:
            Agent id -> total open tickets. Rows for unassigned tickets or
            for assignees outside ``agent_ids`` are ignored.
        """
        workload = {agent_id: 0 for agent_id in agent_ids}

        for counts in category_counts:
            for assignee, count in counts.items():
                if assignee is None or assignee not in workload:
                    continue
                workload[assignee] += int(count)

        return workload

    @staticmethod
    def select_least_loaded(workload: Mapping[int, int]) -> Optional[int]:
        """
        Pick the agent with the minimum count, smallest id on ties.

        Returns:
            Agent id, or None for an empty workload
        """
        if not workload:
            return None
        return min(workload.items(), key=lambda item: (item[1], item[0]))[0]


class AssignmentPolicy(BaseModel):
    """
    Assignment configuration loaded from YAML.

    Which roles are assignable and which statuses end a ticket's
    contribution to workload, per category.
    """
    eligible_roles: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ELIGIBLE_ROLES),
        description="User roles eligible for auto-assignment"
    )
    closed_statuses: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CLOSED_STATUSES.items()},
        description="Terminal statuses per ticket category"
    )

    @field_validator("eligible_roles")
    @classmethod
    def validate_eligible_roles(cls, v: List[str]) -> List[str]:
        if not v:
            return list(DEFAULT_ELIGIBLE_ROLES)
        return v

    @field_validator("closed_statuses")
    @classmethod
    def validate_closed_statuses(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Reject unknown categories and fill in missing ones with defaults."""
        unknown = set(v) - set(TICKET_CATEGORIES)
        if unknown:
            raise ValueError(f"unknown ticket categories: {sorted(unknown)}")

        for category in TICKET_CATEGORIES:
            if category not in v:
                v[category] = list(DEFAULT_CLOSED_STATUSES[category])

        return v

    def closed_statuses_for(self, category: str) -> List[str]:
        """Terminal statuses for one category."""
        return self.closed_statuses.get(category, DEFAULT_CLOSED_STATUSES.get(category, []))
