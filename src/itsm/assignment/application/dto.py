"""
Assignment Application DTOs
============================

Pydantic response models for the assignment API.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from itsm.assignment.domain import WorkloadSnapshot


class AgentWorkloadResponse(BaseModel):
    """Open-ticket count for one agent."""
    agent_id: int
    open_tickets: int = Field(..., ge=0)


class WorkloadResponse(BaseModel):
    """Workload snapshot for a tenant."""
    tenant_id: int
    agents: List[AgentWorkloadResponse] = Field(default_factory=list)
    total_open: int = Field(default=0, ge=0)
    read_failed: bool = Field(
        default=False,
        description="True when the snapshot is empty because reads failed"
    )

    @classmethod
    def from_snapshot(cls, snapshot: WorkloadSnapshot) -> "WorkloadResponse":
        return cls(**snapshot.to_dict())


class NextAgentResponse(BaseModel):
    """Auto-assignment recommendation."""
    tenant_id: int
    agent_id: Optional[int] = Field(None, description="Least-loaded agent, null when none")
    open_tickets: Optional[int] = None
    read_failed: bool = False
