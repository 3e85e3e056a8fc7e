"""
Assignment Controllers (API Routes)
====================================

Read-only endpoints over the Workload Balancer.

Controllers are thin - they delegate to application services.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from itsm.assignment.application import (
    IAssignmentPolicyProvider,
    NextAgentResponse,
    WorkloadBalancer,
    WorkloadResponse,
)
from itsm.assignment.infrastructure import (
    SQLAlchemyAgentRepository,
    SQLAlchemyTicketCountRepository,
    get_policy_manager,
)
from itsm.infrastructure.database import get_session

router = APIRouter(prefix="/assignment", tags=["Assignment"])


WORKLOAD_RESPONSE_EXAMPLE = {
    "tenant_id": 1,
    "agents": [
        {"agent_id": 101, "open_tickets": 4},
        {"agent_id": 102, "open_tickets": 0}
    ],
    "total_open": 4,
    "read_failed": False
}


# ========== Dependencies ==========

def get_policy_provider() -> IAssignmentPolicyProvider:
    """Get the process-wide assignment policy provider."""
    return get_policy_manager()


async def get_workload_balancer(
    session: AsyncSession = Depends(get_session),
    policy_provider: IAssignmentPolicyProvider = Depends(get_policy_provider)
) -> WorkloadBalancer:
    """Get workload balancer instance."""
    return WorkloadBalancer(
        SQLAlchemyAgentRepository(session),
        SQLAlchemyTicketCountRepository(session),
        policy_provider
    )


# ========== Route Handlers ==========

@router.get(
    "/tenants/{tenant_id}/workload",
    response_model=WorkloadResponse,
    summary="Get agent workload",
    description="""
    Open-ticket counts for every assignable agent (role `admin` or `agent`)
    of the tenant, summed over incidents, service requests and change requests.

    Idle agents are listed with `0`. When the counts could not be read the
    list is empty and `read_failed` is `true`.
    """,
    responses={
        200: {
            "description": "Workload snapshot",
            "content": {"application/json": {"example": WORKLOAD_RESPONSE_EXAMPLE}}
        }
    }
)
async def get_workload(
    tenant_id: int,
    balancer: WorkloadBalancer = Depends(get_workload_balancer)
):
    snapshot = await balancer.compute_workload(tenant_id)
    return WorkloadResponse.from_snapshot(snapshot)


@router.get(
    "/tenants/{tenant_id}/next-agent",
    response_model=NextAgentResponse,
    summary="Recommend next assignee",
    description="""
    The least-loaded agent for the tenant. Ties go to the lowest agent id.
    `agent_id` is null when no agent is eligible or the counts could not be read.
    """
)
async def get_next_agent(
    tenant_id: int,
    balancer: WorkloadBalancer = Depends(get_workload_balancer)
):
    snapshot = await balancer.compute_workload(tenant_id)
    agent_id = snapshot.least_loaded()

    return NextAgentResponse(
        tenant_id=tenant_id,
        agent_id=agent_id,
        open_tickets=snapshot.counts.get(agent_id) if agent_id is not None else None,
        read_failed=snapshot.read_failed
    )


assignment_router = router
