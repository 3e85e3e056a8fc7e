"""Tests for WorkloadBalancer over in-memory repositories."""

import pytest

from itsm.assignment.application import StaticPolicyProvider, WorkloadBalancer
from itsm.assignment.domain import Agent, AssignmentPolicy
from itsm.config import DEFAULT_CLOSED_STATUSES

from tests.fakes import FakeAgentRepository, FakeTicketCountRepository


def make_agents(*specs):
    return [Agent(id=agent_id, tenant_id=tenant_id, role=role) for agent_id, tenant_id, role in specs]


@pytest.fixture
def agents():
    return make_agents((101, 1, "admin"), (102, 1, "agent"), (103, 1, "user"), (201, 2, "agent"))


class TestComputeWorkload:
    async def test_sums_open_tickets_across_categories(self, agents):
        counts = FakeTicketCountRepository({
            "incident": {101: 3},
            "service_request": {101: 1},
        })
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        snapshot = await balancer.compute_workload(1)

        assert snapshot.counts == {101: 4, 102: 0}
        assert not snapshot.read_failed

    async def test_only_eligible_agents_are_keys(self, agents):
        counts = FakeTicketCountRepository({"incident": {103: 9, 101: 1}})
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        snapshot = await balancer.compute_workload(1)

        assert set(snapshot.counts) == {101, 102}
        assert all(count >= 0 for count in snapshot.counts.values())

    async def test_no_eligible_agents_skips_counting(self):
        counts = FakeTicketCountRepository({"incident": {101: 1}})
        balancer = WorkloadBalancer(FakeAgentRepository([]), counts)

        snapshot = await balancer.compute_workload(1)

        assert snapshot.is_empty
        assert not snapshot.read_failed
        assert counts.requested == {}

    async def test_passes_closed_statuses_per_category(self, agents):
        counts = FakeTicketCountRepository()
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        await balancer.compute_workload(1)

        assert counts.requested == DEFAULT_CLOSED_STATUSES

    async def test_policy_controls_eligible_roles(self, agents):
        policy = AssignmentPolicy(eligible_roles=["agent"])
        balancer = WorkloadBalancer(
            FakeAgentRepository(agents), FakeTicketCountRepository(), StaticPolicyProvider(policy)
        )

        snapshot = await balancer.compute_workload(1)

        assert set(snapshot.counts) == {102}

    async def test_agent_read_failure_returns_failed_snapshot(self):
        balancer = WorkloadBalancer(FakeAgentRepository(fail=True), FakeTicketCountRepository())

        snapshot = await balancer.compute_workload(1)

        assert snapshot.is_empty
        assert snapshot.read_failed
        assert "users table unavailable" in snapshot.failure

    async def test_count_read_failure_returns_failed_snapshot(self, agents):
        counts = FakeTicketCountRepository({"incident": {101: 1}}, fail_on="change_request")
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        snapshot = await balancer.compute_workload(1)

        assert snapshot.is_empty
        assert snapshot.read_failed


class TestSelectNextAgent:
    async def test_least_loaded_agent(self, agents):
        counts = FakeTicketCountRepository({"incident": {101: 3}, "service_request": {101: 1}})
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        assert await balancer.select_next_agent(1) == 102

    async def test_tie_resolves_to_smallest_id(self, agents):
        counts = FakeTicketCountRepository({"incident": {101: 2}, "change_request": {102: 2}})
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        assert await balancer.select_next_agent(1) == 101

    async def test_repeated_calls_agree(self, agents):
        counts = FakeTicketCountRepository({"incident": {101: 1, 102: 1}})
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        first = await balancer.select_next_agent(1)
        second = await balancer.select_next_agent(1)

        assert first == second == 101

    async def test_none_when_no_agents(self):
        balancer = WorkloadBalancer(FakeAgentRepository([]), FakeTicketCountRepository())
        assert await balancer.select_next_agent(1) is None

    async def test_none_when_reads_fail(self):
        balancer = WorkloadBalancer(FakeAgentRepository(fail=True), FakeTicketCountRepository())
        assert await balancer.select_next_agent(1) is None

    async def test_scoped_to_tenant(self, agents):
        balancer = WorkloadBalancer(FakeAgentRepository(agents), FakeTicketCountRepository())
        assert await balancer.select_next_agent(2) == 201


class TestAutoAssign:
    async def test_same_result_as_select_next_agent(self, agents):
        counts = FakeTicketCountRepository({"incident": {101: 3}, "service_request": {101: 1}})
        balancer = WorkloadBalancer(FakeAgentRepository(agents), counts)

        assert await balancer.auto_assign(1) == await balancer.select_next_agent(1) == 102

    async def test_none_leaves_ticket_unassigned(self):
        balancer = WorkloadBalancer(FakeAgentRepository([]), FakeTicketCountRepository())
        assert await balancer.auto_assign(1) is None
