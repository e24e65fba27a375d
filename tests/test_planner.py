"""Tests for capacity planning.

Tests cover:
- Advisory and hard-cap recommendations
- CPU bound and limiting factor reporting
- Requested-count validation per policy
- Memory pressure tiers
"""

from __future__ import annotations

import pytest

from nodefleet.core.errors import InsufficientResourcesError, PolicyViolationError
from nodefleet.core.models import (
    CapacityPolicy,
    LimitingFactor,
    MemoryPressure,
    PolicyMode,
    ResourceSnapshot,
)
from nodefleet.core.planner import CapacityPlanner, assess_memory_pressure


def snapshot(total: float, available: float | None = None, cores: int = 4) -> ResourceSnapshot:
    return ResourceSnapshot(
        total_memory_gb=total,
        available_memory_gb=total if available is None else available,
        cpu_core_count=cores,
    )


@pytest.fixture
def planner() -> CapacityPlanner:
    return CapacityPlanner()


class TestAdvisoryPlan:
    """Advisory variant: recommendation from available memory."""

    def test_small_host_scenario(self, planner, advisory_policy):
        """8GB total, 6GB available, 2GB reserved, 3.5GB/node -> 1 node."""
        plan = planner.plan(snapshot(8, 6, cores=4), advisory_policy)

        assert plan.usable_memory_gb == 4.0
        assert plan.recommended == 1
        assert plan.limiting_factor == LimitingFactor.MEMORY
        assert plan.mode == PolicyMode.ADVISORY
        assert plan.by_cpu is None

    def test_uses_available_not_total(self, planner, advisory_policy):
        """A busy host recommends fewer nodes than its total memory allows."""
        plan = planner.plan(snapshot(64, 9), advisory_policy)
        assert plan.recommended == 2

    def test_recommended_zero_when_memory_short(self, planner, advisory_policy):
        """Usable memory below one node's cost recommends 0, never negative."""
        plan = planner.plan(snapshot(4, 1.5), advisory_policy)

        assert plan.recommended == 0
        assert plan.usable_memory_gb == -0.5

    @pytest.mark.parametrize("available", [0.0, 1.0, 2.0, 3.0, 5.4, 5.5, 12.0, 100.0])
    def test_recommended_never_negative(self, planner, advisory_policy, available):
        plan = planner.plan(snapshot(128, available), advisory_policy)

        assert plan.recommended >= 0
        usable = available - advisory_policy.system_reserved_memory_gb
        if usable < advisory_policy.memory_per_worker_gb:
            assert plan.recommended == 0

    def test_cpu_bound_applies_when_configured(self, planner):
        """With a CPU cost, advisory plans report CPU as the limiting factor."""
        policy = CapacityPolicy(
            memory_per_worker_gb=2, system_reserved_memory_gb=0, cpu_per_worker_cores=2
        )
        plan = planner.plan(snapshot(32, 32, cores=4), policy)

        assert plan.by_memory == 16
        assert plan.by_cpu == 2
        assert plan.recommended == 2
        assert plan.limiting_factor == LimitingFactor.CPU


class TestHardCapPlan:
    """Hard-cap variant: bound from total memory and CPU."""

    def test_large_host_scenario(self, planner, hard_cap_policy):
        """16GB, 8 cores, 1GB reserved, 4.5GB/node, 1 core/node -> 3 nodes."""
        plan = planner.plan(snapshot(16, 2, cores=8), hard_cap_policy)

        assert plan.by_memory == 3
        assert plan.by_cpu == 8
        assert plan.recommended == 3
        assert plan.limiting_factor == LimitingFactor.MEMORY

    def test_uses_total_not_available(self, planner, hard_cap_policy):
        """Hard cap ignores current availability."""
        busy = planner.plan(snapshot(16, 0.5, cores=8), hard_cap_policy)
        idle = planner.plan(snapshot(16, 16, cores=8), hard_cap_policy)
        assert busy.recommended == idle.recommended

    @pytest.mark.parametrize(
        "total,cores",
        [(4, 1), (8, 2), (16, 8), (32, 2), (64, 4), (128, 64), (0.5, 16)],
    )
    def test_recommended_is_min_of_bounds(self, planner, hard_cap_policy, total, cores):
        plan = planner.plan(snapshot(total, cores=cores), hard_cap_policy)

        assert plan.recommended == min(plan.by_memory, plan.by_cpu)
        assert plan.recommended >= 0

    def test_cpu_limited(self, planner, hard_cap_policy):
        """Plenty of memory, few cores: CPU binds."""
        plan = planner.plan(snapshot(64, cores=2), hard_cap_policy)

        assert plan.recommended == 2
        assert plan.limiting_factor == LimitingFactor.CPU

    def test_cpu_bound_disabled(self, planner):
        """cpu_per_worker_cores=0 leaves only the memory bound."""
        policy = CapacityPolicy(
            memory_per_worker_gb=4.5, system_reserved_memory_gb=1, mode=PolicyMode.HARD_CAP
        )
        plan = planner.plan(snapshot(64, cores=1), policy)

        assert plan.by_cpu is None
        assert plan.recommended == plan.by_memory == 14

    def test_insufficient_resources_refuses_launch(self, planner, hard_cap_policy):
        plan = planner.plan(snapshot(4, cores=8), hard_cap_policy)

        assert plan.recommended == 0
        with pytest.raises(InsufficientResourcesError):
            planner.ensure_launchable(plan)

    def test_advisory_zero_is_launchable(self, planner, advisory_policy):
        """Advisory plans never refuse outright."""
        plan = planner.plan(snapshot(4, 1), advisory_policy)
        planner.ensure_launchable(plan)


class TestCheckRequestedCount:
    """Tests for operator count validation."""

    @pytest.mark.parametrize("raw", ["0", "-3", "abc", "", "2.5"])
    def test_invalid_counts_rejected(self, planner, advisory_policy, raw):
        plan = planner.plan(snapshot(16, 16), advisory_policy)
        with pytest.raises(PolicyViolationError):
            planner.check_requested_count(raw, plan)

    def test_advisory_allows_exceeding_with_flag(self, planner, advisory_policy):
        plan = planner.plan(snapshot(8, 6), advisory_policy)
        decision = planner.check_requested_count("5", plan)

        assert decision.count == 5
        assert decision.exceeds_recommended is True

    def test_advisory_within_recommendation(self, planner, advisory_policy):
        plan = planner.plan(snapshot(16, 16), advisory_policy)
        decision = planner.check_requested_count(" 2 ", plan)

        assert decision.count == 2
        assert decision.exceeds_recommended is False

    def test_advisory_zero_recommendation_does_not_flag(self, planner, advisory_policy):
        """With no recommendation at all, any count >= 1 is accepted without a warning."""
        plan = planner.plan(snapshot(4, 1), advisory_policy)
        decision = planner.check_requested_count("2", plan)

        assert decision.exceeds_recommended is False

    def test_hard_cap_rejects_above_maximum(self, planner, hard_cap_policy):
        plan = planner.plan(snapshot(16, cores=8), hard_cap_policy)

        assert planner.check_requested_count("3", plan).count == 3
        with pytest.raises(PolicyViolationError):
            planner.check_requested_count("4", plan)

    def test_hard_cap_with_no_room_rejects_any_count(self, planner, hard_cap_policy):
        plan = planner.plan(snapshot(2, cores=8), hard_cap_policy)
        with pytest.raises(InsufficientResourcesError):
            planner.check_requested_count("1", plan)


class TestMemoryPressure:
    """Tests for assess_memory_pressure()."""

    @pytest.mark.parametrize(
        "usage,expected",
        [
            (0, MemoryPressure.NORMAL),
            (80, MemoryPressure.NORMAL),
            (80.1, MemoryPressure.ELEVATED),
            (90, MemoryPressure.ELEVATED),
            (90.5, MemoryPressure.CRITICAL),
            (100, MemoryPressure.CRITICAL),
        ],
    )
    def test_default_thresholds(self, usage, expected):
        assert assess_memory_pressure(usage) == expected

    def test_custom_thresholds(self):
        assert assess_memory_pressure(60, 50, 70) == MemoryPressure.ELEVATED
        assert assess_memory_pressure(71, 50, 70) == MemoryPressure.CRITICAL
