"""Capacity planning: how many workers the host can carry.

Two policy variants:
- ADVISORY: recommendation from *available* memory minus the reservation.
  The operator may exceed it after acknowledging a warning.
- HARD_CAP: bound from *total* memory minus the reservation, and from CPU
  cores when a per-worker CPU cost is configured. Requests outside
  [1, recommended] are rejected.
"""

import logging
import math
from dataclasses import dataclass

from nodefleet.core.errors import InsufficientResourcesError, PolicyViolationError
from nodefleet.core.models import (
    CapacityPlan,
    CapacityPolicy,
    LimitingFactor,
    MemoryPressure,
    PolicyMode,
    ResourceSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass
class CountDecision:
    """A validated worker count and whether it exceeds the recommendation."""

    count: int
    exceeds_recommended: bool = False


class CapacityPlanner:
    """Converts a ResourceSnapshot into a CapacityPlan under a CapacityPolicy."""

    def plan(self, snapshot: ResourceSnapshot, policy: CapacityPolicy) -> CapacityPlan:
        if policy.mode == PolicyMode.HARD_CAP:
            usable = snapshot.total_memory_gb - policy.system_reserved_memory_gb
        else:
            usable = snapshot.available_memory_gb - policy.system_reserved_memory_gb

        by_memory = max(0, math.floor(usable / policy.memory_per_worker_gb))

        by_cpu = None
        if policy.cpu_bound_enabled:
            by_cpu = max(0, snapshot.cpu_core_count // policy.cpu_per_worker_cores)

        if by_cpu is not None and by_cpu < by_memory:
            recommended, factor = by_cpu, LimitingFactor.CPU
        else:
            recommended, factor = by_memory, LimitingFactor.MEMORY

        logger.debug(
            f"Planned {recommended} worker(s) [{policy.mode.value}]: "
            f"usable={usable:.2f}GB by_memory={by_memory} by_cpu={by_cpu}"
        )
        return CapacityPlan(
            recommended=recommended,
            limiting_factor=factor,
            mode=policy.mode,
            by_memory=by_memory,
            by_cpu=by_cpu,
            usable_memory_gb=round(usable, 2),
        )

    def ensure_launchable(self, plan: CapacityPlan) -> None:
        """Hard-cap plans with no room for a worker refuse to launch anything."""
        if plan.is_hard_cap and plan.recommended <= 0:
            raise InsufficientResourcesError(
                f"Insufficient {plan.limiting_factor.value} for a single worker "
                f"(usable memory {plan.usable_memory_gb} GB)"
            )

    def check_requested_count(self, raw: str, plan: CapacityPlan) -> CountDecision:
        """Validate operator input for the worker count.

        Raises:
            PolicyViolationError: non-numeric, below 1, or above a hard cap.
        """
        try:
            count = int(str(raw).strip())
        except ValueError:
            raise PolicyViolationError(f"Worker count must be a number, got {raw!r}")

        if count < 1:
            raise PolicyViolationError("Worker count must be at least 1")

        if plan.is_hard_cap:
            self.ensure_launchable(plan)
            if count > plan.recommended:
                raise PolicyViolationError(
                    f"Worker count {count} exceeds the maximum of {plan.recommended}"
                )
            return CountDecision(count=count)

        return CountDecision(
            count=count,
            exceeds_recommended=plan.recommended > 0 and count > plan.recommended,
        )


def assess_memory_pressure(
    usage_percent: float,
    elevated_percent: float = 80.0,
    critical_percent: float = 90.0,
) -> MemoryPressure:
    """Map a usage percentage onto the advisory tiers."""
    if usage_percent > critical_percent:
        return MemoryPressure.CRITICAL
    if usage_percent > elevated_percent:
        return MemoryPressure.ELEVATED
    return MemoryPressure.NORMAL
