"""Core modules for nodefleet."""

from nodefleet.core.models import (
    CapacityPlan,
    CapacityPolicy,
    LaunchOutcome,
    LaunchReport,
    ResourceSnapshot,
    SessionHandle,
    SessionStatus,
    WorkerSpec,
)

__all__ = [
    "CapacityPlan",
    "CapacityPolicy",
    "LaunchOutcome",
    "LaunchReport",
    "ResourceSnapshot",
    "SessionHandle",
    "SessionStatus",
    "WorkerSpec",
]
