"""Data models for nodefleet.

Uses Pydantic for validated, immutable records passed between the probe,
planner, launcher and console.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class PolicyMode(str, Enum):
    """How the planner's recommendation is applied to the requested count."""

    ADVISORY = "advisory"
    HARD_CAP = "hard_cap"


class IdentityMode(str, Enum):
    """How worker identities are derived for a run."""

    DISTINCT = "distinct"
    OFFSET = "offset"


class LimitingFactor(str, Enum):
    """Resource that binds the recommended worker count."""

    MEMORY = "memory"
    CPU = "cpu"


class SessionStatus(str, Enum):
    """Liveness of a session as reported by the session manager."""

    ALIVE = "alive"
    STOPPED = "stopped"


class MemoryPressure(str, Enum):
    """Advisory tier for current host memory usage."""

    NORMAL = "normal"
    ELEVATED = "elevated"
    CRITICAL = "critical"


# --- Resource Models ---


class ResourceSnapshot(BaseModel):
    """Host memory and CPU facts at the time of a probe."""

    model_config = ConfigDict(frozen=True)

    total_memory_gb: float
    available_memory_gb: float
    cpu_core_count: int
    used_memory_gb: float = 0.0
    usage_percent: float = 0.0
    fallback: bool = False  # True when the values are defaults, not readings


class CapacityPolicy(BaseModel):
    """Per-worker resource cost and host reservation."""

    model_config = ConfigDict(frozen=True)

    memory_per_worker_gb: float = Field(default=3.5, gt=0)
    system_reserved_memory_gb: float = Field(default=2.0, ge=0)
    cpu_per_worker_cores: int = Field(default=0, ge=0)  # 0 disables the CPU bound
    mode: PolicyMode = PolicyMode.ADVISORY

    @property
    def cpu_bound_enabled(self) -> bool:
        return self.cpu_per_worker_cores > 0


class CapacityPlan(BaseModel):
    """Planner output: how many workers fit and why."""

    model_config = ConfigDict(frozen=True)

    recommended: int
    limiting_factor: LimitingFactor
    mode: PolicyMode
    by_memory: int
    by_cpu: int | None = None
    usable_memory_gb: float

    @property
    def is_hard_cap(self) -> bool:
        return self.mode == PolicyMode.HARD_CAP


# --- Worker and Session Models ---


class WorkerSpec(BaseModel):
    """One worker to launch: its identity and 0-based ordinal."""

    model_config = ConfigDict(frozen=True)

    identity: str
    index: int = Field(ge=0)


class SessionHandle(BaseModel):
    """A session the launcher successfully created.

    Liveness is not stored here; ask the SessionRegistry, which re-queries
    the session manager every time.
    """

    model_config = ConfigDict(frozen=True)

    session_name: str
    worker: WorkerSpec
    launched: bool = True
    launch_script: Path | None = None

    @property
    def identity(self) -> str:
        return self.worker.identity


class LaunchOutcome(BaseModel):
    """Result of launching a single worker: a handle or a failure reason."""

    model_config = ConfigDict(frozen=True)

    worker: WorkerSpec
    session_name: str
    handle: SessionHandle | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.handle is not None


class LaunchReport(BaseModel):
    """All launch outcomes for a run, in index order."""

    outcomes: list[LaunchOutcome] = Field(default_factory=list)
    stop_script: Path | None = None

    @property
    def handles(self) -> list[SessionHandle]:
        return [o.handle for o in self.outcomes if o.handle is not None]

    @property
    def failures(self) -> list[LaunchOutcome]:
        return [o for o in self.outcomes if not o.ok]
