"""Fleet configuration, loaded from .nodefleet/config.yaml."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

from nodefleet.core.launcher import DEFAULT_SESSION_PREFIX
from nodefleet.core.models import CapacityPolicy, IdentityMode, PolicyMode

CONFIG_DIR = ".nodefleet"
CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG_YAML = """# nodefleet configuration

# advisory: recommend a worker count, warn when exceeded
# hard_cap: refuse counts above the computed maximum
policy_mode: advisory

# distinct: enter one Node ID per worker
# offset: enter a base Node ID, workers get base, base+1, ...
identity_mode: distinct

# Per-worker cost and host reservation
memory_per_worker_gb: 3.5
system_reserved_memory_gb: 2
cpu_per_worker_cores: 0  # 0 disables the CPU bound

# Sessions and launch pacing
session_prefix: nexus_node
launch_delay_seconds: 1

# Worker binary
worker_cli_path: ~/.nexus/bin/nexus-network
worker_install_command: "curl -L https://cli.nexus.xyz | sh"
session_manager_install_command: "sudo apt-get update && sudo apt-get install -y screen"

# Write NODE_OPTIONS / ulimit ceilings into launch scripts
resource_limits: true

# Memory status thresholds (percent)
memory_elevated_percent: 80
memory_critical_percent: 90

log_level: WARNING
"""


class FleetConfig(BaseModel):
    """Deployment settings for a nodefleet run."""

    policy_mode: PolicyMode = PolicyMode.ADVISORY
    identity_mode: IdentityMode = IdentityMode.DISTINCT

    memory_per_worker_gb: float = Field(default=3.5, gt=0)
    system_reserved_memory_gb: float = Field(default=2.0, ge=0)
    cpu_per_worker_cores: int = Field(default=0, ge=0)

    session_prefix: str = Field(default=DEFAULT_SESSION_PREFIX, pattern=r"^[A-Za-z0-9_.-]+$")
    launch_delay_seconds: float = Field(default=1.0, ge=0)

    worker_cli_path: Path = Path("~/.nexus/bin/nexus-network")
    worker_install_command: str | None = "curl -L https://cli.nexus.xyz | sh"
    session_manager_install_command: str | None = (
        "sudo apt-get update && sudo apt-get install -y screen"
    )
    work_dir: Path | None = None
    resource_limits: bool = True

    memory_elevated_percent: float = Field(default=80.0, gt=0, lt=100)
    memory_critical_percent: float = Field(default=90.0, gt=0, le=100)

    log_level: str = "WARNING"

    @model_validator(mode="after")
    def _check_thresholds(self) -> "FleetConfig":
        if self.memory_critical_percent <= self.memory_elevated_percent:
            raise ValueError("memory_critical_percent must exceed memory_elevated_percent")
        return self

    def policy(self) -> CapacityPolicy:
        return CapacityPolicy(
            memory_per_worker_gb=self.memory_per_worker_gb,
            system_reserved_memory_gb=self.system_reserved_memory_gb,
            cpu_per_worker_cores=self.cpu_per_worker_cores,
            mode=self.policy_mode,
        )

    @property
    def resolved_cli_path(self) -> Path:
        return self.worker_cli_path.expanduser()

    def resolved_work_dir(self, base: Path) -> Path:
        if self.work_dir is None:
            return base
        return self.work_dir if self.work_dir.is_absolute() else base / self.work_dir


def config_path(repo_path: Path) -> Path:
    return repo_path / CONFIG_DIR / CONFIG_FILE


def load_fleet_config(repo_path: Path) -> FleetConfig:
    """Load .nodefleet/config.yaml; defaults when the file is absent.

    Raises:
        yaml.YAMLError: the file is not valid YAML.
        pydantic.ValidationError: the values fail validation.
        ValueError: the document is not a mapping.
    """
    path = config_path(repo_path)
    if not path.exists():
        return FleetConfig()

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return FleetConfig()
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return FleetConfig(**data)
