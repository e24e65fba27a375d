"""Worker identity collection.

Two derivation policies, chosen per deployment via IdentityMode:
- DISTINCT: the operator supplies one identity per worker.
- OFFSET: the operator supplies a base identity; worker i gets base + i.
"""

from nodefleet.core.errors import DuplicateIdentityError, InvalidIdentityError
from nodefleet.core.models import WorkerSpec


def normalize_identity(raw: str) -> str:
    """Strip and check that an identity is a non-negative integer string."""
    value = (raw or "").strip()
    if not (value.isascii() and value.isdecimal()):
        raise InvalidIdentityError(f"Node ID must be numeric, got {raw!r}")
    return value


class IdentityCollector:
    """Accumulates distinct identities for a fixed number of workers.

    A rejected offer (invalid or duplicate) leaves the collector unchanged,
    so the caller can re-prompt for the same slot.
    """

    def __init__(self, count: int):
        self.count = count
        self._specs: list[WorkerSpec] = []

    @property
    def specs(self) -> list[WorkerSpec]:
        return list(self._specs)

    @property
    def remaining(self) -> int:
        return self.count - len(self._specs)

    @property
    def complete(self) -> bool:
        return self.remaining <= 0

    def offer(self, raw: str) -> WorkerSpec:
        if self.complete:
            raise ValueError(f"All {self.count} identities already collected")

        identity = normalize_identity(raw)
        if any(spec.identity == identity for spec in self._specs):
            raise DuplicateIdentityError(f"Node ID {identity} was already entered")

        spec = WorkerSpec(identity=identity, index=len(self._specs))
        self._specs.append(spec)
        return spec


def derive_offset_specs(base: str, count: int) -> list[WorkerSpec]:
    """Build `count` specs whose identities count up from `base`."""
    start = int(normalize_identity(base))
    return [WorkerSpec(identity=str(start + i), index=i) for i in range(count)]
