"""Host resource probe.

Reads memory facts from psutil.virtual_memory() and the core count from
psutil.cpu_count(). Never raises: when memory facts cannot be read the
probe returns a documented fallback snapshot and logs a warning.
"""

import logging

import psutil

from nodefleet.core.errors import ProbeError
from nodefleet.core.models import ResourceSnapshot

logger = logging.getLogger(__name__)

FALLBACK_TOTAL_GB = 8.0
FALLBACK_AVAILABLE_GB = 6.0
FALLBACK_CPU_CORES = 4

_BYTES_PER_GB = 1024**3


def _gb(num_bytes: float) -> float:
    return num_bytes / _BYTES_PER_GB


class ResourceProbe:
    """Reads a fresh ResourceSnapshot on every call to probe()."""

    def probe(self) -> ResourceSnapshot:
        try:
            return self._read_memory(self.cpu_core_count())
        except ProbeError as e:
            logger.warning(f"Unable to read memory facts ({e}); using fallback values")
            return ResourceSnapshot(
                total_memory_gb=FALLBACK_TOTAL_GB,
                available_memory_gb=FALLBACK_AVAILABLE_GB,
                cpu_core_count=FALLBACK_CPU_CORES,
                used_memory_gb=0.0,
                usage_percent=0.0,
                fallback=True,
            )

    def cpu_core_count(self) -> int:
        """Logical core count; 4 when psutil cannot determine it."""
        try:
            count = psutil.cpu_count()
        except (psutil.Error, OSError) as e:
            logger.warning(f"Unable to count CPU cores: {e}")
            return FALLBACK_CPU_CORES

        if not count:
            logger.warning("CPU core count is undetermined")
            return FALLBACK_CPU_CORES
        return count

    def _read_memory(self, cpu_cores: int) -> ResourceSnapshot:
        try:
            vm = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            raise ProbeError(str(e)) from e

        if not vm.total:
            raise ProbeError("total memory reported as zero")

        total = _gb(vm.total)
        available = _gb(vm.available)
        free = _gb(vm.free)
        # buffers/cached are only reported on Linux and BSD
        reclaimable = _gb(getattr(vm, "buffers", 0) + getattr(vm, "cached", 0))
        used = min(max(total - free - reclaimable, 0.0), total)
        usage_percent = min(max(used / total * 100, 0.0), 100.0)

        return ResourceSnapshot(
            total_memory_gb=round(total, 2),
            available_memory_gb=round(available, 2),
            cpu_core_count=cpu_cores,
            used_memory_gb=round(used, 2),
            usage_percent=round(usage_percent, 2),
        )
