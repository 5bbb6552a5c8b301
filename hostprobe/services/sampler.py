import logging
import threading
from typing import List, Optional

import psutil

from hostprobe.models.usage import (
    COUNTER_FIELDS,
    CoreCounterSnapshot,
    CoreUsageResult,
    CpuSample,
    MemoryTotals,
)
from hostprobe.services.evidence import EvidenceReader

logger = logging.getLogger(__name__)

STAT_PATH = "/proc/stat"
MEMINFO_PATH = "/proc/meminfo"
THERMAL_ZONE_PATH = "/sys/class/thermal/thermal_zone{index}/temp"
CORETEMP_PATTERN = "/sys/devices/platform/coretemp.0/hwmon/hwmon*/temp{sensor}_input"

# Logical cores parsed per pass, aggregate line not included
MAX_CORES = 128

# psutil.PROCFS_PATH is process-wide
_PROCFS_LOCK = threading.Lock()


def parse_counter_line(line: str) -> CoreCounterSnapshot:
    """
    Parse one ``cpu``/``cpuN`` line of the kernel counter source.

    Only the first eight counters are used; the trailing guest counters are
    already accounted for in user/nice. Missing or malformed values count as 0.
    """
    values = line.split()[1:]
    counters = {}
    for name, raw in zip(COUNTER_FIELDS, values):
        try:
            counters[name] = max(int(raw), 0)
        except ValueError:
            counters[name] = 0
    return CoreCounterSnapshot(**counters)


def read_temperature(reader: EvidenceReader, index: int) -> int:
    """Temperature in degrees Celsius for a CPU line index, 0 if no sensor is readable."""
    raw = reader.read_line(THERMAL_ZONE_PATH.format(index=index))
    if raw is None:
        raw = reader.glob_line(CORETEMP_PATTERN.format(sensor=index + 1))
    if raw is None:
        return 0
    try:
        # Millidegrees, truncated towards zero
        return int(int(raw) / 1000)
    except ValueError:
        logger.debug("Unparsable temperature %r for cpu line %d", raw, index)
        return 0


def capture_sample(reader: EvidenceReader) -> CpuSample:
    """Capture counters and temperatures for the aggregate line and every core."""
    text = reader.read_text(STAT_PATH)
    if text is None:
        return CpuSample()

    counters: List[CoreCounterSnapshot] = []
    for line in text.splitlines():
        if not line.startswith("cpu"):
            break
        if len(counters) > MAX_CORES:
            logger.debug("Ignoring cpu lines beyond %d cores", MAX_CORES)
            break
        counters.append(parse_counter_line(line))

    temperatures = [read_temperature(reader, index) for index in range(len(counters))]
    logger.debug("Captured counters for %d cpu lines", len(counters))
    return CpuSample(counters=counters, temperatures=temperatures)


def compute_usage(
    current: CoreCounterSnapshot,
    baseline: Optional[CoreCounterSnapshot] = None,
) -> float:
    """
    Usage in percent between two captures of the same CPU line.

    Returns 0 without a baseline or when no jiffies elapsed.
    """
    if baseline is None:
        return 0.0

    total_delta = current.total - baseline.total
    idle_delta = current.idle - baseline.idle
    if total_delta <= 0:
        return 0.0

    usage = 100.0 * (1.0 - idle_delta / total_delta)
    # Counter resets can push the ratio outside the valid range
    return min(max(usage, 0.0), 100.0)


def compute_core_usage(
    current: CpuSample,
    baseline: Optional[CpuSample] = None,
) -> List[CoreUsageResult]:
    """
    Per-line usage results for ``current``, indexed like ``current.counters``.

    Lines only present in one of the two samples (hot-plug) keep usage 0.
    """
    results = [
        CoreUsageResult(temperature_celsius=current.temperature(index))
        for index in range(len(current.counters))
    ]
    if baseline is None:
        return results

    for index in range(min(len(baseline.counters), len(current.counters))):
        results[index].usage_percent = compute_usage(
            current.counters[index], baseline.counters[index]
        )
    return results


def read_cached_bytes(reader: EvidenceReader) -> int:
    text = reader.read_text(MEMINFO_PATH)
    if text is None:
        return 0
    for line in text.splitlines():
        if line.startswith("Cached:"):
            parts = line.split()
            try:
                return max(int(parts[1]), 0) * 1024
            except (IndexError, ValueError):
                return 0
    return 0


def capture_memory(reader: EvidenceReader) -> MemoryTotals:
    """
    Memory and swap totals in bytes; ``available`` is derived from free + cached.

    psutil is pointed at the reader's procfs so that totals and the cached
    figure come from the same (possibly mounted) host.
    """
    figures = {"total": 0, "free": 0, "swap_total": 0, "swap_free": 0}
    with _PROCFS_LOCK:
        previous = psutil.PROCFS_PATH
        psutil.PROCFS_PATH = str(reader.path("/proc"))
        try:
            memory = psutil.virtual_memory()
            swap = psutil.swap_memory()
        except (OSError, KeyError, RuntimeError, psutil.Error) as exc:
            logger.debug("Kernel memory statistics unavailable: %s", exc)
        else:
            figures.update(
                total=memory.total,
                free=memory.free,
                swap_total=swap.total,
                swap_free=swap.free,
            )
        finally:
            psutil.PROCFS_PATH = previous

    return MemoryTotals(**figures, cached=read_cached_bytes(reader))
