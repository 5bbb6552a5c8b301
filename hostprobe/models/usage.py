from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from hostprobe.models.hardware import HardwareIdentity

COUNTER_FIELDS = (
    "user",
    "nice",
    "system",
    "idle",
    "iowait",
    "irq",
    "softirq",
    "steal",
)


class CoreCounterSnapshot(BaseModel):
    """Cumulative jiffies of one CPU line, captured at a single instant."""

    model_config = ConfigDict(frozen=True)

    user: int = Field(0, ge=0)
    nice: int = Field(0, ge=0)
    system: int = Field(0, ge=0)
    idle: int = Field(0, ge=0)
    iowait: int = Field(0, ge=0)
    irq: int = Field(0, ge=0)
    softirq: int = Field(0, ge=0)
    steal: int = Field(0, ge=0)

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> int:
        return sum(getattr(self, name) for name in COUNTER_FIELDS)


class CpuSample(BaseModel):
    """
    One sampling pass over the CPU counter source.

    Index 0 holds the aggregate "cpu" line, indices 1..N the individual cores.
    ``temperatures`` is aligned with ``counters``.
    """

    model_config = ConfigDict(frozen=True)

    counters: List[CoreCounterSnapshot] = Field(default_factory=list)
    temperatures: List[int] = Field(default_factory=list)

    def temperature(self, index: int) -> int:
        if index < len(self.temperatures):
            return self.temperatures[index]
        return 0


class CoreUsageResult(BaseModel):
    """Usage derived from two samples of the same CPU line."""

    usage_percent: float = Field(0.0, ge=0, le=100)
    temperature_celsius: int = 0


class MemoryTotals(BaseModel):
    """Memory and swap figures in bytes."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(0, ge=0)
    free: int = Field(0, ge=0)
    cached: int = Field(0, ge=0)
    swap_total: int = Field(0, ge=0)
    swap_free: int = Field(0, ge=0)

    @computed_field  # type: ignore[misc]
    @property
    def available(self) -> int:
        return self.free + self.cached


class CoreEntry(BaseModel):
    counters: CoreCounterSnapshot
    usage: CoreUsageResult


class SystemSnapshot(BaseModel):
    """Aggregate result of one invocation."""

    identity: HardwareIdentity
    cores: List[CoreEntry] = Field(
        default_factory=list,
        description="Index 0 is the aggregate line, 1..N the individual cores",
    )
    memory: MemoryTotals = Field(default_factory=MemoryTotals)

    @property
    def core_count(self) -> int:
        return max(len(self.cores) - 1, 0)

    @property
    def aggregate(self) -> Optional[CoreEntry]:
        return self.cores[0] if self.cores else None
