from pathlib import Path
from types import SimpleNamespace
from typing import Union

import pytest

from hostprobe.config import get_settings
from hostprobe.models.hardware import HardwareIdentity, VirtualizationKind
from hostprobe.models.usage import (
    CoreCounterSnapshot,
    CoreEntry,
    CoreUsageResult,
    MemoryTotals,
    SystemSnapshot,
)
from hostprobe.services.evidence import EvidenceReader


class FakeRoot:
    """A throwaway filesystem tree that evidence paths resolve against."""

    def __init__(self, base: Path) -> None:
        self.base = base

    def write(self, source: str, content: Union[str, bytes]) -> Path:
        path = self.base / source.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    def mkdir(self, source: str) -> Path:
        path = self.base / source.lstrip("/")
        path.mkdir(parents=True, exist_ok=True)
        return path

    def reader(self, **kwargs) -> EvidenceReader:
        kwargs.setdefault("detect_virt_command", [])
        return EvidenceReader(root=str(self.base), **kwargs)


@pytest.fixture
def fake_root(tmp_path) -> FakeRoot:
    return FakeRoot(tmp_path)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_psutil(monkeypatch):
    """Replace the psutil memory calls used by the sampler with fixed figures."""
    from hostprobe.services import sampler

    monkeypatch.setattr(
        sampler.psutil,
        "virtual_memory",
        lambda: SimpleNamespace(total=8 * 1024**3, free=2 * 1024**3),
    )
    monkeypatch.setattr(
        sampler.psutil,
        "swap_memory",
        lambda: SimpleNamespace(total=1024**3, free=512 * 1024**2),
    )


@pytest.fixture
def sample_snapshot() -> SystemSnapshot:
    identity = HardwareIdentity(
        system_uuid="4c4c4544-0044-3510-8052-b4c04f4e3732",
        motherboard_serial="Virtual Environment",
        product_name="KVM Virtual Machine",
        bios_vendor="SeaBIOS",
        bios_version="1.16.2",
        cpu_model="Intel Xeon Processor (Icelake)",
        cpu_vendor="GenuineIntel",
        cpu_family=6,
        cpu_stepping=0,
        cpu_microcode=0x1,
        is_virtual=True,
        virt_kind=VirtualizationKind.KVM,
        hypervisor_vendor="KVM",
    )
    cores = [
        CoreEntry(
            counters=CoreCounterSnapshot(user=400, idle=800),
            usage=CoreUsageResult(usage_percent=33.3333, temperature_celsius=0),
        ),
        CoreEntry(
            counters=CoreCounterSnapshot(user=200, idle=400),
            usage=CoreUsageResult(usage_percent=75.0, temperature_celsius=48),
        ),
        CoreEntry(
            counters=CoreCounterSnapshot(user=200, idle=400),
            usage=CoreUsageResult(usage_percent=12.346, temperature_celsius=51),
        ),
    ]
    memory = MemoryTotals(
        total=8 * 1024**3,
        free=2 * 1024**3,
        cached=1024**3,
        swap_total=1024**3,
        swap_free=1024**3,
    )
    return SystemSnapshot(identity=identity, cores=cores, memory=memory)
