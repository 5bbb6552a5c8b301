import logging
import time
from typing import Callable, Optional

from hostprobe.config import Settings, get_settings
from hostprobe.models.hardware import HardwareIdentity
from hostprobe.models.report import (
    BiosReport,
    CoreReport,
    CpuReport,
    CpuUsageReport,
    HardwareReport,
    MemoryReport,
    SnapshotReport,
    VirtualizationReport,
)
from hostprobe.models.usage import CoreEntry, SystemSnapshot
from hostprobe.services.classifier import classify_environment
from hostprobe.services.evidence import EvidenceReader
from hostprobe.services.sampler import capture_memory, capture_sample, compute_core_usage

logger = logging.getLogger(__name__)


def take_snapshot(
    settings: Optional[Settings] = None,
    reader: Optional[EvidenceReader] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SystemSnapshot:
    """
    Collect one complete SystemSnapshot.

    The classifier runs once, the CPU counters are captured twice with
    ``settings.sample_interval_seconds`` in between, and memory is read after
    the final capture. Missing evidence degrades fields, it never raises.
    """
    settings = settings or get_settings()
    reader = reader or EvidenceReader.from_settings(settings)

    identity = classify_environment(reader)

    baseline = capture_sample(reader)
    logger.debug("Baseline captured, waiting %.2fs", settings.sample_interval_seconds)
    sleep(settings.sample_interval_seconds)
    current = capture_sample(reader)

    usage = compute_core_usage(current, baseline)
    cores = [
        CoreEntry(counters=counters, usage=result)
        for counters, result in zip(current.counters, usage)
    ]

    return SystemSnapshot(
        identity=identity,
        cores=cores,
        memory=capture_memory(reader),
    )


def build_hardware_report(identity: HardwareIdentity) -> HardwareReport:
    return HardwareReport(
        system_uuid=identity.system_uuid,
        motherboard_serial=identity.motherboard_serial,
        product_name=identity.product_name,
        is_arm=identity.is_arm,
        virtualization=VirtualizationReport(
            is_virtual=identity.is_virtual,
            type=identity.virt_kind.value,
            hypervisor_vendor=identity.hypervisor_vendor,
        ),
        cpu=CpuReport(
            model=identity.cpu_model,
            vendor=identity.cpu_vendor,
            family=identity.cpu_family,
            stepping=identity.cpu_stepping,
            microcode=f"0x{identity.cpu_microcode:x}",
        ),
        bios=BiosReport(
            vendor=identity.bios_vendor,
            version=identity.bios_version,
        ),
    )


def build_report(snapshot: SystemSnapshot) -> SnapshotReport:
    """Render a SystemSnapshot into the document shape downstream tools expect."""
    aggregate = snapshot.aggregate
    total_usage = aggregate.usage.usage_percent if aggregate else 0.0

    core_info = [
        CoreReport(
            core=number,
            usage=round(entry.usage.usage_percent, 2),
            temperature=entry.usage.temperature_celsius,
        )
        for number, entry in enumerate(snapshot.cores[1:])
    ]

    memory = snapshot.memory
    return SnapshotReport(
        hardware=build_hardware_report(snapshot.identity),
        cpu_usage=CpuUsageReport(
            cores=snapshot.core_count,
            total_usage=round(total_usage, 2),
            core_info=core_info,
        ),
        memory=MemoryReport(
            total=memory.total,
            free=memory.free,
            available=memory.available,
            cached=memory.cached,
            swap_total=memory.swap_total,
            swap_free=memory.swap_free,
        ),
    )
