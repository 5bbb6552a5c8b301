from typing import List

from pydantic import BaseModel, Field


class CpuReport(BaseModel):
    model: str
    vendor: str
    family: int = Field(..., ge=0)
    stepping: int = Field(..., ge=0)
    microcode: str = Field(..., description="Microcode revision as lower-case hex, e.g. 0xf0")


class BiosReport(BaseModel):
    vendor: str
    version: str


class VirtualizationReport(BaseModel):
    is_virtual: bool
    type: str = Field(..., description="Lower-case virtualization kind, e.g. kvm or none")
    hypervisor_vendor: str


class HardwareReport(BaseModel):
    """The ``hardware`` section of the snapshot document."""

    system_uuid: str
    motherboard_serial: str
    product_name: str
    is_arm: bool
    virtualization: VirtualizationReport
    cpu: CpuReport
    bios: BiosReport


class CoreReport(BaseModel):
    core: int = Field(..., ge=0, description="Zero-based core number")
    usage: float = Field(..., ge=0, le=100, description="Usage in percent, two decimals")
    temperature: int = Field(..., description="Core temperature in degrees Celsius, 0 if unknown")


class CpuUsageReport(BaseModel):
    cores: int = Field(..., ge=0, description="Number of cores, aggregate line excluded")
    total_usage: float = Field(..., ge=0, le=100)
    core_info: List[CoreReport]


class MemoryReport(BaseModel):
    """Memory figures in bytes."""

    total: int = Field(..., ge=0)
    free: int = Field(..., ge=0)
    available: int = Field(..., ge=0)
    cached: int = Field(..., ge=0)
    swap_total: int = Field(..., ge=0)
    swap_free: int = Field(..., ge=0)


class SnapshotReport(BaseModel):
    """Structured snapshot document consumed by inventory and monitoring tooling."""

    hardware: HardwareReport
    cpu_usage: CpuUsageReport
    memory: MemoryReport
