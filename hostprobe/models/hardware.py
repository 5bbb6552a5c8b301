from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

UUID_LENGTH = 36
SERIAL_LENGTH = 64
MODEL_LENGTH = 255
VENDOR_LENGTH = 63

UNKNOWN = "unknown"


class VirtualizationKind(str, Enum):
    """Execution environment verdict. Member order is the display index."""

    NONE = "none"
    KVM = "kvm"
    QEMU = "qemu"
    VMWARE = "vmware"
    VIRTUALBOX = "virtualbox"
    XEN = "xen"
    HYPERV = "hyperv"
    DOCKER = "docker"
    LXC = "lxc"
    OPENVZ = "openvz"
    PARALLELS = "parallels"
    CLOUD = "cloud"
    UNKNOWN = "unknown"

    @property
    def display_index(self) -> int:
        return list(VirtualizationKind).index(self)


def bounded(value: str, limit: int) -> str:
    """Truncate a string to the field's maximum length."""
    return value[:limit]


class HardwareIdentity(BaseModel):
    """Identity, firmware and CPU facts of the host, fixed after construction."""

    model_config = ConfigDict(frozen=True)

    system_uuid: str = Field(UNKNOWN, max_length=UUID_LENGTH)
    motherboard_serial: str = Field(UNKNOWN, max_length=SERIAL_LENGTH)
    product_name: str = Field(UNKNOWN, max_length=MODEL_LENGTH)
    bios_vendor: str = Field(UNKNOWN, max_length=VENDOR_LENGTH)
    bios_version: str = Field(UNKNOWN, max_length=VENDOR_LENGTH)

    cpu_model: str = Field(UNKNOWN, max_length=MODEL_LENGTH)
    cpu_vendor: str = Field(UNKNOWN, max_length=VENDOR_LENGTH)
    cpu_family: int = Field(0, ge=0)
    cpu_stepping: int = Field(0, ge=0)
    cpu_microcode: int = Field(
        0,
        ge=0,
        lt=2**64,
        description="Microcode revision, parsed from hexadecimal",
    )

    is_arm: bool = Field(False, description="True only on the Raspberry Pi path")
    is_virtual: bool = False
    virt_kind: VirtualizationKind = VirtualizationKind.NONE
    hypervisor_vendor: str = Field(
        "none",
        max_length=VENDOR_LENGTH,
        description="Display vendor of the hypervisor or container runtime; 'none' on bare metal",
    )


FIELD_LIMITS = {
    "system_uuid": UUID_LENGTH,
    "motherboard_serial": SERIAL_LENGTH,
    "product_name": MODEL_LENGTH,
    "bios_vendor": VENDOR_LENGTH,
    "bios_version": VENDOR_LENGTH,
    "cpu_model": MODEL_LENGTH,
    "cpu_vendor": VENDOR_LENGTH,
    "hypervisor_vendor": VENDOR_LENGTH,
}


def build_identity(**fields) -> HardwareIdentity:
    """Create a HardwareIdentity, truncating string fields to their limits."""
    for name, limit in FIELD_LIMITS.items():
        if isinstance(fields.get(name), str):
            fields[name] = bounded(fields[name], limit)
    return HardwareIdentity(**fields)
