"""
Execution environment classification and hardware identity collection.

The verdict is produced by a first-match-wins cascade of independent checks.
A Raspberry Pi board marker short-circuits the cascade entirely, since
embedded hardware detection takes priority over virtualization heuristics.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from hostprobe.models.hardware import (
    UNKNOWN,
    HardwareIdentity,
    VirtualizationKind,
    build_identity,
)
from hostprobe.services.evidence import EvidenceReader

logger = logging.getLogger(__name__)

CPUINFO_PATH = "/proc/cpuinfo"
PI_MODEL_PATH = "/proc/device-tree/model"

DMI_PRODUCT_UUID = "/sys/class/dmi/id/product_uuid"
DMI_BOARD_SERIAL = "/sys/class/dmi/id/board_serial"
DMI_PRODUCT_NAME = "/sys/class/dmi/id/product_name"
DMI_SYS_VENDOR = "/sys/class/dmi/id/sys_vendor"
DMI_BIOS_VENDOR = "/sys/class/dmi/id/bios_vendor"
DMI_BIOS_VERSION = "/sys/class/dmi/id/bios_version"

INIT_CGROUP_PATH = "/proc/1/cgroup"
INIT_ENVIRON_PATH = "/proc/1/environ"
SELF_CGROUP_PATH = "/proc/self/cgroup"
OPENVZ_MARKER_PATH = "/proc/vz"

# Tried in order when the host runs virtualized; first non-empty value wins.
VIRTUAL_UUID_SOURCES = (
    DMI_PRODUCT_UUID,
    "/sys/devices/virtual/dmi/id/product_uuid",
    "/sys/hypervisor/uuid",
    "/etc/machine-id",
    "/var/lib/dbus/machine-id",
)

VIRTUAL_BOARD_SERIAL = "Virtual Environment"

HELPER_TOKENS: Dict[str, VirtualizationKind] = {
    "kvm": VirtualizationKind.KVM,
    "qemu": VirtualizationKind.QEMU,
    "vmware": VirtualizationKind.VMWARE,
    "virtualbox": VirtualizationKind.VIRTUALBOX,
    "oracle": VirtualizationKind.VIRTUALBOX,
    "xen": VirtualizationKind.XEN,
    "microsoft": VirtualizationKind.HYPERV,
    "docker": VirtualizationKind.DOCKER,
    "lxc": VirtualizationKind.LXC,
    "openvz": VirtualizationKind.OPENVZ,
    "parallels": VirtualizationKind.PARALLELS,
    "amazon": VirtualizationKind.CLOUD,
}

CPU_BRAND_MARKERS: Tuple[Tuple[str, VirtualizationKind], ...] = (
    ("QEMU Virtual CPU", VirtualizationKind.QEMU),
    ("VMware", VirtualizationKind.VMWARE),
    ("VirtualBox", VirtualizationKind.VIRTUALBOX),
    ("Xen", VirtualizationKind.XEN),
)

# Cloud providers come first: they all collapse into CLOUD.
SYS_VENDOR_MARKERS: Tuple[Tuple[str, VirtualizationKind], ...] = (
    ("Amazon EC2", VirtualizationKind.CLOUD),
    ("Google", VirtualizationKind.CLOUD),
    ("Azure", VirtualizationKind.CLOUD),
    ("QEMU", VirtualizationKind.QEMU),
    ("KVM", VirtualizationKind.KVM),
    ("VMware", VirtualizationKind.VMWARE),
    ("innotek", VirtualizationKind.VIRTUALBOX),
    ("VirtualBox", VirtualizationKind.VIRTUALBOX),
    ("Xen", VirtualizationKind.XEN),
    ("Microsoft Corporation", VirtualizationKind.HYPERV),
    ("Parallels", VirtualizationKind.PARALLELS),
)


@dataclass(frozen=True)
class VendorProfile:
    """Display identity attached to a verdict."""

    vendor: str
    product_name: str
    prefer_firmware_product: bool = False


VENDOR_PROFILES: Dict[VirtualizationKind, VendorProfile] = {
    VirtualizationKind.NONE: VendorProfile("none", UNKNOWN),
    VirtualizationKind.KVM: VendorProfile("KVM", "KVM Virtual Machine"),
    VirtualizationKind.QEMU: VendorProfile("QEMU", "QEMU Virtual Machine"),
    VirtualizationKind.VMWARE: VendorProfile(
        "VMware", "VMware Virtual Platform", prefer_firmware_product=True
    ),
    VirtualizationKind.VIRTUALBOX: VendorProfile("Oracle", "VirtualBox Virtual Machine"),
    VirtualizationKind.XEN: VendorProfile("Xen", "Xen Virtual Machine"),
    VirtualizationKind.HYPERV: VendorProfile("Microsoft", "Hyper-V Virtual Machine"),
    VirtualizationKind.DOCKER: VendorProfile("Docker", "Docker Container"),
    VirtualizationKind.LXC: VendorProfile("LXC", "LXC Container"),
    VirtualizationKind.OPENVZ: VendorProfile("OpenVZ", "OpenVZ Container"),
    VirtualizationKind.PARALLELS: VendorProfile("Parallels", "Parallels Virtual Machine"),
    VirtualizationKind.CLOUD: VendorProfile(
        "Cloud Provider", "Cloud Instance", prefer_firmware_product=True
    ),
    VirtualizationKind.UNKNOWN: VendorProfile("Unknown", "Unknown Virtual Machine"),
}


def iter_cpuinfo_fields(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(label, value)`` pairs from colon-delimited CPU identification lines."""
    for line in text.splitlines():
        label, sep, value = line.partition(":")
        if not sep:
            continue
        yield label.strip(), value.strip()


def _parse_int(value: str, base: int = 10) -> int:
    try:
        return max(int(value, base), 0)
    except ValueError:
        return 0


def read_cpu_fields(cpuinfo: str) -> Dict[str, object]:
    """Extract model, vendor, family, stepping and microcode from CPU identification text."""
    fields: Dict[str, object] = {
        "cpu_model": UNKNOWN,
        "cpu_vendor": UNKNOWN,
        "cpu_family": 0,
        "cpu_stepping": 0,
        "cpu_microcode": 0,
    }
    for label, value in iter_cpuinfo_fields(cpuinfo):
        if not value:
            continue
        if label == "model name":
            fields["cpu_model"] = value
        elif label == "vendor_id":
            fields["cpu_vendor"] = value
        elif label == "cpu family":
            fields["cpu_family"] = _parse_int(value)
        elif label == "stepping":
            fields["cpu_stepping"] = _parse_int(value)
        elif label == "microcode":
            fields["cpu_microcode"] = min(_parse_int(value, 16), 2**64 - 1)
    return fields


def read_bios_fields(reader: EvidenceReader) -> Dict[str, str]:
    return {
        "bios_vendor": reader.read_line(DMI_BIOS_VENDOR) or UNKNOWN,
        "bios_version": reader.read_line(DMI_BIOS_VERSION) or UNKNOWN,
    }


# --- Detection cascade -----------------------------------------------------

Tier = Callable[[EvidenceReader, str], Optional[VirtualizationKind]]


def _tier_helper(reader: EvidenceReader, cpuinfo: str) -> Optional[VirtualizationKind]:
    token = reader.detect_virt()
    if token is None:
        return None
    kind = HELPER_TOKENS.get(token)
    if kind is None:
        logger.debug("Ignoring unrecognised detection helper output %r", token)
    return kind


def _tier_cpu_brand(reader: EvidenceReader, cpuinfo: str) -> Optional[VirtualizationKind]:
    for marker, kind in CPU_BRAND_MARKERS:
        if marker in cpuinfo:
            return kind
    return None


def _tier_sys_vendor(reader: EvidenceReader, cpuinfo: str) -> Optional[VirtualizationKind]:
    vendor = reader.read_line(DMI_SYS_VENDOR)
    if not vendor:
        return None
    for marker, kind in SYS_VENDOR_MARKERS:
        if marker in vendor:
            return kind
    return None


def _tier_container(reader: EvidenceReader, cpuinfo: str) -> Optional[VirtualizationKind]:
    cgroup = reader.read_text(INIT_CGROUP_PATH) or ""
    if any("docker" in line for line in cgroup.splitlines()):
        return VirtualizationKind.DOCKER
    if reader.exists(OPENVZ_MARKER_PATH):
        return VirtualizationKind.OPENVZ
    environ = reader.read_text(INIT_ENVIRON_PATH) or ""
    if "container=lxc" in environ:
        return VirtualizationKind.LXC
    return None


def _tier_hypervisor_flag(reader: EvidenceReader, cpuinfo: str) -> Optional[VirtualizationKind]:
    if "hypervisor" in cpuinfo:
        return VirtualizationKind.UNKNOWN
    return None


DETECTION_TIERS: List[Tuple[str, Tier]] = [
    ("detection helper", _tier_helper),
    ("cpu brand", _tier_cpu_brand),
    ("system vendor", _tier_sys_vendor),
    ("container evidence", _tier_container),
    ("hypervisor flag", _tier_hypervisor_flag),
]


def detect_virtualization(reader: EvidenceReader, cpuinfo: str) -> VirtualizationKind:
    """Run the detection tiers in order; the first verdict wins."""
    for name, tier in DETECTION_TIERS:
        kind = tier(reader, cpuinfo)
        if kind is not None:
            logger.info("Virtualization verdict %s from %s", kind.value, name)
            return kind
    logger.info("No virtualization evidence found")
    return VirtualizationKind.NONE


# --- Identity -------------------------------------------------------------


def djb2_hex(data: bytes) -> str:
    """Rolling hash (seed 5381, multiplier 33, 64-bit wrap) as lower-case hex."""
    value = 5381
    for byte in data:
        value = (value * 33 + byte) & 0xFFFFFFFFFFFFFFFF
    return format(value, "x")


def _docker_container_id(reader: EvidenceReader) -> Optional[str]:
    text = reader.read_text(SELF_CGROUP_PATH)
    if not text:
        return None
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return None
    line = next((line for line in lines if "docker" in line), lines[0])
    segment = line.rsplit("/", 1)[-1].strip()
    # systemd cgroup driver: docker-<id>.scope
    if segment.startswith("docker-"):
        segment = segment[len("docker-"):]
    if segment.endswith(".scope"):
        segment = segment[: -len(".scope")]
    return segment or None


def _lxc_container_uuid(reader: EvidenceReader) -> Optional[str]:
    text = reader.read_text(INIT_ENVIRON_PATH)
    if not text:
        return None
    marker = "container_uuid="
    start = text.find(marker)
    if start < 0:
        return None
    value = text[start + len(marker):]
    value = value.split("\x00", 1)[0].split()
    return value[0] if value else None


def _fallback_uuid(
    reader: EvidenceReader, kind: VirtualizationKind, cpuinfo_bytes: bytes
) -> Optional[str]:
    if kind is VirtualizationKind.DOCKER:
        return _docker_container_id(reader)
    if kind is VirtualizationKind.LXC:
        return _lxc_container_uuid(reader)
    return "vm-" + djb2_hex(cpuinfo_bytes)


def _raspberry_pi_identity(reader: EvidenceReader, cpuinfo: str) -> HardwareIdentity:
    fields: Dict[str, object] = {}
    for label, value in iter_cpuinfo_fields(cpuinfo):
        if not value:
            continue
        if label in ("Hardware", "model name"):
            fields["cpu_model"] = value
        elif label == "Revision":
            fields["motherboard_serial"] = value
        elif label == "Serial":
            fields["system_uuid"] = value

    model = (reader.read_text(PI_MODEL_PATH) or "").replace("\x00", "").strip()
    if model:
        fields["product_name"] = model

    return build_identity(
        **fields,
        cpu_vendor="ARM",
        is_arm=True,
        is_virtual=False,
        virt_kind=VirtualizationKind.NONE,
    )


def _virtual_identity(
    reader: EvidenceReader,
    kind: VirtualizationKind,
    cpuinfo: str,
    cpuinfo_bytes: bytes,
) -> HardwareIdentity:
    profile = VENDOR_PROFILES[kind]

    system_uuid = reader.read_first_line(VIRTUAL_UUID_SOURCES)
    if not system_uuid:
        system_uuid = _fallback_uuid(reader, kind, cpuinfo_bytes)

    product_name = profile.product_name
    if profile.prefer_firmware_product:
        product_name = reader.read_line(DMI_PRODUCT_NAME) or product_name

    return build_identity(
        system_uuid=system_uuid or UNKNOWN,
        motherboard_serial=VIRTUAL_BOARD_SERIAL,
        product_name=product_name,
        **read_bios_fields(reader),
        **read_cpu_fields(cpuinfo),
        is_virtual=True,
        virt_kind=kind,
        hypervisor_vendor=profile.vendor,
    )


def _physical_identity(reader: EvidenceReader, cpuinfo: str) -> HardwareIdentity:
    return build_identity(
        system_uuid=reader.read_line(DMI_PRODUCT_UUID) or UNKNOWN,
        motherboard_serial=reader.read_line(DMI_BOARD_SERIAL) or UNKNOWN,
        product_name=reader.read_line(DMI_PRODUCT_NAME) or UNKNOWN,
        **read_bios_fields(reader),
        **read_cpu_fields(cpuinfo),
    )


def classify_environment(reader: Optional[EvidenceReader] = None) -> HardwareIdentity:
    """
    Determine the execution environment and collect the matching identity.

    Never raises for missing evidence: every field falls back to "unknown",
    0 or VirtualizationKind.NONE.
    """
    reader = reader or EvidenceReader.from_settings()

    cpuinfo_bytes = reader.read_bytes(CPUINFO_PATH) or b""
    cpuinfo = cpuinfo_bytes.decode("utf-8", errors="replace")

    if reader.exists(PI_MODEL_PATH):
        logger.info("Raspberry Pi board marker found, skipping virtualization detection")
        return _raspberry_pi_identity(reader, cpuinfo)

    kind = detect_virtualization(reader, cpuinfo)
    if kind is VirtualizationKind.NONE:
        return _physical_identity(reader, cpuinfo)
    return _virtual_identity(reader, kind, cpuinfo, cpuinfo_bytes)
