import inspect

from fastapi.testclient import TestClient

from hostprobe.api import host
from hostprobe.main import app
from hostprobe.models.hardware import HardwareIdentity, VirtualizationKind
from hostprobe.services import classifier, snapshot

client = TestClient(app)


def test_snapshot_endpoint_structure(monkeypatch, sample_snapshot):
    monkeypatch.setattr(snapshot, "take_snapshot", lambda: sample_snapshot)

    response = client.get("/host/snapshot")
    assert response.status_code == 200

    data = response.json()
    assert set(data) == {"hardware", "cpu_usage", "memory"}

    hardware = data["hardware"]
    assert hardware["system_uuid"] == "4c4c4544-0044-3510-8052-b4c04f4e3732"
    assert hardware["virtualization"]["type"] == "kvm"
    assert hardware["cpu"]["microcode"] == "0x1"

    cpu_usage = data["cpu_usage"]
    assert cpu_usage["cores"] == 2
    assert len(cpu_usage["core_info"]) == 2
    for core in cpu_usage["core_info"]:
        assert 0.0 <= core["usage"] <= 100.0
        assert isinstance(core["temperature"], int)

    memory = data["memory"]
    assert memory["available"] == memory["free"] + memory["cached"]


def test_hardware_endpoint_only_classifies(monkeypatch):
    def fake_take_snapshot():
        raise AssertionError("hardware endpoint must not sample cpu counters")

    identity = HardwareIdentity(
        cpu_vendor="ARM",
        product_name="Raspberry Pi 5 Model B Rev 1.0",
        is_arm=True,
        virt_kind=VirtualizationKind.NONE,
    )
    monkeypatch.setattr(snapshot, "take_snapshot", fake_take_snapshot)
    monkeypatch.setattr(classifier, "classify_environment", lambda: identity)

    response = client.get("/host/hardware")
    assert response.status_code == 200

    data = response.json()
    assert data["is_arm"] is True
    assert data["product_name"] == "Raspberry Pi 5 Model B Rev 1.0"
    assert data["cpu"]["vendor"] == "ARM"
    assert data["virtualization"] == {
        "is_virtual": False,
        "type": "none",
        "hypervisor_vendor": "none",
    }
    assert data["bios"] == {"vendor": "unknown", "version": "unknown"}


def test_routes_run_in_the_threadpool():
    # Both routes block on file reads or the detection helper
    assert not inspect.iscoroutinefunction(host.host_snapshot)
    assert not inspect.iscoroutinefunction(host.host_hardware)
