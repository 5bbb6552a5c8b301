from fastapi import APIRouter

from hostprobe.models.report import HardwareReport, SnapshotReport
from hostprobe.services import classifier, snapshot

router = APIRouter()


@router.get("/snapshot", response_model=SnapshotReport, summary="Host snapshot")
def host_snapshot() -> SnapshotReport:
    """
    Return hardware identity, per-core CPU usage and memory totals.

    The CPU usage is measured over the configured sample interval
    (env var HOSTPROBE_SAMPLE_INTERVAL), so this route blocks for that long.
    It is declared sync so FastAPI runs it in the threadpool.
    """
    return snapshot.build_report(snapshot.take_snapshot())


@router.get("/hardware", response_model=HardwareReport, summary="Hardware identity")
def host_hardware() -> HardwareReport:
    """
    Return only the hardware section: identity, virtualization verdict, CPU and BIOS.

    No CPU sampling takes place, but the detection helper may run, so the
    route is sync like /snapshot.
    """
    return snapshot.build_hardware_report(classifier.classify_environment())
