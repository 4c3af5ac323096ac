import aiohttp
import pytest
from scan_launcher.errors import ScanApiError
from scan_launcher.models import Observation
from scan_launcher.scan_client import ScanClient
from scan_launcher.status_probe import StatusProbe, classify_scanning_status


class BrokenClient:
    """Client whose every call fails with the given exception."""

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def get_scanning_status(self, scan_id):
        self.calls += 1
        raise self.error

    async def check_scan_in_progress(self):
        self.calls += 1
        raise self.error


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, Observation.running),
        (False, Observation.finished),
        (None, Observation.indeterminate),
    ],
)
def test_classify_scanning_status(value, expected):
    assert classify_scanning_status(value) == expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        aiohttp.ClientConnectionError("connection refused"),
        ScanApiError("IsStillScanning: invalid response format"),
        ValueError("bad json"),
    ],
)
async def test_probe_failures_fold_into_indeterminate(error):
    client = BrokenClient(error)
    probe = StatusProbe(client)

    assert await probe.probe("scan-1") == Observation.indeterminate
    assert client.calls == 1


@pytest.mark.asyncio
async def test_activity_check_failure_reports_busy():
    client = BrokenClient(aiohttp.ClientConnectionError("connection refused"))
    probe = StatusProbe(client)

    assert await probe.is_any_job_active() is True
    assert client.calls == 1


@pytest.mark.asyncio
async def test_probe_reads_scripted_statuses(server):
    server_instance, base_url = server
    server_instance.status_script = [None, True, False]

    async with ScanClient(base_url) as client:
        probe = StatusProbe(client)
        observations = [await probe.probe("scan-1") for _ in range(3)]

    assert observations == [
        Observation.indeterminate,
        Observation.running,
        Observation.finished,
    ]
    assert server_instance.status_queries == 3


@pytest.mark.asyncio
async def test_probe_server_errors_are_indeterminate(server):
    server_instance, base_url = server
    server_instance.error_rate = 1.0

    async with ScanClient(base_url) as client:
        assert await StatusProbe(client).probe("scan-1") == Observation.indeterminate


@pytest.mark.asyncio
async def test_activity_check_passes_through_answer(server):
    server_instance, base_url = server

    async with ScanClient(base_url) as client:
        probe = StatusProbe(client)
        assert await probe.is_any_job_active() is False

        server_instance.scan_in_progress = True
        assert await probe.is_any_job_active() is True

        server_instance.scan_in_progress = False
        server_instance.in_progress_error = True
        assert await probe.is_any_job_active() is True


@pytest.mark.asyncio
async def test_maintenance_page_is_indeterminate(server):
    server_instance, base_url = server
    server_instance.maintenance_page = True

    async with ScanClient(base_url) as client:
        assert await StatusProbe(client).probe("scan-1") == Observation.indeterminate
