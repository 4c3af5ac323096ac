import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger
from scan_launcher.models import LaunchResult, Outcome, PollingConfig, PollingUpdate
from scan_launcher.scan_client import ScanClient
from scan_launcher.scan_poller import ScanPoller
from scan_launcher.status_probe import StatusProbe

OUTCOME_GUIDANCE = {
    Outcome.completed: "The scan completed successfully.",
    Outcome.cancelled: (
        "The scan was cancelled externally after it was started. "
        "You may want to initiate a new scan."
    ),
    Outcome.initialization_timeout: (
        "The scan failed to initialize within the expected timeframe. "
        "Check resources or if an external process cancelled the scan."
    ),
    Outcome.max_attempts_reached: (
        "Maximum polling attempts reached. The scan may still be running but taking "
        "longer than expected. Increase MAX_POLL_ATTEMPTS if this occurs regularly."
    ),
}


def outcome_guidance(outcome: Outcome) -> str:
    return OUTCOME_GUIDANCE[outcome]


async def launch_scan(
    client: ScanClient,
    config: Optional[PollingConfig] = None,
    on_status_change: Optional[Callable[[PollingUpdate], Any]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> LaunchResult:
    """Start a scan unless one is already running, then wait for it to settle.

    Errors from the start mutation propagate to the caller; nothing is polled
    in that case.
    """
    probe = StatusProbe(client)

    if await probe.is_any_job_active():
        logger.warning("Cannot start a new scan because a scan is already in progress.")
        return LaunchResult(started=False)

    scan_id = await client.start_scan()

    poller = ScanPoller(probe, config, on_status_change=on_status_change, sleep=sleep)
    polling = await poller.poll_until_complete(scan_id)
    logger.info(f"Scan {scan_id} finished polling with status: {polling.outcome.value}")

    return LaunchResult(started=True, scan_id=scan_id, polling=polling)
