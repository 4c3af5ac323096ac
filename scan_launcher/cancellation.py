import asyncio
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from loguru import logger
from scan_launcher.models import CancelScanResult
from scan_launcher.scan_client import ScanClient

NO_ACTIVE_SCAN_MARKER = "No active scan found in DB"


class CancellationStatus(str, Enum):
    cancelled = "cancelled"
    no_active_scan = "no_active_scan"
    cancelled_with_error = "cancelled_with_error"
    failed = "failed"


async def prompt_for_scan_id() -> str:
    """Reads the scan id from stdin without blocking the event loop"""
    return await asyncio.to_thread(input, "Please enter the scanId to cancel: ")


async def cancel_running_scan(
    client: ScanClient,
    scan_id: Optional[str] = None,
    prompt: Callable[[], Awaitable[str]] = prompt_for_scan_id,
) -> Optional[CancelScanResult]:
    """Cancel a scan if one is running; returns None when there is nothing to cancel.

    Unlike the launch gate, a failed in-progress check is not treated as
    "busy" here: the error propagates and no cancellation is attempted.
    """
    logger.info("Checking if a scan is currently in progress...")
    if not await client.check_scan_in_progress():
        logger.info("No scan is currently in progress. Nothing to cancel.")
        return None

    logger.info("A scan is currently in progress. Proceeding with cancellation.")
    if scan_id is None:
        scan_id = await prompt()

    scan_id = scan_id.strip()
    if not scan_id:
        raise ValueError("A scanId is required to cancel a scan")

    logger.info(f"Attempting to cancel scan with ID: {scan_id}")
    return await client.cancel_scan(scan_id)


def classify_cancellation(result: CancelScanResult) -> CancellationStatus:
    if not result.is_canceled:
        return CancellationStatus.failed
    if result.error and NO_ACTIVE_SCAN_MARKER in result.error:
        return CancellationStatus.no_active_scan
    if result.error:
        return CancellationStatus.cancelled_with_error
    return CancellationStatus.cancelled


def describe_cancellation(result: CancelScanResult) -> List[str]:
    status = classify_cancellation(result)

    if status is CancellationStatus.failed:
        return [f"Failed to cancel scan: {result.error or 'Unknown error'}"]

    if status is CancellationStatus.no_active_scan:
        lines = [
            f"No active scan found for ID: {result.scan_id}",
            "The scan may have already completed or been cancelled.",
        ]
    elif status is CancellationStatus.cancelled_with_error:
        lines = [
            f"Scan marked as canceled but returned an error: {result.error}",
            f"Scan ID: {result.scan_id}",
        ]
    else:
        lines = [f"Successfully cancelled scan with ID: {result.scan_id}"]

    if result.previous_scan_id:
        lines.append(f"Previous scan ID: {result.previous_scan_id}")
    return lines
