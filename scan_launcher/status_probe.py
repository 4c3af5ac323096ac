from typing import Optional

from loguru import logger
from scan_launcher.models import Observation
from scan_launcher.scan_client import ScanClient


def classify_scanning_status(is_still_scanning: Optional[bool]) -> Observation:
    """Maps the service's isStillScanning flag onto an observation"""
    if is_still_scanning is None:
        return Observation.indeterminate
    if is_still_scanning:
        return Observation.running
    return Observation.finished


class StatusProbe:
    """Turns single status queries into observations the poller can act on.

    Neither method raises for a failed request: a lost status reading is
    indistinguishable from the service having no record, so it becomes
    `Observation.indeterminate`, and an unknown "in progress" answer is read
    as busy so a second scan is never started on top of a running one.
    """

    def __init__(self, client: ScanClient):
        self.client = client
        self.logger = logger

    async def probe(self, scan_id: str) -> Observation:
        try:
            is_still_scanning = await self.client.get_scanning_status(scan_id)
        except Exception as e:
            self.logger.error(f"Error checking scanning status for {scan_id}: {e}")
            return Observation.indeterminate

        return classify_scanning_status(is_still_scanning)

    async def is_any_job_active(self) -> bool:
        try:
            in_progress = await self.client.check_scan_in_progress()
        except Exception as e:
            self.logger.error(f"Error checking if scan is in progress: {e}")
            return True

        self.logger.info(
            "Scan in progress check: "
            + ("A scan is currently running" if in_progress else "No scan currently running")
        )
        return in_progress
