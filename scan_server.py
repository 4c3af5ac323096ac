import random
import uuid
from typing import List, Optional, Sequence

from aiohttp import web
from loguru import logger


class ScanServer:
    """Scriptable stand-in for the scan service's GraphQL gateway.

    Every IsStillScanning query consumes the next value of `status_script`
    (True, False or None); the last value repeats once the script runs out.
    """

    def __init__(
        self,
        status_script: Sequence[Optional[bool]] = (True, False),
        scan_in_progress: bool = False,
        error_rate: float = 0.0,
        fail_start: bool = False,
    ):
        self.status_script = list(status_script)
        self.scan_in_progress = scan_in_progress
        self.error_rate = error_rate
        self.fail_start = fail_start
        self.in_progress_error = False
        self.maintenance_page = False
        self.cancel_error: Optional[str] = None
        self.active_scan_id: Optional[str] = None
        self.previous_scan_id: Optional[str] = None
        self.operations: List[str] = []
        self.authorization_headers: List[Optional[str]] = []
        self.status_queries = 0
        self.app = web.Application()
        self.app.router.add_post("/graphql", self.handle_graphql)
        self.runner: Optional[web.AppRunner] = None
        self.logger = logger

    async def handle_graphql(self, request):
        if self.maintenance_page:
            self.logger.info("Returning maintenance page")
            return web.Response(text="<html>Down for maintenance</html>", content_type="text/html")

        body = await request.json()
        operation = body.get("operationName")
        self.operations.append(operation)
        self.authorization_headers.append(request.headers.get("Authorization"))

        if operation == "CheckScanInProgress":
            return self._check_scan_in_progress()
        if operation == "ScanAll":
            return self._scan_all()
        if operation == "IsStillScanning":
            return self._is_still_scanning()
        if operation == "CancelScan":
            scan_id = body["variables"]["cancelScanInput"]["scanId"]
            return self._cancel_scan(scan_id)

        # GraphQL gateways report resolver failures in a 200 body
        return web.json_response({"errors": [{"message": f"Unknown operation {operation}"}]})

    def _check_scan_in_progress(self):
        if self.in_progress_error:
            self.logger.info("Returning error for in-progress check")
            return web.json_response({"errors": [{"message": "Internal error"}]}, status=500)
        return web.json_response(
            {"data": {"checkScanInProgress": {"isInProgress": self.scan_in_progress}}}
        )

    def _scan_all(self):
        if self.fail_start:
            self.logger.info("Returning scanAll without a scanID")
            return web.json_response({"data": {"scanAll": None}})

        self.previous_scan_id = self.active_scan_id
        self.active_scan_id = uuid.uuid4().hex
        self.scan_in_progress = True
        self.logger.info(f"Started scan {self.active_scan_id}")
        return web.json_response({"data": {"scanAll": {"scanID": self.active_scan_id}}})

    def _is_still_scanning(self):
        index = min(self.status_queries, len(self.status_script) - 1)
        self.status_queries += 1

        if random.random() < self.error_rate:
            self.logger.info("Returning error status")
            return web.json_response({"errors": [{"message": "Upstream failure"}]}, status=502)

        value = self.status_script[index]
        if value is None:
            self.logger.info("Returning null scan info")
            return web.json_response({"data": {"getScannedAppsInfo": None}})

        if value is False:
            self.scan_in_progress = False
        self.logger.info(f"Returning isStillScanning={value}")
        return web.json_response({"data": {"getScannedAppsInfo": {"isStillScanning": value}}})

    def _cancel_scan(self, scan_id: str):
        if self.cancel_error is not None:
            result = {"isCanceled": True, "error": self.cancel_error, "scanId": scan_id}
        elif scan_id != self.active_scan_id:
            result = {
                "isCanceled": False,
                "error": f"Scan {scan_id} does not exist",
                "scanId": scan_id,
            }
        else:
            self.scan_in_progress = False
            result = {
                "isCanceled": True,
                "error": None,
                "scanId": scan_id,
                "previousScanId": self.previous_scan_id,
            }
        return web.json_response({"data": {"cancelScan": result}})

    async def start(self, port: int = 8080):
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, "localhost", port)
        await site.start()
        self.logger.info(f"Server started on port {port}")
        return site

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
