from typing import Any, Dict, Optional

import aiohttp
from loguru import logger
from pydantic import ValidationError
from scan_launcher.errors import ScanApiError, ScanStartError
from scan_launcher.models import CancelScanResult

DEFAULT_ENDPOINT = "https://api.cloud.ox.security/api/apollo-gateway"

CHECK_SCAN_IN_PROGRESS_QUERY = """
query CheckScanInProgress {
  checkScanInProgress {
    isInProgress
  }
}
"""

SCAN_ALL_MUTATION = """
mutation ScanAll {
  scanAll {
    scanID
  }
}
"""

IS_STILL_SCANNING_QUERY = """
query IsStillScanning($getScanInfoInput: ScanInfoInput) {
  getScannedAppsInfo(getScanInfoInput: $getScanInfoInput) {
    isStillScanning
  }
}
"""

CANCEL_SCAN_MUTATION = """
mutation CancelScan($cancelScanInput: CancelScanInput) {
  cancelScan(cancelScanInput: $cancelScanInput) {
    isCanceled
    error
    scanId
    previousScanId
  }
}
"""


class ScanClient:
    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        api_key: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        request_timeout: Optional[float] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.logger = logger
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def __aenter__(self) -> "ScanClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = self.api_key
        return headers

    async def _execute(
        self,
        operation_name: str,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Sends one GraphQL operation and returns its `data` object"""
        if self._session is None:
            raise RuntimeError("ScanClient must be used as an async context manager")

        payload: Dict[str, Any] = {"operationName": operation_name, "query": query}
        if variables is not None:
            payload["variables"] = variables

        try:
            async with self._session.post(
                self.endpoint, json=payload, headers=self._headers()
            ) as response:
                response.raise_for_status()
                body = await response.json()
        except aiohttp.ContentTypeError as e:
            self.logger.error(
                f"Non-JSON response ({e.headers.get('Content-Type') if e.headers else 'unknown'}) "
                f"at {self.endpoint} ({operation_name})"
            )
            raise ScanApiError(f"{operation_name}: response is not JSON") from e
        except aiohttp.ClientResponseError as e:
            self.logger.error(
                f"HTTP error {e.status} at {self.endpoint} ({operation_name}): {e.message}"
            )
            raise

        if not isinstance(body, dict):
            raise ScanApiError(f"{operation_name}: response is not a JSON object")
        if body.get("errors"):
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in body["errors"]
            )
            raise ScanApiError(f"{operation_name} failed: {messages}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise ScanApiError(f"{operation_name}: response has no data")
        return data

    async def check_scan_in_progress(self) -> bool:
        """Asks whether any scan is currently running for the organization"""
        data = await self._execute("CheckScanInProgress", CHECK_SCAN_IN_PROGRESS_QUERY)
        result = data.get("checkScanInProgress")
        if not isinstance(result, dict) or not isinstance(result.get("isInProgress"), bool):
            raise ScanApiError("CheckScanInProgress: invalid response format")
        return result["isInProgress"]

    async def start_scan(self) -> str:
        data = await self._execute("ScanAll", SCAN_ALL_MUTATION)
        scan_id = (data.get("scanAll") or {}).get("scanID")
        if not scan_id:
            raise ScanStartError("Failed to get scanID from the response")

        self.logger.info(f"Scan initiated with scanID: {scan_id}")
        return scan_id

    async def get_scanning_status(self, scan_id: str) -> Optional[bool]:
        """Returns isStillScanning for the scan, or None when the service has no value for it"""
        data = await self._execute(
            "IsStillScanning",
            IS_STILL_SCANNING_QUERY,
            {"getScanInfoInput": {"scanID": scan_id}},
        )
        info = data.get("getScannedAppsInfo")
        if info is None:
            return None
        if not isinstance(info, dict):
            raise ScanApiError("IsStillScanning: invalid response format")

        value = info.get("isStillScanning")
        if value is not None and not isinstance(value, bool):
            raise ScanApiError(f"IsStillScanning: unexpected value {value!r}")
        return value

    async def cancel_scan(self, scan_id: str) -> CancelScanResult:
        data = await self._execute(
            "CancelScan",
            CANCEL_SCAN_MUTATION,
            {"cancelScanInput": {"scanId": scan_id}},
        )
        result = data.get("cancelScan")
        if not isinstance(result, dict):
            raise ScanApiError("CancelScan: invalid response format")

        try:
            return CancelScanResult.model_validate(result)
        except ValidationError as e:
            raise ScanApiError(f"CancelScan: invalid response format: {e}") from e
