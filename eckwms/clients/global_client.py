"""Site-side client for the scan buffering protocol."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from eckwms.errors import ERROR_KINDS, AppError, AuthenticationError, TransientError
from eckwms.utils.checksum import verify_checksum

log = logging.getLogger("global_client")

RETRYABLE_STATUS_CODES = (429, 502, 503, 504)

STATUS_KINDS = {
    400: "ValidationError",
    401: "AuthenticationError",
    403: "AuthenticationError",
    404: "ResourceNotFoundError",
    409: "ConflictError",
    503: "TransientError",
}


class SyncResult:
    """Outcome of one pull/handle/confirm cycle."""

    def __init__(self):
        self.pulled = 0
        self.confirmed = 0
        self.handled_ids: List[str] = []
        self.checksum_mismatches: List[str] = []
        self.failed: Dict[str, str] = {}

    @property
    def clean(self):
        return not self.checksum_mismatches and not self.failed

    def __repr__(self):
        return (f"<SyncResult pulled={self.pulled} confirmed={self.confirmed} "
                f"mismatches={len(self.checksum_mismatches)} failed={len(self.failed)}>")


class GlobalSyncClient:
    """Client a local server uses to push scans to and pull them from the global server."""

    def __init__(self, base_url: str, api_key: str, session: Optional[requests.Session] = None,
                 timeout: float = 10, max_attempts: Optional[int] = None, backoff_base: float = 1.0,
                 backoff_max: float = 60.0, sleep: Callable[[float], None] = time.sleep,
                 api_prefix: str = "/eckwms"):
        """Initialize GlobalSyncClient.

        Args:
            base_url: Global server root URL
            api_key: Instance API key sent as X-API-Key
            session: requests session to reuse
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per call on transient failures; None retries forever
            backoff_base: First retry delay in seconds, doubled on each retry
            backoff_max: Upper bound for a single retry delay
            sleep: Sleep function, replaceable in tests
            api_prefix: Path prefix the scan API is mounted under
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.sleep = sleep
        self.api_prefix = api_prefix

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{self.api_prefix}/API/{endpoint}"

    @staticmethod
    def _error_from_response(response) -> AppError:
        """Rebuild the server's error from its ``kind``, falling back to the status code."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("error") or response.reason or "Request failed"
        status = response.status_code

        kind = body.get("kind")
        if kind not in ERROR_KINDS:
            kind = STATUS_KINDS.get(status)
        if kind is None and status in RETRYABLE_STATUS_CODES:
            kind = TransientError.kind

        if kind == AuthenticationError.kind:
            reason = AuthenticationError.MISSING if status == 401 else AuthenticationError.INVALID
            return AuthenticationError(message, reason=reason)
        if kind == TransientError.kind:
            try:
                retry_after = int(response.headers.get("Retry-After", 0))
            except ValueError:
                retry_after = 0
            return TransientError(message, retry_after=retry_after)
        if kind:
            return ERROR_KINDS[kind](message)
        return AppError(message, status_code=status)

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Perform a single HTTP request, mapping failures to the error taxonomy."""
        try:
            response = self.session.request(
                method,
                self._url(endpoint),
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout,
                **kwargs
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientError(f"Global server unreachable: {str(e)}", retry_after=0) from e

        if response.status_code >= 400:
            raise self._error_from_response(response)
        return response.json()

    def _call(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Perform a request, retrying transient failures with exponential backoff."""
        attempt = 0
        while True:
            try:
                return self._request(method, endpoint, **kwargs)
            except TransientError as e:
                attempt += 1
                if self.max_attempts is not None and attempt >= self.max_attempts:
                    raise
                delay = min(self.backoff_max, self.backoff_base * (2 ** (attempt - 1)))
                if e.retry_after:
                    delay = max(delay, min(self.backoff_max, e.retry_after))
                log.warning(f"{method} {endpoint} failed ({e.message}), retry {attempt} in {delay:.1f}s")
                self.sleep(delay)

    def submit_scan(self, payload: Any, device_id: Optional[str] = None, priority: Optional[int] = None,
                    type: Optional[str] = None) -> Dict[str, Any]:
        """Buffer a scan on the global server."""
        body = {"payload": payload}
        if device_id is not None:
            body["deviceId"] = device_id
        if priority is not None:
            body["priority"] = priority
        if type is not None:
            body["type"] = type
        return self._call("POST", "SCAN", json=body)

    def pull(self, limit: Optional[int] = None, min_priority: Optional[int] = None) -> List[Dict[str, Any]]:
        """Pull buffered scans; they are marked delivered server-side."""
        params = {}
        if limit is not None:
            params["limit"] = limit
        if min_priority is not None:
            params["priority_min"] = min_priority
        return self._call("GET", "PULL", params=params).get("scans", [])

    def confirm(self, scan_ids: List[str]) -> int:
        """Confirm processed scans. Returns the number newly confirmed."""
        if not scan_ids:
            return 0
        return self._call("POST", "CONFIRM", json={"scan_ids": list(scan_ids)}).get("confirmed_count", 0)

    def sync_once(self, handler: Callable[[Dict[str, Any]], None], limit: Optional[int] = None) -> SyncResult:
        """Pull a batch, hand each intact scan to ``handler`` and confirm the handled ones.

        Scans with a bad checksum or whose handler raised are reported and
        left unconfirmed, so the server redelivers them later.
        """
        result = SyncResult()
        scans = self.pull(limit=limit)
        result.pulled = len(scans)

        for scan in scans:
            scan_id = scan.get("scan_id")
            if not verify_checksum(scan.get("payload") or "", scan.get("checksum")):
                log.error(f"Checksum mismatch for scan {scan_id}, leaving it unconfirmed")
                result.checksum_mismatches.append(scan_id)
                continue
            try:
                handler(scan)
            except Exception as e:
                log.exception(f"Handler failed for scan {scan_id}")
                result.failed[scan_id] = str(e)
                continue
            result.handled_ids.append(scan_id)

        if result.handled_ids:
            result.confirmed = self.confirm(result.handled_ids)

        log.info(f"Sync cycle finished: {result!r}")
        return result
