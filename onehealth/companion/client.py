"""HTTP client for the companion app's health store API.

The companion app runs on the phone and exposes HealthKit over a small
JSON API: availability, authorization status/request and sample queries.
Uses a requests.Session with _get/_post helpers and auto-discovery via mDNS.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Optional, Sequence

import requests

from ..models import HealthSample, MetricKind
from ..store import STATUS_UNKNOWN, DataStoreUnavailableError, QueryFailedError
from .types import CompanionStatus


DEFAULT_TIMEOUT = 10


class CompanionNotAvailableError(DataStoreUnavailableError):
    """Raised when the companion app cannot be reached."""
    pass


class CompanionHealthStore:
    """Health store backed by the companion app HTTP API.

    Discovers the companion app via mDNS if no explicit URL is given.
    """

    def __init__(self, url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        self.url = url.rstrip("/") if url else None
        self.timeout = timeout
        self.session = requests.Session()

        if self.url is None:
            self.url = self._discover()

    def _discover(self) -> str:
        """Auto-discover companion app via mDNS."""
        from .discovery import CompanionDiscovery
        service = CompanionDiscovery(timeout=8.0).find()
        if service is None:
            raise CompanionNotAvailableError(
                "Companion app not found. Make sure the OneHealth companion is running on your "
                "iPhone and both devices are on the same network, or set --companion-url / COMPANION_URL."
            )
        return f"http://{service.host}:{service.port}"

    # ------------------------------------------------------------------
    # Health store
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        return self.status().health_data_available

    def authorization_status(self, scopes: Sequence[str]) -> str:
        r = self._get("/api/health/authorization", params={"types": ",".join(scopes)})
        if "error" in r:
            raise DataStoreUnavailableError(r["error"])
        return r.get("status", STATUS_UNKNOWN)

    def request_authorization(self, scopes: Sequence[str]) -> bool:
        r = self._post("/api/health/authorization", data={"types": list(scopes)})
        if "error" in r:
            raise DataStoreUnavailableError(r["error"])
        return bool(r.get("success"))

    def query_samples(
        self, kind: MetricKind, start: datetime, end: datetime,
    ) -> list[HealthSample]:
        try:
            r = self._get("/api/health/samples", params={
                "type": kind.value,
                "start": start.isoformat(),
                "end": end.isoformat(),
            })
        except CompanionNotAvailableError as e:
            raise QueryFailedError(kind, str(e)) from e

        if isinstance(r, dict):
            raise QueryFailedError(kind, r.get("error", f"unexpected response: {r}"))
        try:
            return [HealthSample.from_dict(kind, item) for item in r]
        except (KeyError, TypeError, ValueError) as e:
            raise QueryFailedError(kind, f"malformed sample: {e}") from e

    # ------------------------------------------------------------------
    # Status / ping
    # ------------------------------------------------------------------

    def status(self) -> CompanionStatus:
        r = self._get("/api/status")
        if "error" in r:
            raise CompanionNotAvailableError(r["error"])
        return CompanionStatus.from_dict(r)

    def ping(self) -> dict:
        start = time.monotonic()
        result = self._get("/api/ping")
        elapsed_ms = round((time.monotonic() - start) * 1000, 1)
        result["latency_ms"] = elapsed_ms
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, path: str, params: dict | None = None) -> Any:
        return self._request("GET", path, params=params)

    def _post(self, path: str, data: dict | None = None) -> Any:
        return self._request("POST", path, json_data=data)

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json_data: dict | None = None,
    ) -> Any:
        url = f"{self.url}{path}"
        try:
            if method == "GET":
                r = self.session.get(url, params=params, timeout=self.timeout)
            else:
                r = self.session.post(url, json=json_data, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except (requests.ConnectionError, requests.Timeout):
            raise CompanionNotAvailableError(
                f"Cannot connect to companion app at {self.url}. "
                "Make sure the OneHealth companion is running on your iPhone."
            )
        except requests.HTTPError as e:
            # Server returned an error (4xx/5xx), try to extract JSON body
            try:
                body = e.response.json()
                return {"error": body.get("error", str(body)), "status_code": e.response.status_code}
            except ValueError:
                return {"error": f"Companion app error: {e.response.status_code} {e.response.reason}", "status_code": e.response.status_code}
        except requests.RequestException as e:
            raise CompanionNotAvailableError(f"Companion request to {url} failed: {e}") from e
        except ValueError as e:
            raise CompanionNotAvailableError(f"Companion app at {self.url} returned invalid JSON: {e}") from e
