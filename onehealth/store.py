"""Health store interface and error taxonomy.

The store is the platform's health database. It is never reimplemented
here; CompanionHealthStore talks to it through the companion app.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .models import HealthSample, MetricKind

# Request status values reported by the store
STATUS_UNNECESSARY = "unnecessary"
STATUS_SHOULD_REQUEST = "shouldRequest"
STATUS_UNKNOWN = "unknown"


class HealthStoreError(Exception):
    """Base class for health store failures."""
    pass


class DataStoreUnavailableError(HealthStoreError):
    """Health data is not available on this device, or it cannot be reached."""
    pass


class AuthorizationDeniedError(HealthStoreError):
    """The user declined read access."""
    pass


class QueryFailedError(HealthStoreError):
    """A range query for one metric kind failed."""

    def __init__(self, kind: MetricKind, message: str = ""):
        self.kind = kind
        super().__init__(message or f"{kind.value} query failed")


class HealthStore(Protocol):
    def is_available(self) -> bool:
        ...

    def authorization_status(self, scopes: Sequence[str]) -> str:
        ...

    def request_authorization(self, scopes: Sequence[str]) -> bool:
        ...

    def query_samples(
        self, kind: MetricKind, start: datetime, end: datetime,
    ) -> list[HealthSample]:
        ...
