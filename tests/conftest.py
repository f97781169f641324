"""Shared fixtures: an in-memory health store and the mock companion server."""

import threading
import time
from collections import Counter
from datetime import datetime

import pytest

from onehealth.models import HealthSample, MetricKind
from onehealth.store import QueryFailedError


def sample(kind, start, end=None, value=0.0):
    return HealthSample(kind=kind, start=start, end=end or start, value=value)


class FakeStore:
    """HealthStore double with call counting and per-kind failures."""

    def __init__(self, samples=None, available=True, status="unnecessary", grant=True):
        self.samples = dict(samples or {})
        self.available = available
        self.status = status
        self.grant = grant
        self.failing = set()
        self.calls = Counter()
        self.query_threads = set()
        self.windows = []

    def is_available(self):
        self.calls["is_available"] += 1
        return self.available

    def authorization_status(self, scopes):
        self.calls["authorization_status"] += 1
        return self.status

    def request_authorization(self, scopes):
        self.calls["request_authorization"] += 1
        if self.grant:
            self.status = "unnecessary"
        return self.grant

    def query_samples(self, kind, start, end):
        self.calls[f"query:{kind.value}"] += 1
        self.query_threads.add(threading.get_ident())
        self.windows.append((kind, start, end))
        if kind in self.failing:
            raise QueryFailedError(kind, "store error")
        return list(self.samples.get(kind, []))


NOW = datetime(2024, 3, 2, 15, 0)


@pytest.fixture
def today_samples():
    return {
        MetricKind.STEPS: [
            sample(MetricKind.STEPS, datetime(2024, 3, 2, 8), datetime(2024, 3, 2, 9), 1200),
            sample(MetricKind.STEPS, datetime(2024, 3, 2, 10), datetime(2024, 3, 2, 11), 850),
            sample(MetricKind.STEPS, datetime(2024, 3, 2, 12), datetime(2024, 3, 2, 13), 300),
        ],
        MetricKind.ACTIVE_ENERGY: [
            sample(MetricKind.ACTIVE_ENERGY, datetime(2024, 3, 2, 8), datetime(2024, 3, 2, 9), 120.5),
            sample(MetricKind.ACTIVE_ENERGY, datetime(2024, 3, 2, 12), datetime(2024, 3, 2, 13), 80.0),
        ],
        MetricKind.SLEEP: [
            sample(MetricKind.SLEEP, datetime(2024, 3, 2, 0, 30), datetime(2024, 3, 2, 3, 30)),
            sample(MetricKind.SLEEP, datetime(2024, 3, 2, 3, 45), datetime(2024, 3, 2, 6, 15)),
        ],
        MetricKind.HEART_RATE: [
            sample(MetricKind.HEART_RATE, datetime(2024, 3, 2, 9), value=60),
            sample(MetricKind.HEART_RATE, datetime(2024, 3, 2, 11), value=80),
        ],
    }


@pytest.fixture
def mock_companion():
    """Mock companion server on an ephemeral port. Yields (url, state)."""
    from onehealth.mock.server import MockHealthState, create_server

    state = MockHealthState()
    server = create_server(port=0, state=state, host="127.0.0.1")
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}", state
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def closed_port_url():
    import socket
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}"


@pytest.fixture
def los_angeles(monkeypatch):
    """Run with the system zone set to America/Los_Angeles."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available")
    monkeypatch.setenv("TZ", "America/Los_Angeles")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
