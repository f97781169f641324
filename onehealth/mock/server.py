"""Mock companion HTTP server with Bonjour advertisement.

Serves the companion health store API with generated samples relative to
now. Every object response includes "mock": true so it cannot be confused
with real data. The authorization decision is cached after the first
request, like HealthKit's once-per-install prompt.

Usage:
    python -m onehealth.mock.server [--port 8200] [--no-bonjour] [--authorized]
"""

from __future__ import annotations

import json
import random
import signal
import sys
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from functools import partial
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from ..companion.discovery import SERVICE_TYPE
from ..models import MetricKind
from ..store import STATUS_SHOULD_REQUEST, STATUS_UNNECESSARY

DEFAULT_PORT = 8200


@dataclass
class MockHealthState:
    """Mutable server state shared by all requests."""
    available: bool = True
    deny: bool = False
    # None until the user has answered the prompt
    decision: Optional[bool] = None
    prompts_shown: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def authorized(self) -> bool:
        return self.decision is True

    def answer_prompt(self) -> tuple[bool, bool]:
        """Return (decision, prompted). Only the first request shows the prompt."""
        with self._lock:
            prompted = self.decision is None
            if prompted:
                self.prompts_shown += 1
                self.decision = not self.deny
            return self.decision, prompted


def _now() -> datetime:
    return datetime.now().astimezone()


def _iso(dt: datetime) -> str:
    return dt.isoformat()


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    tz = _now().tzinfo
    return datetime(day.year, day.month, day.day, tzinfo=tz) + timedelta(hours=hour, minutes=minute)


# ------------------------------------------------------------------
# Sample generators, deterministic per calendar day
# ------------------------------------------------------------------

def _day_samples(kind: MetricKind, day: date) -> list[tuple[datetime, datetime, float]]:
    rng = random.Random(f"{kind.value}:{day.isoformat()}")

    if kind is MetricKind.STEPS:
        return [
            (_at(day, h), _at(day, h, 59), float(rng.randint(150, 1400)))
            for h in range(7, 22)
        ]
    if kind is MetricKind.ACTIVE_ENERGY:
        return [
            (_at(day, h), _at(day, h, 59), round(rng.uniform(8.0, 45.0), 1))
            for h in range(7, 22)
        ]
    if kind is MetricKind.HEART_RATE:
        samples = []
        for slot in range(48):
            ts = _at(day, slot // 2, 30 * (slot % 2))
            base = 58 if slot < 14 else 72
            samples.append((ts, ts, float(base + rng.randint(0, 25))))
        return samples

    # Sleep stages for the night starting this evening; the post-midnight
    # stages start on the next calendar day.
    bed = _at(day, 22, rng.randint(30, 59))
    first_wake = bed + timedelta(minutes=rng.randint(120, 170))
    resume = first_wake + timedelta(minutes=rng.randint(5, 20))
    second_wake = resume + timedelta(minutes=rng.randint(150, 200))
    resume2 = second_wake + timedelta(minutes=rng.randint(3, 10))
    wake = resume2 + timedelta(minutes=rng.randint(60, 110))
    return [(bed, first_wake, 0.0), (resume, second_wake, 0.0), (resume2, wake, 0.0)]


def generate_samples(kind: MetricKind, start: datetime, end: datetime) -> list[dict]:
    """Samples whose start lies in [start, end) and not in the future."""
    now = _now()
    end = min(end, now)
    first_day = start.date() - timedelta(days=1)
    samples = []
    day = first_day
    while day <= end.date():
        for s, e, value in _day_samples(kind, day):
            if start <= s < end:
                samples.append({"start": _iso(s), "end": _iso(min(e, now)), "value": value})
        day += timedelta(days=1)
    return samples


def _parse_ts(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw)
    return ts if ts.tzinfo else ts.astimezone()


# ------------------------------------------------------------------
# Request handler
# ------------------------------------------------------------------

class MockHandler(BaseHTTPRequestHandler):
    """Handles the companion health store endpoints with mock data."""

    def __init__(self, *args, state: MockHealthState, **kwargs):
        self.state = state
        super().__init__(*args, **kwargs)

    def do_GET(self):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")
        params = parse_qs(parsed.query)

        routes = {
            "/api/status": self._status,
            "/api/ping": self._ping,
            "/api/health/authorization": self._authorization_status,
            "/api/health/samples": self._samples,
        }

        handler = routes.get(path)
        if handler:
            handler(params)
        else:
            self._json_response({"error": "not found", "mock": True}, status=404)

    def do_POST(self):
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")

        content_length = int(self.headers.get("Content-Length", 0))
        body = {}
        if content_length > 0:
            raw = self.rfile.read(content_length)
            try:
                body = json.loads(raw)
            except json.JSONDecodeError:
                pass

        if path == "/api/health/authorization":
            self._request_authorization(body)
        else:
            self._json_response({"error": "not found", "mock": True}, status=404)

    # --- Route handlers ---

    def _status(self, params):
        self._json_response({
            "connected": True,
            "version": "1.0.0",
            "device_name": "Mock iPhone",
            "health_data_available": self.state.available,
            "mock": True,
        })

    def _ping(self, params):
        self._json_response({"pong": True, "timestamp": _iso(_now()), "mock": True})

    def _authorization_status(self, params):
        if not self.state.available:
            self._json_response({"error": "health data unavailable", "mock": True}, status=503)
            return
        status = STATUS_UNNECESSARY if self.state.authorized else STATUS_SHOULD_REQUEST
        self._json_response({"status": status, "mock": True})

    def _request_authorization(self, body):
        if not self.state.available:
            self._json_response({"error": "health data unavailable", "mock": True}, status=503)
            return
        decision, prompted = self.state.answer_prompt()
        self._json_response({"success": decision, "prompted": prompted, "mock": True})

    def _samples(self, params):
        if not self.state.available:
            self._json_response({"error": "health data unavailable", "mock": True}, status=503)
            return
        if not self.state.authorized:
            self._json_response({"error": "not authorized", "mock": True}, status=403)
            return
        try:
            kind = MetricKind(params.get("type", [""])[0])
            start = _parse_ts(params["start"][0])
            end = _parse_ts(params["end"][0])
        except (KeyError, ValueError) as e:
            self._json_response({"error": f"bad query: {e}", "mock": True}, status=400)
            return
        self._json_response(generate_samples(kind, start, end))

    # --- Helpers ---

    def _json_response(self, data, status=200):
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        """Override to prefix with [mock]."""
        sys.stderr.write(f"[mock] {args[0]}\n")


def create_server(
    port: int = DEFAULT_PORT,
    state: Optional[MockHealthState] = None,
    host: str = "0.0.0.0",
) -> ThreadingHTTPServer:
    """Build the mock server without starting it. Use port 0 for an ephemeral port."""
    handler = partial(MockHandler, state=state or MockHealthState())
    return ThreadingHTTPServer((host, port), handler)


# ------------------------------------------------------------------
# Bonjour advertisement
# ------------------------------------------------------------------

def _start_bonjour(port: int):
    """Advertise the mock server via Bonjour/mDNS."""
    try:
        import socket
        from zeroconf import Zeroconf, ServiceInfo

        local_ip = socket.gethostbyname(socket.gethostname())
        info = ServiceInfo(
            SERVICE_TYPE,
            f"onehealth-mock.{SERVICE_TYPE}",
            addresses=[socket.inet_aton(local_ip)],
            port=port,
            properties={"version": "1.0.0", "mock": "true"},
        )
        zc = Zeroconf()
        zc.register_service(info)
        print(f"[mock] Bonjour: advertising {SERVICE_TYPE} on port {port}")
        return zc, info
    except Exception as e:
        print(f"[mock] Bonjour advertisement failed: {e}")
        return None, None


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------

def serve(port: int = DEFAULT_PORT, bonjour: bool = True, state: Optional[MockHealthState] = None):
    zc, svc_info = (None, None)
    if bonjour:
        zc, svc_info = _start_bonjour(port)

    server = create_server(port, state)
    print(f"[mock] Companion server listening on http://localhost:{port}")
    print("[mock] Endpoints: /api/status, /api/health/authorization, /api/health/samples")
    print("[mock] Press Ctrl+C to stop")

    def shutdown(sig, frame):
        print("\n[mock] Shutting down...")
        if zc and svc_info:
            zc.unregister_service(svc_info)
            zc.close()
        server.server_close()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        shutdown(None, None)


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Mock companion health server for onehealth")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port to listen on (default: {DEFAULT_PORT})")
    parser.add_argument("--no-bonjour", action="store_true", help="Skip Bonjour/mDNS advertisement")
    parser.add_argument("--authorized", action="store_true", help="Start with read access already granted")
    parser.add_argument("--deny", action="store_true", help="Decline the authorization prompt")
    parser.add_argument("--unavailable", action="store_true", help="Report health data as unavailable")
    args = parser.parse_args()

    state = MockHealthState(
        available=not args.unavailable,
        deny=args.deny,
        decision=True if args.authorized else None,
    )
    serve(args.port, bonjour=not args.no_bonjour, state=state)


if __name__ == "__main__":
    main()
