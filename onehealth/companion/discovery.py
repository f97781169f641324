"""Bonjour/mDNS discovery for the companion app.

Finds the companion app's HTTP server on the local network via the
_onehealth._tcp.local. service type.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

import requests


SERVICE_TYPE = "_onehealth._tcp.local."
DEFAULT_TIMEOUT = 8.0
GRACE_PERIOD = 3.0


@dataclass
class CompanionService:
    """A discovered companion app instance."""
    host: str
    port: int
    name: str
    properties: dict
    all_addresses: list[str] = field(default_factory=list)

    @property
    def is_mock(self) -> bool:
        return self.properties.get("mock") == "true"


def _is_link_local_only(addresses: list[str]) -> bool:
    """True if all addresses are link-local (169.254.x.x / fe80::), i.e. a phone over USB."""
    if not addresses:
        return False
    return all(a.startswith("169.254.") or a.startswith("fe80::") for a in addresses)


def _pick_best_address(addresses: list[str]) -> str:
    for addr in addresses:
        if addr.startswith("169.254."):
            return addr
    for addr in addresses:
        if "." in addr and not addr.startswith("127."):
            return addr
    return addresses[0]


def _has_health_data(host: str, port: int) -> bool:
    """Hit /api/status and check the instance can serve health data."""
    try:
        r = requests.get(f"http://{host}:{port}/api/status", timeout=3)
        return bool(r.json().get("health_data_available"))
    except (requests.RequestException, ValueError):
        return False


def _decode_properties(raw: dict | None) -> dict:
    props = {}
    for k, v in (raw or {}).items():
        try:
            props[k.decode("utf-8", errors="replace")] = v.decode("utf-8", errors="replace")
        except (AttributeError, UnicodeDecodeError):
            props[str(k)] = str(v)
    return props


class CompanionDiscovery:
    """Discovers companion app instances via Bonjour/mDNS.

    Lazy-imports zeroconf so commands given an explicit URL never load it.
    Prefers a phone over USB, then any instance with health data, then
    real instances over the mock server.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def find(self) -> Optional[CompanionService]:
        """Block until a companion app is found or timeout expires."""
        from zeroconf import ServiceBrowser, Zeroconf, ServiceStateChange

        candidates: list[CompanionService] = []
        usb_found = False
        first_other_at: float | None = None

        def on_state_change(**kwargs):
            nonlocal usb_found, first_other_at
            if kwargs.get("state_change") != ServiceStateChange.Added:
                return
            zc = kwargs["zeroconf"]
            name = kwargs["name"]
            info = zc.get_service_info(kwargs["service_type"], name)
            if info is None:
                return

            addresses = info.parsed_addresses()
            if not addresses:
                return

            candidates.append(CompanionService(
                host=_pick_best_address(addresses),
                port=info.port,
                name=name,
                properties=_decode_properties(info.properties),
                all_addresses=addresses,
            ))
            if _is_link_local_only(addresses):
                usb_found = True
            elif first_other_at is None:
                first_other_at = time.monotonic()

        zc = Zeroconf()
        try:
            ServiceBrowser(zc, SERVICE_TYPE, handlers=[on_state_change])

            # Stop early on a USB instance; otherwise give one a grace period
            # to show up after the first network candidate.
            deadline = time.monotonic() + self.timeout
            while time.monotonic() < deadline and not usb_found:
                if first_other_at is not None and time.monotonic() - first_other_at >= GRACE_PERIOD:
                    break
                time.sleep(0.1)

            return self._choose(candidates)
        finally:
            zc.close()

    @staticmethod
    def _choose(candidates: list[CompanionService]) -> Optional[CompanionService]:
        if not candidates:
            return None

        for svc in candidates:
            if _is_link_local_only(svc.all_addresses):
                return svc

        for svc in candidates:
            if not svc.is_mock and _has_health_data(svc.host, svc.port):
                return svc

        for svc in candidates:
            if _has_health_data(svc.host, svc.port):
                return svc

        return candidates[0]
