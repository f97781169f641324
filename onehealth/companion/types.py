"""Response dataclasses for companion app API responses."""

from __future__ import annotations

from dataclasses import dataclass, asdict


def to_dict(obj) -> dict:
    """Convert a dataclass to a dict, dropping None values."""
    d = asdict(obj)
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class CompanionStatus:
    connected: bool
    health_data_available: bool = False
    version: str | None = None
    device_name: str | None = None
    mock: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> CompanionStatus:
        return cls(
            connected=bool(data.get("connected", True)),
            health_data_available=bool(data.get("health_data_available", False)),
            version=data.get("version"),
            device_name=data.get("device_name"),
            mock=bool(data.get("mock", False)),
        )
