"""onehealth: a HealthKit dashboard for steps, energy, sleep and heart rate."""

from .app import HealthDashboard
from .models import AuthorizationState, DailyMetrics, HealthSample, MetricKind

__all__ = [
    "HealthDashboard",
    "AuthorizationState",
    "DailyMetrics",
    "HealthSample",
    "MetricKind",
]
