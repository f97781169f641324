"""Companion app access to the on-device health store (HealthKit)."""

from .client import CompanionHealthStore, CompanionNotAvailableError
from .types import CompanionStatus

__all__ = ["CompanionHealthStore", "CompanionNotAvailableError", "CompanionStatus"]
