"""Dashboard view-model: the state the view renders.

Owned by the thread that creates it (the event-loop thread). The fetcher
and gate are the only writers; every write notifies subscribers so the
view can re-render.
"""

from __future__ import annotations

import dataclasses
import threading
from datetime import date
from typing import Callable

from .models import AuthorizationState, DailyMetrics

Subscriber = Callable[["DashboardViewModel"], None]


class DashboardViewModel:

    def __init__(self):
        self._owner = threading.get_ident()
        self._subscribers: list[Subscriber] = []
        self._authorization = AuthorizationState.UNKNOWN
        self._show_alert = False
        self._today: DailyMetrics | None = None
        self._history: tuple[DailyMetrics, ...] = ()
        self._generations: dict[str, int] = {}

    # -- Read side --

    @property
    def authorization(self) -> AuthorizationState:
        return self._authorization

    @property
    def show_alert(self) -> bool:
        return self._show_alert

    @property
    def today(self) -> DailyMetrics | None:
        return self._today

    @property
    def history(self) -> tuple[DailyMetrics, ...]:
        return self._history

    def generation(self, channel: str) -> int:
        """Current fetch generation for a refresh channel ("today" or "history")."""
        return self._generations.get(channel, 0)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback for change notifications. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def to_dict(self) -> dict:
        return {
            "authorization": self._authorization.value,
            "show_alert": self._show_alert,
            "today": self._today.to_dict() if self._today else None,
            "history": [d.to_dict() for d in self._history],
        }

    # -- Write side (owner thread only) --

    def set_authorization(self, state: AuthorizationState):
        self._check_owner()
        self._authorization = state
        self._notify()

    def raise_alert(self):
        self._check_owner()
        self._show_alert = True
        self._notify()

    def dismiss_alert(self):
        self._check_owner()
        self._show_alert = False
        self._notify()

    def next_generation(self, channel: str) -> int:
        """Start a new fetch generation; results tagged with older ones are stale."""
        self._check_owner()
        self._generations[channel] = self._generations.get(channel, 0) + 1
        return self._generations[channel]

    def update_today(self, day: date, **fields):
        """Replace the given fields of today's metrics, keeping the rest.

        A new calendar day starts from defaults.
        """
        self._check_owner()
        base = self._today if self._today and self._today.date == day else DailyMetrics(date=day)
        self._today = dataclasses.replace(base, **fields)
        self._notify()

    def set_history(self, history: list[DailyMetrics]):
        self._check_owner()
        self._history = tuple(history)
        self._notify()

    def _check_owner(self):
        if threading.get_ident() != self._owner:
            raise RuntimeError("DashboardViewModel can only be mutated from its owning thread")

    def _notify(self):
        for callback in list(self._subscribers):
            callback(self)
