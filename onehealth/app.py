"""High-level dashboard wiring the gate, fetcher and view-model together.

Usage:
    from onehealth import HealthDashboard
    from onehealth.companion import CompanionHealthStore

    dash = HealthDashboard(CompanionHealthStore(url="http://192.168.1.20:8200"))
    asyncio.run(dash.mount())
    print(dash.view_model.today)

Create the dashboard on the thread that runs the event loop; that thread
owns the view-model.
"""

from __future__ import annotations

import asyncio
from datetime import tzinfo
from typing import Optional

from .auth import AuthorizationGate
from .fetcher import HISTORY_DAYS, HealthDataFetcher
from .models import AuthorizationState
from .store import AuthorizationDeniedError, HealthStore
from .viewmodel import DashboardViewModel


class HealthDashboard:

    def __init__(
        self,
        store: HealthStore,
        tz: Optional[tzinfo] = None,
        include_history: bool = False,
        history_days: int = HISTORY_DAYS,
    ):
        self.store = store
        self.include_history = include_history
        self.history_days = history_days
        self.view_model = DashboardViewModel()
        self.fetcher = HealthDataFetcher(store, self.view_model, tz=tz)
        self.gate = AuthorizationGate(store, self.view_model, on_granted=self.refresh)

    # -- View lifecycle --

    async def mount(self) -> AuthorizationState:
        """First render: check existing access without prompting, fetch if granted."""
        return await self.gate.check_status()

    async def request_access(self) -> AuthorizationState:
        """User tapped "Authorize Access"."""
        return await self.gate.request_access()

    async def refresh(self):
        tasks = [self.fetcher.refresh_today()]
        if self.include_history:
            tasks.append(self.fetcher.refresh_history(days=self.history_days))
        await asyncio.gather(*tasks)

    def require_granted(self):
        if self.view_model.authorization is not AuthorizationState.GRANTED:
            raise AuthorizationDeniedError(
                "Health data access required. Run 'onehealth health authorize' and allow access on your iPhone."
            )
