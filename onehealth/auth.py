"""Authorization gate for health store read access."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from .models import READ_SCOPES, AuthorizationState
from .store import (
    STATUS_UNNECESSARY,
    DataStoreUnavailableError,
    HealthStore,
)
from .viewmodel import DashboardViewModel

logger = logging.getLogger(__name__)

OnGranted = Callable[[], Awaitable[None]]


class AuthorizationGate:
    """Tracks whether read access to the four metric scopes is granted.

    check_status() never prompts; request_access() does (the store only shows
    the prompt once per install and returns the cached decision afterwards).
    Once GRANTED the state is terminal for the session. Both calls await
    on_granted after the store grants access.
    """

    def __init__(
        self,
        store: HealthStore,
        view_model: DashboardViewModel,
        on_granted: Optional[OnGranted] = None,
        scopes: Sequence[str] = READ_SCOPES,
    ):
        self.store = store
        self.view_model = view_model
        self.on_granted = on_granted
        self.scopes = tuple(scopes)

    @property
    def state(self) -> AuthorizationState:
        return self.view_model.authorization

    async def check_status(self) -> AuthorizationState:
        if self.state is AuthorizationState.GRANTED:
            return self.state

        try:
            await self._ensure_available()
            status = await asyncio.to_thread(self.store.authorization_status, self.scopes)
        except DataStoreUnavailableError as e:
            return self._unavailable(e)

        if status != STATUS_UNNECESSARY:
            logger.debug(f"Authorization status is {status!r}, access must be requested")
            self.view_model.set_authorization(AuthorizationState.DENIED)
            return self.state
        return await self._grant()

    async def request_access(self) -> AuthorizationState:
        try:
            await self._ensure_available()
            success = await asyncio.to_thread(self.store.request_authorization, self.scopes)
        except DataStoreUnavailableError as e:
            return self._unavailable(e)

        if not success:
            logger.warning("Health data access was not granted")
            self.view_model.set_authorization(AuthorizationState.DENIED)
            self.view_model.raise_alert()
            return self.state
        return await self._grant()

    async def _ensure_available(self):
        available = await asyncio.to_thread(self.store.is_available)
        if not available:
            raise DataStoreUnavailableError("Health data is not available on this device")

    def _unavailable(self, error: DataStoreUnavailableError) -> AuthorizationState:
        logger.warning(f"Health store unavailable: {error}")
        if self.state is not AuthorizationState.GRANTED:
            self.view_model.set_authorization(AuthorizationState.DENIED)
        self.view_model.raise_alert()
        return self.state

    async def _grant(self) -> AuthorizationState:
        self.view_model.set_authorization(AuthorizationState.GRANTED)
        if self.view_model.show_alert:
            self.view_model.dismiss_alert()
        if self.on_granted is not None:
            await self.on_granted()
        return self.state
