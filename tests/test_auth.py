import asyncio

from onehealth.auth import AuthorizationGate
from onehealth.models import AuthorizationState
from onehealth.store import DataStoreUnavailableError
from onehealth.viewmodel import DashboardViewModel

from conftest import FakeStore


def make_gate(store):
    fetches = []

    async def on_granted():
        fetches.append(True)

    gate = AuthorizationGate(store, DashboardViewModel(), on_granted=on_granted)
    return gate, fetches


class TestCheckStatus:
    def test_starts_unknown(self):
        gate, _ = make_gate(FakeStore())
        assert gate.state is AuthorizationState.UNKNOWN

    def test_already_granted(self):
        gate, fetches = make_gate(FakeStore(status="unnecessary"))
        assert asyncio.run(gate.check_status()) is AuthorizationState.GRANTED
        assert fetches == [True]
        assert gate.view_model.show_alert is False

    def test_not_yet_requested(self):
        store = FakeStore(status="shouldRequest")
        gate, fetches = make_gate(store)
        assert asyncio.run(gate.check_status()) is AuthorizationState.DENIED
        assert fetches == []
        assert gate.view_model.show_alert is False
        assert store.calls["request_authorization"] == 0

    def test_unavailable_raises_alert(self):
        store = FakeStore(available=False)
        gate, fetches = make_gate(store)
        assert asyncio.run(gate.check_status()) is AuthorizationState.DENIED
        assert gate.view_model.show_alert is True
        assert store.calls["authorization_status"] == 0
        assert fetches == []

    def test_transport_error_treated_as_unavailable(self):
        class BrokenStore(FakeStore):
            def authorization_status(self, scopes):
                raise DataStoreUnavailableError("connection refused")

        gate, _ = make_gate(BrokenStore())
        assert asyncio.run(gate.check_status()) is AuthorizationState.DENIED
        assert gate.view_model.show_alert is True

    def test_granted_is_terminal(self):
        store = FakeStore(status="unnecessary")
        gate, fetches = make_gate(store)
        asyncio.run(gate.check_status())
        store.status = "shouldRequest"
        calls_before = dict(store.calls)

        assert asyncio.run(gate.check_status()) is AuthorizationState.GRANTED
        assert dict(store.calls) == calls_before
        assert fetches == [True]


class TestRequestAccess:
    def test_user_grants(self):
        store = FakeStore(status="shouldRequest", grant=True)
        gate, fetches = make_gate(store)
        asyncio.run(gate.check_status())
        assert asyncio.run(gate.request_access()) is AuthorizationState.GRANTED
        assert fetches == [True]
        assert store.calls["request_authorization"] == 1

    def test_user_declines(self):
        gate, fetches = make_gate(FakeStore(status="shouldRequest", grant=False))
        assert asyncio.run(gate.request_access()) is AuthorizationState.DENIED
        assert gate.view_model.show_alert is True
        assert fetches == []

    def test_grant_clears_alert(self):
        store = FakeStore(status="shouldRequest", grant=False)
        gate, _ = make_gate(store)
        asyncio.run(gate.request_access())
        store.grant = True
        assert asyncio.run(gate.request_access()) is AuthorizationState.GRANTED
        assert gate.view_model.show_alert is False

    def test_unavailable(self):
        store = FakeStore(available=False)
        gate, _ = make_gate(store)
        assert asyncio.run(gate.request_access()) is AuthorizationState.DENIED
        assert gate.view_model.show_alert is True
        assert store.calls["request_authorization"] == 0

    def test_then_check_does_not_prompt(self):
        store = FakeStore(status="shouldRequest", grant=True)
        gate, _ = make_gate(store)
        asyncio.run(gate.request_access())
        asyncio.run(gate.check_status())
        assert store.calls["request_authorization"] == 1
        assert gate.state is AuthorizationState.GRANTED
