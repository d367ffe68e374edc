from __future__ import annotations

import pytest

from ghostfill_popup.navigation import ViewStateMachine
from ghostfill_popup.state import IdentityRecord, View


def test_starts_at_hub(store):
    machine = ViewStateMachine(store)

    assert machine.current is View.HUB
    assert not machine.is_detail


def test_hub_password_hub_otp_sequence(store):
    machine = ViewStateMachine(store)

    machine.navigate(View.PASSWORD)
    assert machine.is_detail
    machine.back()
    machine.navigate("otp")

    assert machine.current is View.OTP
    assert store.state.view is View.OTP


def test_navigation_is_independent_of_identity_and_gate(store):
    machine = ViewStateMachine(store)
    store.update(identity=IdentityRecord("a@b.ghost"), api_key_configured=False)

    machine.navigate(View.EMAIL)
    assert store.state.view is View.EMAIL
    assert store.state.gate_blocking

    store.update(identity=None, api_key_configured=True)
    assert store.state.view is View.EMAIL


def test_back_from_detail_returns_to_hub(store):
    machine = ViewStateMachine(store)
    machine.navigate(View.OTP)

    assert machine.back() is View.HUB


def test_unknown_view_is_rejected(store):
    machine = ViewStateMachine(store)

    with pytest.raises(ValueError):
        machine.navigate("settings")
    assert machine.current is View.HUB
