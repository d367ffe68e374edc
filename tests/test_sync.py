from __future__ import annotations

import pytest

from ghostfill_popup.messaging import GENERATE_EMAIL, GET_CURRENT_EMAIL
from ghostfill_popup.notifications import ToastScheduler
from ghostfill_popup.state import IdentityRecord
from ghostfill_popup.storage import StorageChange
from ghostfill_popup.sync import GENERATED_MESSAGE, GENERATION_FAILED_MESSAGE, IdentitySync

RECORD = {"fullEmail": "a@b.ghost", "password": "xY9!"}


@pytest.fixture()
def sync(store, channel, scheduler):
    return IdentitySync(store, channel, ToastScheduler(store, scheduler, 2_500))


def test_fetch_replaces_identity(sync, store, channel):
    sync.fetch_identity()

    assert channel.actions == [GET_CURRENT_EMAIL]
    channel.respond({"email": RECORD})
    assert store.state.identity == IdentityRecord.from_message(RECORD)


@pytest.mark.parametrize("response", [{"email": None}, {"email": {"password": "x"}}, {}])
def test_fetch_ignores_empty_or_malformed(sync, store, channel, response):
    previous = IdentityRecord("old@b.ghost")
    store.update(identity=previous)

    sync.fetch_identity()
    channel.respond(response)

    assert store.state.identity is previous


def test_fetch_failure_keeps_state_and_is_silent(sync, store, channel, caplog):
    previous = IdentityRecord("old@b.ghost")
    store.update(identity=previous)

    sync.fetch_identity()
    channel.fail()

    assert store.state.identity is previous
    assert store.state.toast is None
    assert "Failed to fetch identity" in caplog.text


def test_generate_clears_identity_before_resolution(sync, store, channel):
    store.update(identity=IdentityRecord("old@b.ghost"))
    seen = []
    store.subscribe(seen.append)

    assert sync.generate_identity() is True

    assert channel.actions == [GENERATE_EMAIL]
    assert store.state.identity is None
    assert store.state.generating
    assert seen[0].identity is None


def test_generate_success_shows_notification_then_clears(sync, store, channel, scheduler):
    sync.generate_identity()
    channel.respond({"email": RECORD})

    assert store.state.identity == IdentityRecord("a@b.ghost", "xY9!")
    assert not store.state.generating
    assert store.state.toast == GENERATED_MESSAGE == "New identity generated!"

    scheduler.advance(2_500)
    assert store.state.toast is None


def test_generate_failure_notifies_and_leaves_identity_absent(sync, store, channel):
    store.update(identity=IdentityRecord("old@b.ghost"))

    sync.generate_identity()
    channel.fail()

    assert store.state.identity is None
    assert not store.state.generating
    assert store.state.toast == GENERATION_FAILED_MESSAGE


def test_generate_malformed_response_counts_as_failure(sync, store, channel):
    sync.generate_identity()
    channel.respond({"email": {"username": "nobody"}})

    assert store.state.identity is None
    assert store.state.toast == GENERATION_FAILED_MESSAGE


def test_generate_ignores_reentrant_calls(sync, store, channel):
    assert sync.generate_identity() is True
    assert sync.generate_identity() is False
    assert channel.actions == [GENERATE_EMAIL]

    channel.respond({"email": RECORD})
    assert sync.generate_identity() is True
    assert channel.actions == [GENERATE_EMAIL, GENERATE_EMAIL]


def test_generate_send_raising_is_reported(store, scheduler):
    class BrokenChannel:
        def send(self, message, on_response, on_error):
            raise RuntimeError("port closed")

    sync = IdentitySync(store, BrokenChannel(), ToastScheduler(store, scheduler))

    assert sync.generate_identity() is True
    assert store.state.toast == GENERATION_FAILED_MESSAGE
    assert not sync.generating


def test_fetch_send_raising_keeps_identity_and_is_silent(store, scheduler, caplog):
    class BrokenChannel:
        def send(self, message, on_response, on_error):
            raise RuntimeError("port closed")

    previous = IdentityRecord("old@b.ghost")
    store.update(identity=previous)
    sync = IdentitySync(store, BrokenChannel(), ToastScheduler(store, scheduler))

    sync.fetch_identity()

    assert store.state.identity is previous
    assert store.state.toast is None
    assert "Failed to fetch identity" in caplog.text
    assert "port closed" in caplog.text


def test_push_update_overwrites_in_flight_generation(sync, store, channel):
    sync.generate_identity()

    sync.on_external_change(StorageChange(None, {"fullEmail": "pushed@b.ghost"}))
    assert store.state.identity.full_email == "pushed@b.ghost"

    # The late response still lands last and wins.
    channel.respond({"email": RECORD})
    assert store.state.identity.full_email == "a@b.ghost"

    sync.on_external_change(StorageChange(RECORD, {"fullEmail": "later@b.ghost"}))
    assert store.state.identity.full_email == "later@b.ghost"


def test_push_removal_clears_identity(sync, store):
    store.update(identity=IdentityRecord("a@b.ghost"))

    sync.on_external_change(StorageChange(RECORD, None))

    assert store.state.identity is None


def test_responses_after_close_are_dropped(sync, store, channel):
    sync.fetch_identity()
    sync.generate_identity()
    sync.close()

    channel.respond({"email": RECORD}, index=0)
    channel.respond({"email": RECORD}, index=1)

    assert store.state.identity is None
    assert store.state.toast is None


def test_reopen_after_close_applies_new_responses(sync, store, channel):
    sync.generate_identity()
    sync.close()
    sync.reopen()

    assert not store.state.generating
    assert sync.generate_identity() is True

    # The response from before close belongs to a finished session.
    channel.respond({"email": {"fullEmail": "stale@b.ghost"}}, index=0)
    assert store.state.identity is None
    assert store.state.generating

    channel.respond({"email": RECORD}, index=1)
    assert store.state.identity.full_email == "a@b.ghost"
    assert not store.state.generating
    assert not sync.generating
