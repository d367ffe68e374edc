from __future__ import annotations

import string

import pytest
from mnemonic import Mnemonic

from ghostfill_popup.background import BackgroundService, IdentityGenerator
from ghostfill_popup.config import AppConfig
from ghostfill_popup.messaging import (
    GENERATE_EMAIL,
    GET_CURRENT_EMAIL,
    MessageChannelError,
    build_message,
    dispatch,
)
from ghostfill_popup.state import IdentityRecord
from ghostfill_popup.storage import LocalStorage


def test_generated_identity_shape(config):
    identity = IdentityGenerator(config).generate()

    assert identity["fullEmail"] == f"{identity['username']}@{config.identity_domain}"
    assert identity["fullEmail"].endswith("@ghost")
    assert len(identity["username"].split(".")) == config.identity_word_count
    assert IdentityRecord.from_message(identity) is not None


def test_local_part_uses_bip39_words(config):
    wordlist = set(Mnemonic("english").wordlist)
    local = IdentityGenerator(config).local_part()

    *words, last = local.split(".")
    digits = last.lstrip("abcdefghijklmnopqrstuvwxyz")
    words.append(last[: len(last) - len(digits)])

    assert all(word in wordlist for word in words)
    assert 100 <= int(digits) <= 999


def test_generated_password_mixes_character_classes(config):
    password = IdentityGenerator(config).password()

    assert len(password) == config.password_length
    assert any(c in string.ascii_lowercase for c in password)
    assert any(c in string.ascii_uppercase for c in password)
    assert any(c in string.digits for c in password)
    assert any(not c.isalnum() for c in password)


def test_password_length_must_allow_every_class():
    with pytest.raises(ValueError):
        IdentityGenerator(AppConfig(password_length=3))


def test_generate_stores_and_returns_identity(storage, config):
    service = BackgroundService(storage, config)
    events = []
    storage.add_listener(lambda changes, area: events.append(changes))

    response = service.handle(build_message(GENERATE_EMAIL))

    assert storage.get("currentEmail") == response["email"]
    assert list(events[0]) == ["currentEmail"]
    assert service.handle(build_message(GET_CURRENT_EMAIL)) == {"email": response["email"]}


def test_get_current_email_when_empty(storage, config):
    service = BackgroundService(storage, config)

    assert service.handle(build_message(GET_CURRENT_EMAIL)) == {"email": None}


def test_unknown_action(storage, config):
    assert BackgroundService(storage, config).handle({"action": "NOPE"}) == {
        "error": "unknown_action"
    }


def test_generation_is_not_visible_when_it_cannot_be_saved(tmp_path, config):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    service = BackgroundService(LocalStorage(blocker / "storage.json"), config)

    with pytest.raises(MessageChannelError):
        dispatch(service.handle, build_message(GENERATE_EMAIL))

    assert dispatch(service.handle, build_message(GET_CURRENT_EMAIL)) == {"email": None}
