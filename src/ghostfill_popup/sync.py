"""Keeps the cached identity in step with the background service."""
from __future__ import annotations

import logging
from typing import Any, Dict

from .messaging import GENERATE_EMAIL, GET_CURRENT_EMAIL, MessageChannel, build_message
from .notifications import ToastScheduler
from .state import IdentityRecord, StateStore
from .storage import StorageChange

logger = logging.getLogger(__name__)

GENERATED_MESSAGE = "New identity generated!"
GENERATION_FAILED_MESSAGE = "Generation failed"


class IdentitySync:
    """Fetch, generate and receive pushed identities.

    Every source (fetch, generate, push) replaces the cached record wholesale
    and whichever arrives last wins; there is no version check between a
    pending response and a push update.
    """

    def __init__(self, store: StateStore, channel: MessageChannel, toasts: ToastScheduler):
        self._store = store
        self._channel = channel
        self._toasts = toasts
        self._in_flight = False
        self._closed = False
        self._session = 0

    @property
    def generating(self) -> bool:
        return self._in_flight

    def fetch_identity(self) -> None:
        session = self._session

        def on_response(response: Dict[str, Any]) -> None:
            if not self._is_current(session):
                logger.debug("ignoring identity fetched after close")
                return
            record = IdentityRecord.from_message(response.get("email"))
            if record is None:
                logger.debug("no stored identity in response")
                return
            self._store.update(identity=record)

        def on_error(exc: Exception) -> None:
            logger.warning("Failed to fetch identity: %s", exc)

        try:
            self._channel.send(build_message(GET_CURRENT_EMAIL), on_response, on_error)
        except Exception as exc:
            on_error(exc)

    def generate_identity(self) -> bool:
        """Request a new identity; return ``False`` if one is already on its way."""

        if self._in_flight:
            logger.debug("generation already in progress, ignoring request")
            return False
        self._in_flight = True
        self._store.update(identity=None, generating=True)
        session = self._session

        def on_response(response: Dict[str, Any]) -> None:
            if not self._finish(session):
                return
            record = IdentityRecord.from_message(response.get("email"))
            if record is None:
                logger.warning("malformed generation response: %r", response)
                self._toasts.show(GENERATION_FAILED_MESSAGE)
                return
            self._store.update(identity=record)
            self._toasts.show(GENERATED_MESSAGE)

        def on_error(exc: Exception) -> None:
            if not self._finish(session):
                return
            logger.warning("Identity generation failed: %s", exc)
            self._toasts.show(GENERATION_FAILED_MESSAGE)

        try:
            self._channel.send(build_message(GENERATE_EMAIL), on_response, on_error)
        except Exception as exc:
            on_error(exc)
        return True

    def on_external_change(self, change: StorageChange) -> None:
        self._store.update(identity=IdentityRecord.from_message(change.new_value))

    def close(self) -> None:
        """Stop applying responses; requests already sent are left to resolve."""

        self._closed = True
        self._session += 1
        self._in_flight = False

    def reopen(self) -> None:
        """Start a new session after :meth:`close`."""

        self._closed = False
        if self._store.state.generating:
            self._store.update(generating=False)

    def _is_current(self, session: int) -> bool:
        return not self._closed and session == self._session

    def _finish(self, session: int) -> bool:
        if not self._is_current(session):
            logger.debug("ignoring generation result after close")
            return False
        self._in_flight = False
        self._store.update(generating=False)
        return True


__all__ = ["GENERATED_MESSAGE", "GENERATION_FAILED_MESSAGE", "IdentitySync"]
