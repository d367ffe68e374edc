from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from ghostfill_popup.config import AppConfig
from ghostfill_popup.messaging import MessageChannelError
from ghostfill_popup.state import StateStore
from ghostfill_popup.storage import LocalStorage


class ManualTimer:
    def __init__(self, due: int, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by an explicit clock."""

    def __init__(self) -> None:
        self.now = 0
        self.timers: List[ManualTimer] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay_ms, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, delta_ms: int) -> None:
        self.now += delta_ms
        for timer in sorted(self.timers, key=lambda t: t.due):
            if timer.due <= self.now and not timer.cancelled and not timer.fired:
                timer.fired = True
                timer.callback()


class DeferredChannel:
    """Records messages; the test decides when and how each one resolves."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Dict[str, Any], Callable, Callable]] = []

    def send(self, message, on_response, on_error) -> None:
        self.calls.append((message, on_response, on_error))

    @property
    def actions(self) -> List[str]:
        return [message["action"] for message, _, _ in self.calls]

    def respond(self, response: Dict[str, Any], index: int = -1) -> None:
        _, on_response, _ = self.calls[index]
        on_response(response)

    def fail(self, error: Optional[Exception] = None, index: int = -1) -> None:
        _, _, on_error = self.calls[index]
        on_error(error or MessageChannelError("Extension context invalidated"))


class FakeClipboard:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.text: Optional[str] = None

    def write_text(self, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.text = text


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig()


@pytest.fixture()
def store() -> StateStore:
    return StateStore()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def channel() -> DeferredChannel:
    return DeferredChannel()


@pytest.fixture()
def storage() -> LocalStorage:
    return LocalStorage()


@pytest.fixture()
def clipboard() -> FakeClipboard:
    return FakeClipboard()
