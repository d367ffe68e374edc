"""Single-slot transient notifications ("toasts")."""
from __future__ import annotations

from typing import Callable, Optional, Protocol

from .state import StateStore


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs callbacks on the UI thread after a delay."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        ...


class ToastScheduler:
    """Show one message at a time and clear it after ``duration_ms``.

    Each :meth:`show` cancels the clear timer installed by the previous call,
    so an older message's expiry can never wipe a newer message.
    """

    def __init__(self, store: StateStore, scheduler: Scheduler, duration_ms: int = 2_500):
        self._store = store
        self._scheduler = scheduler
        self._duration_ms = duration_ms
        self._pending: Optional[TimerHandle] = None

    @property
    def has_pending_timer(self) -> bool:
        return self._pending is not None

    def show(self, message: str) -> None:
        self._cancel_pending()
        self._store.update(toast=message)

        handle: Optional[TimerHandle] = None

        def expire() -> None:
            # A superseded timer that still fires must not touch the slot.
            if self._pending is not handle:
                return
            self._pending = None
            self._store.update(toast=None)

        handle = self._scheduler.call_later(self._duration_ms, expire)
        self._pending = handle

    def clear(self) -> None:
        self._cancel_pending()
        self._store.update(toast=None)

    def dispose(self) -> None:
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            pending, self._pending = self._pending, None
            pending.cancel()


__all__ = ["Scheduler", "TimerHandle", "ToastScheduler"]
