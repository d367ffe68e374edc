"""Screen navigation for the popup."""
from __future__ import annotations

from .state import DETAIL_VIEWS, StateStore, View


class ViewStateMachine:
    """Unconditional transitions between the hub and its screens."""

    def __init__(self, store: StateStore):
        self._store = store

    @property
    def current(self) -> View:
        return self._store.state.view

    @property
    def is_detail(self) -> bool:
        return self.current in DETAIL_VIEWS

    def navigate(self, view: View | str) -> View:
        try:
            target = View(view)
        except ValueError as exc:
            raise ValueError(f"Unknown view: {view!r}") from exc
        self._store.update(view=target)
        return target

    def back(self) -> View:
        return self.navigate(View.HUB)


__all__ = ["ViewStateMachine"]
