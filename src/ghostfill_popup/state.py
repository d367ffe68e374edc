"""Runtime state containers shared between the popup components."""
from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


class View(str, Enum):
    """Screens the popup can display."""

    HUB = "hub"
    EMAIL = "email"
    PASSWORD = "password"
    OTP = "otp"


DETAIL_VIEWS = frozenset({View.PASSWORD, View.OTP})

_DETAIL_TITLES = {View.PASSWORD: "Vault Settings", View.OTP: "Passcode Sync"}


def detail_title(view: View) -> str:
    """Return the header shown by the shared detail container."""

    try:
        return _DETAIL_TITLES[view]
    except KeyError as exc:
        raise ValueError(f"{view!r} is not a detail view") from exc


@dataclass(frozen=True, slots=True)
class IdentityRecord:
    """The currently active disposable identity.

    Records are replaced wholesale and never mutated; anything besides the
    address and password is carried through untouched in ``metadata``.
    """

    full_email: str
    password: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_message(cls, value: object) -> Optional["IdentityRecord"]:
        """Build a record from its wire form, or return ``None`` if malformed."""

        if not isinstance(value, Mapping):
            return None
        full_email = value.get("fullEmail")
        if not isinstance(full_email, str) or not full_email:
            return None
        password = value.get("password")
        if not isinstance(password, str):
            password = None
        metadata = {
            key: item for key, item in value.items() if key not in ("fullEmail", "password")
        }
        return cls(full_email, password, MappingProxyType(metadata))

    def to_message(self) -> Dict[str, Any]:
        message: Dict[str, Any] = dict(self.metadata)
        message["fullEmail"] = self.full_email
        if self.password is not None:
            message["password"] = self.password
        return message


@dataclass(frozen=True, slots=True)
class PopupState:
    """Immutable snapshot of everything the popup renders."""

    view: View = View.HUB
    identity: Optional[IdentityRecord] = None
    generating: bool = False
    toast: Optional[str] = None
    show_help: bool = False
    api_key_configured: bool = False

    @property
    def gate_blocking(self) -> bool:
        return not self.api_key_configured

    @property
    def current_password(self) -> str:
        if self.identity is None or self.identity.password is None:
            return ""
        return self.identity.password


Listener = Callable[[PopupState], None]


class StateStore:
    """Holds the current :class:`PopupState` and publishes every change."""

    def __init__(self, initial: Optional[PopupState] = None):
        self._lock = threading.RLock()
        self._state = initial or PopupState()
        self._listeners: Dict[str, Listener] = {}

    @property
    def state(self) -> PopupState:
        return self._state

    def update(self, **changes: Any) -> PopupState:
        """Replace the snapshot with ``changes`` applied and notify listeners."""

        with self._lock:
            previous = self._state
            current = dataclasses.replace(previous, **changes)
            if current == previous:
                return previous
            self._state = current
            listeners = list(self._listeners.values())

        for listener in listeners:
            try:
                listener(current)
            except Exception as exc:
                logger.error("state listener failed: %s", exc)
        return current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        sub_id = str(uuid.uuid4())
        with self._lock:
            self._listeners[sub_id] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(sub_id, None)

        return unsubscribe

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()


__all__ = [
    "DETAIL_VIEWS",
    "IdentityRecord",
    "PopupState",
    "StateStore",
    "View",
    "detail_title",
]
