"""Top-level popup controller wiring user intents to the components."""
from __future__ import annotations

import logging
import webbrowser
from typing import Callable, Dict, Optional, Protocol

from .config import AppConfig
from .gate import ConfigurationGate
from .messaging import MessageChannel
from .navigation import ViewStateMachine
from .notifications import Scheduler, ToastScheduler
from .state import PopupState, StateStore, View
from .storage import StorageArea, StorageChange
from .sync import IdentitySync

logger = logging.getLogger(__name__)

COPIED_MESSAGE = "Email copied!"
COPY_FAILED_MESSAGE = "Copy failed"


class Clipboard(Protocol):
    def write_text(self, text: str) -> None:
        ...


class SettingsLauncher:
    """Open the settings surface, preferring an in-app page when available."""

    IN_APP = "in_app"
    NEW_CONTEXT = "new_context"

    def __init__(
        self,
        options_url: str,
        open_options_page: Optional[Callable[[], None]] = None,
        open_url: Callable[..., bool] = webbrowser.open,
    ):
        self._options_url = options_url
        self._open_options_page = open_options_page
        self._open_url = open_url

    def open(self) -> str:
        if self._open_options_page is not None:
            self._open_options_page()
            return self.IN_APP
        self._open_url(self._options_url, new=2)
        return self.NEW_CONTEXT


class PopupController:
    """Composes notifications, gate, identity sync and navigation.

    ``mount`` subscribes to storage changes, loads the gate and fetches the
    current identity; ``unmount`` releases the subscription and any pending
    notification timer. The controller can be used as a context manager.
    """

    def __init__(
        self,
        config: AppConfig,
        store: StateStore,
        channel: MessageChannel,
        storage: StorageArea,
        scheduler: Scheduler,
        clipboard: Clipboard,
        settings: SettingsLauncher,
    ):
        self._config = config
        self._store = store
        self._storage = storage
        self._clipboard = clipboard
        self._settings = settings

        self.toasts = ToastScheduler(store, scheduler, config.toast_duration_ms)
        self.gate = ConfigurationGate(store, storage, config)
        self.sync = IdentitySync(store, channel, self.toasts)
        self.navigation = ViewStateMachine(store)

        self._listener_id: Optional[str] = None

    @property
    def state(self) -> PopupState:
        return self._store.state

    @property
    def mounted(self) -> bool:
        return self._listener_id is not None

    def subscribe(self, listener: Callable[[PopupState], None]) -> Callable[[], None]:
        return self._store.subscribe(listener)

    def mount(self) -> None:
        if self.mounted:
            return
        self.sync.reopen()
        self._listener_id = self._storage.add_listener(self._on_storage_changed)
        self.gate.load()
        self.sync.fetch_identity()

    def unmount(self) -> None:
        if self._listener_id is not None:
            self._storage.remove_listener(self._listener_id)
            self._listener_id = None
        self.toasts.dispose()
        self.sync.close()

    def __enter__(self) -> "PopupController":
        self.mount()
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.unmount()

    def navigate(self, view: View | str) -> View:
        return self.navigation.navigate(view)

    def back(self) -> View:
        return self.navigation.back()

    def generate_identity(self) -> bool:
        return self.sync.generate_identity()

    def copy_email(self) -> bool:
        identity = self._store.state.identity
        if identity is None:
            return False
        try:
            self._clipboard.write_text(identity.full_email)
        except Exception as exc:
            logger.warning("clipboard write failed: %s", exc)
            self.toasts.show(COPY_FAILED_MESSAGE)
            return False
        self.toasts.show(COPIED_MESSAGE)
        return True

    def open_settings(self) -> str:
        return self._settings.open()

    def open_help(self) -> None:
        self._store.update(show_help=True)

    def close_help(self) -> None:
        self._store.update(show_help=False)

    def toggle_help(self) -> None:
        self._store.update(show_help=not self._store.state.show_help)

    def show_toast(self, message: str) -> None:
        self.toasts.show(message)

    def dismiss_toast(self) -> None:
        self.toasts.clear()

    def _on_storage_changed(self, changes: Dict[str, StorageChange], area_name: str) -> None:
        if area_name != self._config.storage_area:
            return
        if self._config.identity_key in changes:
            self.sync.on_external_change(changes[self._config.identity_key])
        if self._config.settings_key in changes:
            self.gate.on_settings_changed(changes[self._config.settings_key])


__all__ = [
    "COPIED_MESSAGE",
    "COPY_FAILED_MESSAGE",
    "Clipboard",
    "PopupController",
    "SettingsLauncher",
]
