"""PyQt5 user interface for the GhostFill popup."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

from PyQt5.QtCore import QFileSystemWatcher, QObject, QThread, QTimer, Qt, pyqtSignal, pyqtSlot
from PyQt5.QtGui import QFont
from PyQt5.QtWidgets import (
    QApplication,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from .background import BackgroundService
from .config import AppConfig, StyleConfig
from .controller import PopupController, SettingsLauncher
from .icon import create_icon
from .messaging import Handler, MessageChannelError, dispatch
from .notifications import TimerHandle
from .state import PopupState, StateStore, View, detail_title
from .storage import ChangeListener, LocalStorage, StorageChange, StorageError

logger = logging.getLogger(__name__)


class QtTimerHandle:  # pragma: no cover - requires Qt event loop
    def __init__(self, timer: QTimer):
        self._timer = timer

    def cancel(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None


class QtScheduler:  # pragma: no cover - requires Qt event loop
    """Single-shot ``QTimer`` callbacks on the UI thread."""

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        handle = QtTimerHandle(timer)

        def fire() -> None:
            handle.cancel()
            callback()

        timer.timeout.connect(fire)
        timer.start(delay_ms)
        return handle


class RequestWorker(QObject):  # pragma: no cover - requires Qt event loop
    finished = pyqtSignal(object)
    error = pyqtSignal(object)

    def __init__(self, handler: Optional[Handler], message: Dict[str, Any]):
        super().__init__()
        self._handler = handler
        self._message = dict(message)

    def run(self) -> None:
        try:
            response = dispatch(self._handler, self._message)
        except MessageChannelError as exc:
            self.error.emit(exc)
        else:
            self.finished.emit(response)


class PendingRequest(QObject):  # pragma: no cover - requires Qt event loop
    """Lives on the UI thread so worker results are delivered there."""

    done = pyqtSignal(object)

    def __init__(self, on_response, on_error):
        super().__init__()
        self._on_response = on_response
        self._on_error = on_error

    @pyqtSlot(object)
    def resolve(self, response: object) -> None:
        try:
            self._on_response(response)
        finally:
            self.done.emit(self)

    @pyqtSlot(object)
    def reject(self, exc: object) -> None:
        try:
            self._on_error(exc)
        finally:
            self.done.emit(self)


class QtMessageChannel(QObject):  # pragma: no cover - requires Qt event loop
    """Runs each background request on its own ``QThread``."""

    def __init__(self, handler: Optional[Handler]):
        super().__init__()
        self._handler = handler
        self._active: Set[tuple] = set()

    def send(self, message, on_response, on_error) -> None:
        pending = PendingRequest(on_response, on_error)
        worker = RequestWorker(self._handler, message)
        thread = QThread()
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.finished.connect(pending.resolve)
        worker.error.connect(pending.reject)
        worker.finished.connect(thread.quit)
        worker.error.connect(thread.quit)
        thread.finished.connect(thread.deleteLater)

        entry = (thread, worker, pending)
        pending.done.connect(lambda _p: self._active.discard(entry))
        self._active.add(entry)
        thread.start()

    def stop(self) -> None:
        for thread, _worker, _pending in list(self._active):
            try:
                if thread.isRunning():
                    thread.quit()
                    thread.wait(2000)
            except RuntimeError:
                pass
        self._active.clear()


class StorageBridge(QObject):  # pragma: no cover - requires Qt event loop
    """Re-delivers storage changes on the UI thread and watches the file."""

    changed = pyqtSignal(object, str)

    def __init__(self, storage: LocalStorage, path: Optional[str] = None):
        super().__init__()
        self._storage = storage
        self._listeners: Dict[str, ChangeListener] = {}
        self._upstream_id = storage.add_listener(self._forward)
        self.changed.connect(self._deliver)

        self._watcher: Optional[QFileSystemWatcher] = None
        if path:
            self._path = Path(path)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._watcher = QFileSystemWatcher(self)
            self._watcher.addPath(str(self._path.parent))
            self._watch_file()
            self._watcher.fileChanged.connect(self._on_file_changed)
            self._watcher.directoryChanged.connect(self._on_file_changed)

    def get(self, key: str, default: Any = None) -> Any:
        return self._storage.get(key, default)

    def add_listener(self, listener: ChangeListener) -> str:
        listener_id = str(uuid.uuid4())
        self._listeners[listener_id] = listener
        return listener_id

    def remove_listener(self, listener_id: str) -> None:
        self._listeners.pop(listener_id, None)

    def close(self) -> None:
        self._storage.remove_listener(self._upstream_id)
        self._listeners.clear()

    def _forward(self, changes: Dict[str, StorageChange], area_name: str) -> None:
        self.changed.emit(changes, area_name)

    @pyqtSlot(object, str)
    def _deliver(self, changes: Dict[str, StorageChange], area_name: str) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(changes, area_name)
            except Exception as exc:
                logger.error("storage listener error on %s: %s", sorted(changes), exc)

    def _watch_file(self) -> None:
        if self._watcher is None or not self._path.exists():
            return
        if str(self._path) not in self._watcher.files():
            self._watcher.addPath(str(self._path))

    def _on_file_changed(self, _path: str) -> None:
        self._watch_file()
        try:
            self._storage.reload()
        except StorageError as exc:
            logger.warning("ignoring unreadable storage file: %s", exc)


class QtClipboard:  # pragma: no cover - requires Qt event loop
    def write_text(self, text: str) -> None:
        clipboard = QApplication.clipboard()
        if clipboard is None:
            raise RuntimeError("Clipboard is not available")
        clipboard.setText(text)


class SetupScreen(QWidget):  # pragma: no cover - requires Qt event loop
    """Shown instead of every page until an API key is configured."""

    open_settings = pyqtSignal()

    def __init__(self, config: AppConfig):
        super().__init__()
        self._config = config
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setAlignment(Qt.AlignCenter)

        panel = QWidget()
        panel.setMaximumWidth(300)
        panel.setObjectName("CentralPanel")
        panel_layout = QVBoxLayout(panel)
        panel_layout.setSpacing(10)

        title = QLabel(f"Welcome to {self._config.app_name}")
        title.setObjectName("HeaderLabel")
        title.setAlignment(Qt.AlignCenter)

        info = QLabel("Quick setup to unlock AI-powered autofill")
        info.setAlignment(Qt.AlignCenter)
        info.setObjectName("SubtleLabel")

        steps = QLabel(
            "1. Get an API key from console.groq.com\n"
            "2. Create an account and copy the key (free)\n"
            f"3. Paste it as '{self._config.api_key_field}' in Settings"
        )
        steps.setWordWrap(True)

        settings_btn = QPushButton("Open Settings")
        settings_btn.setObjectName("AccentButton")
        settings_btn.setMinimumHeight(40)
        settings_btn.clicked.connect(self.open_settings.emit)

        panel_layout.addWidget(title)
        panel_layout.addWidget(info)
        panel_layout.addWidget(steps)
        panel_layout.addWidget(settings_btn)
        layout.addWidget(panel)


class PopupWindow(QWidget):  # pragma: no cover - requires Qt event loop
    """Renders :class:`PopupState` and forwards clicks to the controller."""

    def __init__(self, controller: PopupController, config: AppConfig, style: StyleConfig):
        super().__init__()
        self._controller = controller
        self._config = config
        self._style = style
        self._setup_ui()
        self._unsubscribe = controller.subscribe(self.render)
        self.render(controller.state)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        self._root = QStackedWidget()
        self._content = QWidget()
        content_layout = QVBoxLayout(self._content)

        self._pages = QStackedWidget()
        self._hub_page = self._create_hub_page()
        self._email_page = self._create_email_page()
        self._detail_page = self._create_detail_page()
        self._pages.addWidget(self._hub_page)
        self._pages.addWidget(self._email_page)
        self._pages.addWidget(self._detail_page)

        self._help_panel = self._create_help_panel()

        content_layout.addWidget(self._create_header())
        content_layout.addWidget(self._help_panel)
        content_layout.addWidget(self._pages)

        self._setup_screen = SetupScreen(self._config)
        self._setup_screen.open_settings.connect(self._controller.open_settings)

        self._root.addWidget(self._content)
        self._root.addWidget(self._setup_screen)

        self._toast = QLabel()
        self._toast.setObjectName("ToastLabel")
        self._toast.setAlignment(Qt.AlignCenter)
        self._toast.hide()

        layout.addWidget(self._root)
        layout.addWidget(self._toast)

    def _create_header(self) -> QWidget:
        header = QWidget()
        row = QHBoxLayout(header)
        title = QLabel(self._config.app_name)
        title.setObjectName("HeaderLabel")
        help_btn = QPushButton("?")
        help_btn.clicked.connect(self._controller.toggle_help)
        settings_btn = QPushButton("Settings")
        settings_btn.clicked.connect(self._controller.open_settings)
        row.addWidget(title)
        row.addStretch()
        row.addWidget(help_btn)
        row.addWidget(settings_btn)
        return header

    def _create_help_panel(self) -> QWidget:
        panel = QFrame()
        panel.setObjectName("CentralPanel")
        panel_layout = QVBoxLayout(panel)
        heading = QLabel(f"{self._config.app_name} Help Center")
        heading.setObjectName("HeaderLabel")
        body = QLabel(
            "Generate identities, secure passwords, and track OTPs in real-time."
        )
        body.setWordWrap(True)
        dismiss = QPushButton("Dismiss")
        dismiss.clicked.connect(self._controller.close_help)
        panel_layout.addWidget(heading)
        panel_layout.addWidget(body)
        panel_layout.addWidget(dismiss)
        panel.hide()
        return panel

    def _identity_label(self) -> QLabel:
        label = QLabel()
        label.setFont(QFont(self._style.font_mono, 11))
        label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        label.setAlignment(Qt.AlignCenter)
        return label

    def _create_hub_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self._hub_identity = self._identity_label()
        copy_btn = QPushButton("Copy Email")
        copy_btn.clicked.connect(self._controller.copy_email)
        self._hub_generate_btn = QPushButton("New Identity")
        self._hub_generate_btn.setObjectName("AccentButton")
        self._hub_generate_btn.clicked.connect(self._controller.generate_identity)

        actions = QHBoxLayout()
        actions.addWidget(copy_btn)
        actions.addWidget(self._hub_generate_btn)

        layout.addWidget(self._hub_identity)
        layout.addLayout(actions)
        for view, text in ((View.EMAIL, "Inbox"), (View.PASSWORD, "Passwords"), (View.OTP, "Passcodes")):
            button = QPushButton(text)
            button.clicked.connect(lambda _checked=False, v=view: self._controller.navigate(v))
            layout.addWidget(button)
        layout.addStretch()
        return page

    def _create_email_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        back_btn = QPushButton("‹ Back")
        back_btn.clicked.connect(self._controller.back)
        self._email_identity = self._identity_label()
        copy_btn = QPushButton("Copy Email")
        copy_btn.clicked.connect(self._controller.copy_email)
        self._email_generate_btn = QPushButton("Generate New Identity")
        self._email_generate_btn.setObjectName("AccentButton")
        self._email_generate_btn.clicked.connect(self._controller.generate_identity)

        layout.addWidget(back_btn)
        layout.addWidget(self._email_identity)
        layout.addWidget(copy_btn)
        layout.addWidget(self._email_generate_btn)
        layout.addStretch()
        return page

    def _create_detail_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        header = QHBoxLayout()
        back_btn = QPushButton("‹")
        back_btn.setToolTip("Go back to hub")
        back_btn.clicked.connect(self._controller.back)
        self._detail_title = QLabel()
        self._detail_title.setObjectName("HeaderLabel")
        header.addWidget(back_btn)
        header.addWidget(self._detail_title)
        header.addStretch()

        self._detail_stack = QStackedWidget()

        password_page = QWidget()
        password_layout = QVBoxLayout(password_page)
        self._password_field = QLineEdit()
        self._password_field.setReadOnly(True)
        self._password_field.setFont(QFont(self._style.font_mono, 11))
        self._password_field.setPlaceholderText("No password for the current identity")
        password_layout.addWidget(QLabel("Current password:"))
        password_layout.addWidget(self._password_field)
        password_layout.addStretch()

        otp_page = QWidget()
        otp_layout = QVBoxLayout(otp_page)
        otp_info = QLabel("Waiting for passcodes sent to your identity…")
        otp_info.setObjectName("SubtleLabel")
        otp_info.setWordWrap(True)
        otp_layout.addWidget(otp_info)
        otp_layout.addStretch()

        self._detail_stack.addWidget(password_page)
        self._detail_stack.addWidget(otp_page)

        layout.addLayout(header)
        layout.addWidget(self._detail_stack)
        return page

    def render(self, state: PopupState) -> None:
        self._root.setCurrentWidget(self._setup_screen if state.gate_blocking else self._content)

        if state.view is View.HUB:
            self._pages.setCurrentWidget(self._hub_page)
        elif state.view is View.EMAIL:
            self._pages.setCurrentWidget(self._email_page)
        else:
            self._pages.setCurrentWidget(self._detail_page)
            self._detail_title.setText(detail_title(state.view))
            self._detail_stack.setCurrentIndex(0 if state.view is View.PASSWORD else 1)

        if state.identity is not None:
            identity_text = state.identity.full_email
        elif state.generating:
            identity_text = "Generating…"
        else:
            identity_text = "No identity yet"
        self._hub_identity.setText(identity_text)
        self._email_identity.setText(identity_text)
        self._password_field.setText(state.current_password)

        for button in (self._hub_generate_btn, self._email_generate_btn):
            button.setEnabled(not state.generating)

        self._help_panel.setVisible(state.show_help)

        if state.toast:
            self._toast.setText(state.toast)
            self._toast.show()
        else:
            self._toast.hide()

    def release(self) -> None:
        self._unsubscribe()


class GhostFillApp(QMainWindow):  # pragma: no cover - requires Qt event loop
    def __init__(self, config: Optional[AppConfig] = None) -> None:
        super().__init__()

        self._config = config or AppConfig()
        self._style = StyleConfig()
        self._store = StateStore()

        storage_path = self._config.resolved_storage_path()
        self._storage = LocalStorage(storage_path, area_name=self._config.storage_area)
        self._background = BackgroundService(self._storage, self._config)
        self._channel = QtMessageChannel(self._background.handle)
        self._bridge = StorageBridge(self._storage, storage_path)

        self._controller = PopupController(
            self._config,
            self._store,
            self._channel,
            self._bridge,
            QtScheduler(self),
            QtClipboard(),
            SettingsLauncher(self._config.resolved_options_url()),
        )

        self._setup_ui()
        self._controller.mount()

    def _setup_ui(self) -> None:
        self.setWindowTitle(f"{self._config.app_name} v{self._config.app_version}")
        self.setGeometry(100, 100, 380, 600)
        self.setMinimumSize(340, 520)

        try:
            self.setWindowIcon(create_icon(style=self._style))
        except RuntimeError:
            pass

        self._apply_stylesheet()

        self._window = PopupWindow(self._controller, self._config, self._style)
        self.setCentralWidget(self._window)

        self.show()

    def _apply_stylesheet(self) -> None:
        style = self._style
        self.setStyleSheet(
            f"""
            QMainWindow {{ background: {style.bg_primary}; }}
            QWidget {{ color: {style.fg_primary}; font-family: {style.font_family}; font-size: {style.font_size}px; }}
            QLineEdit {{ background: {style.bg_secondary}; border: 1px solid {style.border}; border-radius: 4px; padding: 8px; }}
            QPushButton {{ background: {style.bg_secondary}; border: 1px solid {style.border}; padding: 10px 14px; border-radius: 8px; font-weight: bold; }}
            QPushButton#AccentButton {{ background: {style.accent_primary}; color: white; border: none; }}
            QPushButton:disabled {{ color: {style.fg_secondary}; }}
            #HeaderLabel {{ font-size: 18px; font-weight: bold; }}
            #SubtleLabel {{ color: {style.fg_secondary}; }}
            #CentralPanel {{ background: {style.bg_tertiary}; border-radius: 12px; padding: 14px; }}
            #ToastLabel {{ background: {style.toast_bg}; color: white; padding: 8px; border-radius: 10px; }}
            """
        )

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._window.release()
        self._controller.unmount()
        self._bridge.close()
        self._channel.stop()
        self._store.close()
        event.accept()


def run() -> int:  # pragma: no cover - requires Qt event loop
    logging.basicConfig(level=logging.INFO)
    app = QApplication.instance() or QApplication([])
    app.setApplicationName("GhostFill")
    window = GhostFillApp()
    return app.exec_()


__all__ = ["GhostFillApp", "run"]
