"""GhostFill popup package."""
from __future__ import annotations

from .background import BackgroundService, IdentityGenerator
from .config import AppConfig, StyleConfig
from .controller import PopupController, SettingsLauncher
from .gate import ConfigurationGate, is_api_key_configured
from .messaging import GENERATE_EMAIL, GET_CURRENT_EMAIL, MessageChannelError
from .navigation import ViewStateMachine
from .notifications import ToastScheduler
from .state import IdentityRecord, PopupState, StateStore, View
from .storage import LocalStorage, StorageChange, StorageError
from .sync import IdentitySync

__all__ = [
    "AppConfig",
    "StyleConfig",
    "BackgroundService",
    "IdentityGenerator",
    "PopupController",
    "SettingsLauncher",
    "ConfigurationGate",
    "is_api_key_configured",
    "GENERATE_EMAIL",
    "GET_CURRENT_EMAIL",
    "MessageChannelError",
    "ViewStateMachine",
    "ToastScheduler",
    "IdentityRecord",
    "PopupState",
    "StateStore",
    "View",
    "LocalStorage",
    "StorageChange",
    "StorageError",
    "IdentitySync",
]

__version__ = "1.0"
