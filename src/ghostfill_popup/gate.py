"""Blocks the popup until an API key has been configured."""
from __future__ import annotations

import logging
from typing import Any, Optional

from .config import AppConfig
from .state import StateStore
from .storage import StorageArea, StorageChange, StorageError

logger = logging.getLogger(__name__)


def is_api_key_configured(
    settings: Any, min_length: int = 10, field_name: str = "llmApiKey"
) -> bool:
    """Return ``True`` when ``settings`` holds an API key longer than ``min_length``."""

    if not isinstance(settings, dict):
        return False
    api_key = settings.get(field_name)
    return isinstance(api_key, str) and len(api_key) > min_length


class ConfigurationGate:
    """Keeps ``api_key_configured`` in sync with the persisted settings blob.

    The gate reads the settings once on :meth:`load` and afterwards relies on
    change events only; a failed read leaves the popup blocked.
    """

    def __init__(self, store: StateStore, storage: StorageArea, config: AppConfig):
        self._store = store
        self._storage = storage
        self._config = config

    @property
    def satisfied(self) -> bool:
        return self._store.state.api_key_configured

    def load(self) -> bool:
        try:
            settings = self._storage.get(self._config.settings_key)
        except (StorageError, OSError) as exc:
            logger.warning("settings could not be read, keeping popup locked: %s", exc)
            settings = None
        return self._apply(settings)

    def on_settings_changed(self, change: StorageChange) -> bool:
        return self._apply(change.new_value)

    def _apply(self, settings: Optional[Any]) -> bool:
        satisfied = is_api_key_configured(
            settings, self._config.min_api_key_length, self._config.api_key_field
        )
        self._store.update(api_key_configured=satisfied)
        return satisfied


__all__ = ["ConfigurationGate", "is_api_key_configured"]
