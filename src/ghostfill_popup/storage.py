"""Persisted key/value storage area with change notifications."""
from __future__ import annotations

import copy
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

_MISSING = object()


class StorageError(RuntimeError):
    """Raised when the backing file cannot be read or written."""


@dataclass(frozen=True, slots=True)
class StorageChange:
    """Old and new value of a single key; ``None`` means absent."""

    old_value: Any = None
    new_value: Any = None


ChangeListener = Callable[[Dict[str, StorageChange], str], None]


class StorageArea(Protocol):
    """Read and subscribe side of a storage area, as seen by the popup."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def add_listener(self, listener: ChangeListener) -> str:
        ...

    def remove_listener(self, listener_id: str) -> None:
        ...


class LocalStorage:
    """Thread-safe storage area, persisted as JSON when ``path`` is given.

    Listeners are invoked synchronously on the writing thread, once per write,
    with only the keys whose value actually changed.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None, area_name: str = "local"):
        self._lock = threading.RLock()
        self._path = Path(path) if path is not None else None
        self._area_name = area_name
        self._data: Optional[Dict[str, Any]] = None if self._path is not None else {}
        self._listeners: Dict[str, ChangeListener] = {}

    @property
    def area_name(self) -> str:
        return self._area_name

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._load().get(key, _MISSING)
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        with self._lock:
            data = self._load()
            return {key: copy.deepcopy(data[key]) for key in keys if key in data}

    def set(self, items: Mapping[str, Any]) -> None:
        with self._lock:
            current = self._load()
            data = dict(current)
            changes: Dict[str, StorageChange] = {}
            for key, value in items.items():
                old = current.get(key)
                if old == value and key in current:
                    continue
                data[key] = copy.deepcopy(value)
                changes[key] = StorageChange(copy.deepcopy(old), copy.deepcopy(value))
            if changes:
                self._commit(data)
            listeners = list(self._listeners.values())
        self._notify(listeners, changes)

    def remove(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = dict(self._load())
            changes = {
                key: StorageChange(data.pop(key), None) for key in list(keys) if key in data
            }
            if changes:
                self._commit(data)
            listeners = list(self._listeners.values())
        self._notify(listeners, changes)

    def reload(self) -> None:
        """Re-read the backing file and report keys edited outside this process."""

        if self._path is None:
            return
        with self._lock:
            previous = self._data or {}
            self._data = None
            try:
                current = self._load()
            except StorageError:
                self._data = previous
                raise
            changes = {
                key: StorageChange(copy.deepcopy(previous.get(key)), copy.deepcopy(current.get(key)))
                for key in set(previous) | set(current)
                if previous.get(key) != current.get(key) or (key in previous) != (key in current)
            }
            listeners = list(self._listeners.values())
        self._notify(listeners, changes)

    def add_listener(self, listener: ChangeListener) -> str:
        listener_id = str(uuid.uuid4())
        with self._lock:
            self._listeners[listener_id] = listener
        return listener_id

    def remove_listener(self, listener_id: str) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _notify(self, listeners: list[ChangeListener], changes: Dict[str, StorageChange]) -> None:
        if not changes:
            return
        for listener in listeners:
            try:
                listener(dict(changes), self._area_name)
            except Exception as exc:
                logger.error("storage listener error on %s: %s", sorted(changes), exc)

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data
        assert self._path is not None
        if not self._path.exists():
            self._data = {}
            return self._data
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Unable to read storage file {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self._path} does not contain an object")
        self._data = data
        return self._data

    def _commit(self, data: Dict[str, Any]) -> None:
        # The cache only moves once the file write has succeeded.
        self._save(data)
        self._data = data

    def _save(self, data: Dict[str, Any]) -> None:
        if self._path is None:
            return
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StorageError(f"Unable to write storage file {self._path}: {exc}") from exc


__all__ = [
    "ChangeListener",
    "LocalStorage",
    "StorageArea",
    "StorageChange",
    "StorageError",
]
