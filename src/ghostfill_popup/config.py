"""Configuration data structures for the GhostFill popup."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


def _default_storage_path() -> str:
    return str(Path.home() / ".ghostfill" / "storage.json")


@dataclass(slots=True)
class AppConfig:
    """Static configuration options used across the popup."""

    app_name: str = "GhostFill"
    app_version: str = "1.0"
    toast_duration_ms: int = 2_500
    min_api_key_length: int = 10
    storage_area: str = "local"
    identity_key: str = "currentEmail"
    settings_key: str = "settings"
    api_key_field: str = "llmApiKey"
    identity_domain: str = "ghost"
    identity_word_count: int = 2
    password_length: int = 16
    options_url: str = ""
    storage_path: str = ""

    def resolved_storage_path(self) -> str:
        """Return the JSON file backing the local storage area."""

        return self.storage_path or _default_storage_path()

    def resolved_options_url(self) -> str:
        """Return the settings resource opened when no in-app surface exists."""

        return self.options_url or Path(self.resolved_storage_path()).as_uri()


@dataclass(slots=True)
class StyleConfig:
    """Simple grouping of UI styling constants."""

    bg_primary: str = "#F8FAFC"
    bg_secondary: str = "#FFFFFF"
    bg_tertiary: str = "#F1F5F9"
    fg_primary: str = "#0F172A"
    fg_secondary: str = "#475569"
    accent_primary: str = "#6366F1"
    accent_secondary: str = "#8B5CF6"
    toast_bg: str = "#1E293B"
    border: str = "#E2E8F0"
    font_family: str = "Segoe UI, sans-serif"
    font_size: int = 13
    font_mono: str = "Courier New, monospace"


__all__ = ["AppConfig", "StyleConfig"]
