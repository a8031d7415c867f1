"""Persisted user preferences: recent URLs, last clipboard text, screenshot folder."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from SimAction.logger import logger

RECENT_URLS_CAPACITY = 10


def _default_screenshot_path() -> str:
    return str(Path.home())


class Preferences(BaseModel):
    recent_urls: list[str] = Field(default_factory=list)  # Most recent first
    last_clipboard_text: str = ""
    screenshot_path: str = Field(default_factory=_default_screenshot_path)


class PreferencesStore:
    """
    Read-at-startup, write-on-change preference storage.

    The JSON file format is private to this class; callers only use the
    accessors below.
    """

    _instance: Optional["PreferencesStore"] = None
    _default_path: Path = Path.home() / ".config" / "simaction" / "preferences.json"

    def __init__(self, path: Path | None = None):
        self._path = path or self._default_path
        self._prefs = Preferences()

    @classmethod
    def get_instance(cls) -> PreferencesStore:
        if cls._instance is None:
            cls._instance = cls()
            cls._instance.load()
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path

    @property
    def recent_urls(self) -> list[str]:
        return list(self._prefs.recent_urls)

    @property
    def last_clipboard_text(self) -> str:
        return self._prefs.last_clipboard_text

    @property
    def screenshot_path(self) -> str:
        return self._prefs.screenshot_path

    def load(self) -> Preferences:
        """Load from disk; a missing or corrupt file yields defaults."""
        if not self._path.exists():
            logger.debug(f"Preferences file not found: {self._path}")
            self._prefs = Preferences()
            return self._prefs

        try:
            self._prefs = Preferences.model_validate_json(self._path.read_bytes())
            logger.debug(f"Preferences loaded from {self._path}")
        except (OSError, PydanticValidationError) as e:
            logger.warning(f"Failed to load preferences, using defaults: {e}")
            self._prefs = Preferences()

        return self._prefs

    def _save(self) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self._prefs.model_dump(), f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
            return True
        except OSError as e:
            logger.error(f"Failed to save preferences: {e}")
            return False

    def add_recent_url(self, url: str) -> list[str]:
        """Move or insert `url` at the front, keeping at most 10 entries."""
        recents = [u for u in self._prefs.recent_urls if u != url]
        recents.insert(0, url)
        self._prefs.recent_urls = recents[:RECENT_URLS_CAPACITY]
        self._save()
        return self.recent_urls

    def set_last_clipboard_text(self, text: str) -> None:
        if text == self._prefs.last_clipboard_text:
            return
        self._prefs.last_clipboard_text = text
        self._save()

    def set_screenshot_path(self, path: str | Path) -> None:
        value = str(path)
        if value == self._prefs.screenshot_path:
            return
        self._prefs.screenshot_path = value
        self._save()

    def to_dict(self) -> dict:
        return self._prefs.model_dump()
