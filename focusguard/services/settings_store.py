"""
Settings Store

Durable key/value store for user settings that outlive a session (the
recorded custom reminder clip). Backed by a single YAML file.
"""
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from focusguard.services.logger_service import get_logger

CUSTOM_AUDIO_KEY = "custom_audio_clip"


class SettingsStore:
    """
    YAML-backed key/value store.

    The file is read on `load()` and rewritten on every `set` / `delete`.
    Writes go through a temporary file and an atomic rename.
    """

    def __init__(self, path: str):
        self._path = Path(path)
        self._data: Dict[str, Any] = {}
        self._loaded = False
        self._logger = get_logger()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Any]:
        """
        Read the store from disk. A missing file is an empty store.

        Raises:
            ValueError: If the file does not hold a mapping.
        """
        if self._path.exists():
            with open(self._path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Settings file {self._path} must hold a mapping")
            self._data = data
        else:
            self._data = {}

        self._loaded = True
        self._logger.system(
            "settings_loaded",
            {"path": self._path, "keys": sorted(self._data)},
            level="DEBUG",
        )
        return dict(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        self._ensure_loaded()
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._ensure_loaded()
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed.
        """
        self._ensure_loaded()
        if key not in self._data:
            return False
        del self._data[key]
        self._save()
        return True

    # --- Custom reminder clip ---

    def get_custom_audio(self) -> Optional[str]:
        clip = self.get(CUSTOM_AUDIO_KEY)
        return clip if isinstance(clip, str) and clip else None

    def save_custom_audio(self, clip: Optional[str]) -> None:
        """Store a clip, or remove the stored one when clip is empty."""
        if clip:
            self.set(CUSTOM_AUDIO_KEY, clip)
        else:
            self.delete(CUSTOM_AUDIO_KEY)

    # --- Internal Methods ---

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self._data,
                f,
                sort_keys=True,
                default_flow_style=False,
                allow_unicode=True,
            )
        os.replace(tmp_path, self._path)
        self._logger.system(
            "settings_saved",
            {"path": self._path, "keys": sorted(self._data)},
            level="DEBUG",
        )
