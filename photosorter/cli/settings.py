"""Settings/preferences persistence for the command-line front end."""

import logging
import os
import json
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class Settings:
    """Manages CLI settings persistence.

    Remembers the last opened root and the navigation position per root,
    so ``next``/``prev`` continue where the previous invocation stopped.
    """

    DEFAULT_SETTINGS = {
        "last_root": "",
        "use_exiftool": True,
        "positions": {},
    }

    def __init__(self, config_path: Optional[str] = None):
        """Initialize settings.

        Args:
            config_path: Settings file to use instead of the per-user default.
        """
        self._settings: Dict[str, Any] = json.loads(json.dumps(self.DEFAULT_SETTINGS))
        self._config_path = config_path or self._get_config_path()
        self.load()

    def _get_config_path(self) -> str:
        """Get path to config file."""
        if os.name == "nt":  # Windows
            base = os.environ.get("APPDATA", os.path.expanduser("~"))
        else:  # macOS/Linux
            base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))

        return os.path.join(base, "photo-sorter", "settings.json")

    @property
    def config_path(self) -> str:
        return self._config_path

    def load(self):
        """Load settings from file."""
        try:
            if os.path.exists(self._config_path):
                with open(self._config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                    if isinstance(loaded, dict):
                        self._settings.update(loaded)
        except Exception as e:
            logger.debug(f"Error loading settings from {self._config_path}: {e}")

    def save(self):
        """Save settings to file."""
        try:
            os.makedirs(os.path.dirname(self._config_path), exist_ok=True)
            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, indent=2)
        except Exception as e:
            logger.debug(f"Error saving settings to {self._config_path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value."""
        return self._settings.get(key, default)

    def set(self, key: str, value: Any):
        """Set a setting value."""
        self._settings[key] = value

    def get_position(self, root: str) -> int:
        """Saved navigation index for a root (0 if none)."""
        positions = self._settings.get("positions")
        if not isinstance(positions, dict):
            return 0
        value = positions.get(root, 0)
        return value if isinstance(value, int) else 0

    def set_position(self, root: str, index: int):
        """Remember the navigation index for a root."""
        positions = self._settings.get("positions")
        if not isinstance(positions, dict):
            positions = {}
            self._settings["positions"] = positions
        positions[root] = index

    def forget_root(self, root: str):
        """Drop the saved position for a root (after revert)."""
        positions = self._settings.get("positions")
        if isinstance(positions, dict):
            positions.pop(root, None)
