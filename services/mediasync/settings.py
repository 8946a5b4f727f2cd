"""
Atomic JSON settings storage.

Each connector keeps a small object of its own under its id:

    {"mpc": {"Endpoint": "127.0.0.1:13579"},
     "vlc": {"Endpoint": "127.0.0.1:8080", "Password": "gAAAAAB..."}}

Writes are atomic (temp file + rename) so a crash mid-write never corrupts.

Storage locations (first writable wins):
  1. /etc/mediasync/settings.json
  2. <package_dir>/settings.json   (dev fallback)
"""

import json
import logging
import os
import tempfile

logger = logging.getLogger(__name__)

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))

STORE_PATHS = [
    "/etc/mediasync/settings.json",
    os.path.join(PACKAGE_DIR, "settings.json"),
]


def _find_store_path():
    """Find the best settings path (first existing, or first writable)."""
    for path in STORE_PATHS:
        if os.path.exists(path):
            return path
    for path in STORE_PATHS:
        d = os.path.dirname(path)
        if os.path.isdir(d) and os.access(d, os.W_OK):
            return path
    return STORE_PATHS[-1]


class SettingsStore:
    """Load/save the whole settings document; hand out per-connector sections."""

    def __init__(self, path: str | None = None):
        self.path = path or _find_store_path()
        self._data: dict = {}

    def load(self) -> dict:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            data = {}
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s, starting with empty settings: %s", self.path, e)
            data = {}
        self._data = data if isinstance(data, dict) else {}
        return self._data

    def section(self, name: str) -> dict:
        """Mutable settings object for *name*, created on first use."""
        section = self._data.get(name)
        if not isinstance(section, dict):
            section = {}
            self._data[name] = section
        return section

    def save(self) -> str:
        """Atomically write the settings to disk."""
        d = os.path.dirname(self.path) or "."
        os.makedirs(d, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=d, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._data, f, indent=2)
                f.write("\n")
            os.replace(tmp, self.path)
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
        logger.info("Settings saved to %s", self.path)
        return self.path
