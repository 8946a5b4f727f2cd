"""
Shared configuration loader for mediasync services.

Loads a single JSON config file per machine.  Search order:
  1. /etc/mediasync/config.json   (system-wide install)
  2. config.json                   (CWD, handy for local dev)
  3. ../config/default.json        (repo fallback)

Player passwords given here are used as-is; the settings file written by the
service keeps its own encrypted copy (see credentials.py).

Usage:
    from mediasync.config import cfg

    player_type  = cfg("player", "type", default="mpc")
    endpoint     = cfg("player", "endpoint", default="127.0.0.1:13579")
    port         = cfg("service", "port", default=8766)
"""

import json
import logging
import os

from .endpoint import try_parse_endpoint

logger = logging.getLogger(__name__)

_config: dict | None = None

_SEARCH_PATHS = [
    "/etc/mediasync/config.json",
    "config.json",
    os.path.join(os.path.dirname(__file__), "..", "..", "config", "default.json"),
]

PLAYER_TYPES = ("mpc", "vlc")


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    player = config.get("player") or {}
    if not isinstance(player, dict):
        logger.warning("Config %s: 'player' must be an object", path)
        return
    player_type = str(player.get("type", "mpc")).lower()
    if player_type not in PLAYER_TYPES:
        logger.warning("Config %s: unknown player.type '%s'", path, player_type)
    endpoint = player.get("endpoint")
    if endpoint and try_parse_endpoint(endpoint) is None:
        logger.warning("Config %s: player.endpoint '%s' is not host:port", path, endpoint)
    if player_type == "vlc" and not player.get("password"):
        logger.warning("Config %s: VLC player without player.password; "
                       "set it here or through the settings file", path)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _SEARCH_PATHS:
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.warning("No config.json found, using empty config")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("player")                → config["player"]
    cfg("player", "type")        → config["player"]["type"]
    cfg("service", "port", default=8766)  → config["service"]["port"] or 8766
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
