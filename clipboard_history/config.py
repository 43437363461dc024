from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from platformdirs import user_config_dir, user_data_dir

from .errors import ConfigParseError, HotkeyParseError
from .hotkeys import parse_hotkey


APP_DIR_NAME = "clipboard-history"
HISTORY_FILE_NAME = "history.json"
CONFIG_FILE_NAME = "config.json"

DEFAULT_MAX_ENTRIES = 100
DEFAULT_POPUP_HOTKEY = "Ctrl+Shift+V"
DEFAULT_POLL_INTERVAL_MS = 300
DEFAULT_READ_TIMEOUT_MS = 100


def data_dir() -> str:
    return user_data_dir(APP_DIR_NAME, appauthor=False)


def default_storage_path() -> str:
    return os.path.join(data_dir(), HISTORY_FILE_NAME)


def default_config_path() -> str:
    return os.path.join(user_config_dir(APP_DIR_NAME, appauthor=False), CONFIG_FILE_NAME)


@dataclass
class Config:
    max_entries: int = DEFAULT_MAX_ENTRIES
    popup_hotkey: str = DEFAULT_POPUP_HOTKEY
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    storage_path: Optional[str] = None

    def resolved_storage_path(self) -> str:
        return self.storage_path or default_storage_path()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "max_entries": self.max_entries,
            "hotkey": {"popup": self.popup_hotkey},
            "poll_interval_ms": self.poll_interval_ms,
            "read_timeout_ms": self.read_timeout_ms,
        }
        if self.storage_path:
            data["storage_path"] = self.storage_path
        return data


def _positive_int(data: Dict[str, Any], key: str, default: int) -> int:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        logging.warning("config %s invalid (%r), using default %s", key, value, default)
        return default
    return value


def resolve(contents: Optional[bytes]) -> Config:
    """Build a Config from raw file contents, defaulting field by field."""
    config = Config()
    if contents is None:
        return config
    try:
        data = json.loads(contents.decode("utf-8"))
        if not isinstance(data, dict):
            raise ConfigParseError("config top level must be an object")
    except (UnicodeDecodeError, json.JSONDecodeError, ConfigParseError) as exc:
        logging.warning("config parse failed, using defaults: %s", exc)
        return config

    config.max_entries = _positive_int(data, "max_entries", DEFAULT_MAX_ENTRIES)

    poll_ms = _positive_int(data, "poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)
    timeout_ms = _positive_int(data, "read_timeout_ms", DEFAULT_READ_TIMEOUT_MS)
    if timeout_ms >= poll_ms:
        logging.warning(
            "config read_timeout_ms (%s) must be below poll_interval_ms (%s), using defaults",
            timeout_ms,
            poll_ms,
        )
        poll_ms, timeout_ms = DEFAULT_POLL_INTERVAL_MS, DEFAULT_READ_TIMEOUT_MS
    config.poll_interval_ms = poll_ms
    config.read_timeout_ms = timeout_ms

    hotkey = data.get("hotkey", {})
    if isinstance(hotkey, dict) and "popup" in hotkey:
        popup = hotkey["popup"]
        try:
            if not isinstance(popup, str):
                raise HotkeyParseError(f"hotkey must be a string, got {popup!r}")
            # An explicitly empty hotkey has no sensible default; startup rejects it.
            if popup.strip():
                parse_hotkey(popup)
            config.popup_hotkey = popup
        except HotkeyParseError as exc:
            logging.warning("config hotkey.popup invalid, using default %s: %s", DEFAULT_POPUP_HOTKEY, exc)
    elif not isinstance(hotkey, dict):
        logging.warning("config hotkey must be an object, using default %s", DEFAULT_POPUP_HOTKEY)

    storage_path = data.get("storage_path")
    if isinstance(storage_path, str) and storage_path.strip():
        config.storage_path = os.path.expanduser(storage_path.strip())
    elif storage_path is not None:
        logging.warning("config storage_path invalid (%r), using default", storage_path)
    return config


def load_config(path: Optional[str] = None) -> Config:
    path = path or default_config_path()
    try:
        with open(path, "rb") as f:
            contents: Optional[bytes] = f.read()
    except FileNotFoundError:
        contents = None
    except OSError as exc:
        logging.warning("config read failed, using defaults: %s", exc)
        contents = None
    config = resolve(contents)
    logging.info("config loaded: %s", path)
    return config


def ensure_default_config(path: Optional[str] = None) -> bool:
    """Write a default config file when none exists. Returns True if one was written."""
    path = path or default_config_path()
    if os.path.exists(path):
        return False
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(Config().to_dict(), f, ensure_ascii=False, indent=2)
    except OSError as exc:
        logging.exception("default config write failed: %s", exc)
        return False
    logging.info("default config written: %s", path)
    return True
