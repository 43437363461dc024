from __future__ import annotations

import logging
import os
import signal
import sys
from typing import Optional

from PySide6.QtCore import QCoreApplication, QTimer

from .bridge import HistoryBridge, register_dbus
from .config import Config, data_dir, default_config_path, ensure_default_config, load_config
from .engine import ClipboardEngine
from .errors import HotkeyParseError, ListenerInitError
from .hotkeys import parse_hotkey
from .listener import ClipboardReader


def setup_logging() -> None:
    log_dir = data_dir()
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "app.log"), encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def prepare_engine(config: Config, reader: Optional[ClipboardReader] = None) -> ClipboardEngine:
    """Validate startup requirements and return a hydrated, not yet started engine.

    Raises HotkeyParseError or ListenerInitError; nothing else here is fatal.
    """
    hotkey = parse_hotkey(config.popup_hotkey)
    logging.info("popup hotkey: %s", hotkey)
    engine = ClipboardEngine.from_config(config, reader=reader)
    engine.hydrate()
    return engine


def main() -> None:
    setup_logging()
    logging.info("app start")

    config_path = default_config_path()
    ensure_default_config(config_path)
    config = load_config(config_path)
    logging.info(
        "configuration: max_entries=%s hotkey=%s storage=%s",
        config.max_entries,
        config.popup_hotkey,
        config.resolved_storage_path(),
    )

    try:
        engine = prepare_engine(config)
    except HotkeyParseError as exc:
        logging.error("popup hotkey unusable: %s", exc)
        sys.exit(f"clipboard-history: invalid popup hotkey {config.popup_hotkey!r}: {exc}")
    except ListenerInitError as exc:
        logging.error("clipboard listener init failed: %s", exc)
        sys.exit(f"clipboard-history: cannot access the clipboard: {exc}")

    app = QCoreApplication(sys.argv)
    bridge = HistoryBridge(engine)
    register_dbus(bridge)
    app.aboutToQuit.connect(engine.stop)

    def request_quit(*_args) -> None:
        logging.info("exit requested")
        app.quit()

    signal.signal(signal.SIGINT, request_quit)
    signal.signal(signal.SIGTERM, request_quit)
    # Qt blocks in C++; a periodic no-op lets Python run signal handlers.
    signal_timer = QTimer()
    signal_timer.timeout.connect(lambda: None)
    signal_timer.start(250)

    engine.start()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
