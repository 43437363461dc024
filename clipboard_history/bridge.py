from __future__ import annotations

import json
import logging
from typing import List

from PySide6.QtCore import ClassInfo, QObject, Signal, Slot
from PySide6.QtDBus import QDBusConnection

from .engine import ClipboardEngine
from .entry import Entry


SERVICE_NAME = "com.clipboardhistory.Service"
OBJECT_PATH = "/com/clipboardhistory/Service"


@ClassInfo({"D-Bus Interface": SERVICE_NAME})
class HistoryBridge(QObject):
    """Query facade over the engine for presentation clients."""

    historyUpdated = Signal(list)

    def __init__(self, engine: ClipboardEngine) -> None:
        super().__init__()
        self._engine = engine
        engine.subscribe(self._on_history_changed)

    @Slot(result=str)
    def getEntries(self) -> str:
        return json.dumps([entry.to_dict() for entry in self._engine.entries()], ensure_ascii=False)

    @Slot(result=int)
    def getCount(self) -> int:
        return self._engine.count()

    @Slot(int, result=str)
    def getEntry(self, index: int) -> str:
        if index < 0:
            return ""
        entry = self._engine.entry_at(index)
        if entry is None:
            return ""
        return json.dumps(entry.to_dict(), ensure_ascii=False)

    @Slot(result=bool)
    def clearHistory(self) -> bool:
        try:
            return self._engine.clear()
        except Exception as exc:
            logging.exception("clear history failed: %s", exc)
            return False

    def _on_history_changed(self, entries: List[Entry]) -> None:
        self.historyUpdated.emit([entry.to_dict() for entry in entries])


def register_dbus(bridge: HistoryBridge, connection: QDBusConnection | None = None) -> bool:
    """Export the bridge's slots on the session bus. Returns False when unavailable."""
    if connection is None:
        connection = QDBusConnection.sessionBus()
    if not connection.isConnected():
        logging.warning("d-bus session bus unavailable, query service not exported")
        return False
    if not connection.registerObject(OBJECT_PATH, bridge, QDBusConnection.RegisterOption.ExportAllSlots):
        logging.warning("d-bus object registration failed: %s", connection.lastError().message())
        return False
    if not connection.registerService(SERVICE_NAME):
        logging.warning("d-bus name %s unavailable: %s", SERVICE_NAME, connection.lastError().message())
        connection.unregisterObject(OBJECT_PATH)
        return False
    logging.info("d-bus service started: %s", SERVICE_NAME)
    return True
