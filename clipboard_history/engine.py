from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, List, Optional

from . import snapshot
from .config import Config
from .entry import Entry
from .errors import SnapshotDecodeError, SnapshotEncodeError, SnapshotIOError
from .listener import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT,
    ChangeListener,
    ClipboardReader,
    PyperclipReader,
)
from .store import HistoryStore, SharedHistory


Subscriber = Callable[[List[Entry]], None]


class ClipboardEngine:
    """Wires the clipboard listener into the shared history and its snapshot file.

    Lock order is always write lock, then history lock. Subscribers run under
    the write lock, so notifications arrive in the same order as the writes.
    """

    def __init__(
        self,
        storage_path: str,
        capacity: int = 100,
        reader: Optional[ClipboardReader] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        channel_size: int = 64,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage_path = storage_path
        self._capacity = int(capacity)
        self._history = SharedHistory(HistoryStore(self._capacity))
        self._channel: "queue.Queue[Entry]" = queue.Queue(maxsize=max(1, int(channel_size)))
        # Raises ListenerInitError when no clipboard backend is available.
        self._reader = reader or PyperclipReader.detect()
        self._listener = ChangeListener(
            self._reader,
            self._channel,
            poll_interval=poll_interval,
            read_timeout=read_timeout,
            clock=clock,
        )
        self._stop = threading.Event()
        self._write_lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._threads: List[threading.Thread] = []
        self.version_mismatch = False

    @classmethod
    def from_config(cls, config: Config, reader: Optional[ClipboardReader] = None) -> "ClipboardEngine":
        return cls(
            config.resolved_storage_path(),
            capacity=config.max_entries,
            reader=reader,
            poll_interval=config.poll_interval_ms / 1000.0,
            read_timeout=config.read_timeout_ms / 1000.0,
        )

    @property
    def history(self) -> SharedHistory:
        return self._history

    @property
    def listener(self) -> ChangeListener:
        return self._listener

    @property
    def channel(self) -> "queue.Queue[Entry]":
        return self._channel

    @property
    def storage_path(self) -> str:
        return self._storage_path

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def hydrate(self) -> int:
        try:
            loaded = snapshot.read(self._storage_path)
        except (SnapshotDecodeError, SnapshotIOError) as exc:
            logging.error("history load failed, starting empty: %s", exc)
            return 0
        self.version_mismatch = loaded.version_mismatch
        self._history.replace(HistoryStore.from_entries(self._capacity, loaded.entries))
        count = self._history.count()
        logging.info("loaded %s entries from %s", count, self._storage_path)
        return count

    def handle(self, entry: Entry) -> None:
        with self._write_lock:
            entries = self._history.push(entry)
            logging.info("clipboard updated, total entries: %s", len(entries))
            self._write(entries)
            self._notify(entries)

    def drain(self) -> int:
        handled = 0
        while True:
            try:
                entry = self._channel.get_nowait()
            except queue.Empty:
                return handled
            self.handle(entry)
            handled += 1

    def clear(self) -> bool:
        with self._write_lock:
            with self._history.locked() as store:
                store.clear()
                ok = self._write([])
            logging.info("history cleared")
            self._notify([])
        return ok

    def entries(self) -> List[Entry]:
        return self._history.snapshot()

    def count(self) -> int:
        return self._history.count()

    def entry_at(self, index: int) -> Optional[Entry]:
        return self._history.entry_at(index)

    def start(self) -> None:
        if self._threads:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._listener.run, args=(self._stop,), name="clipboard-listener", daemon=True),
            threading.Thread(target=self._consume, name="clipboard-consumer", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        logging.info("clipboard engine started")

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                logging.warning("thread %s did not stop within %ss", thread.name, timeout)
        self._threads = []
        self.drain()
        self._persist()
        close = getattr(self._reader, "close", None)
        if close is not None:
            close()
        logging.info("clipboard engine stopped")

    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def _consume(self) -> None:
        while not self._stop.is_set():
            try:
                entry = self._channel.get(timeout=self._listener.poll_interval)
            except queue.Empty:
                continue
            try:
                self.handle(entry)
            except Exception as exc:
                logging.exception("clipboard entry handling failed: %s", exc)

    def _persist(self) -> bool:
        with self._write_lock:
            return self._write(self._history.snapshot())

    def _write(self, entries: List[Entry]) -> bool:
        try:
            snapshot.write(self._storage_path, entries)
            return True
        except (SnapshotIOError, SnapshotEncodeError) as exc:
            logging.error("history save failed: %s", exc)
            return False

    def _notify(self, entries: List[Entry]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(entries)
            except Exception as exc:
                logging.exception("history subscriber failed: %s", exc)
