from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Protocol

import pyperclip

from .entry import Entry
from .errors import ListenerInitError


DEFAULT_POLL_INTERVAL = 0.3
DEFAULT_READ_TIMEOUT = 0.1


class ClipboardReader(Protocol):
    name: str

    def read(self, timeout: float) -> str:
        """Return the current clipboard text or raise on any failure."""
        ...


class CallableClipboardReader:
    def __init__(self, func: Callable[[], str], name: str = "callable") -> None:
        self._func = func
        self.name = name

    def read(self, timeout: float) -> str:
        return self._func()


class PyperclipReader:
    """Reads clipboard text with pyperclip on a single worker thread.

    A read that outlives its timeout stays pending and is collected by the
    next call instead of starting a second paste behind it.
    """

    name = "pyperclip"

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="clipboard-read")
        self._pending: Optional[Future] = None

    @classmethod
    def detect(cls) -> "PyperclipReader":
        try:
            pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            raise ListenerInitError(f"clipboard unavailable: {exc}") from exc
        logging.info("clipboard backend: pyperclip")
        return cls()

    def read(self, timeout: float) -> str:
        future = self._pending or self._executor.submit(pyperclip.paste)
        self._pending = future
        try:
            return future.result(timeout=timeout)
        finally:
            if future.done():
                self._pending = None

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


class ChangeListener:
    """Polls a clipboard reader and reports each new text value once.

    State is either idle (nothing observed yet) or tracking the last observed
    text. Failed or empty reads skip the tick without touching that state.
    """

    def __init__(
        self,
        reader: ClipboardReader,
        channel: "queue.Queue[Entry]",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if poll_interval <= 0 or read_timeout <= 0:
            raise ValueError("poll_interval and read_timeout must be positive")
        if read_timeout >= poll_interval:
            raise ValueError("read_timeout must be shorter than poll_interval")
        self._reader = reader
        self._channel = channel
        self._poll_interval = poll_interval
        self._read_timeout = read_timeout
        self._clock = clock
        self._last_value: Optional[str] = None

    @property
    def state(self) -> str:
        return "idle" if self._last_value is None else "tracking"

    @property
    def last_value(self) -> Optional[str]:
        return self._last_value

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def tick(self) -> Optional[Entry]:
        try:
            text = self._reader.read(self._read_timeout)
        except Exception as exc:
            logging.debug("clipboard read skipped (%s): %s", type(exc).__name__, exc)
            return None
        if not isinstance(text, str) or not text:
            return None
        if text == self._last_value:
            return None
        self._last_value = text
        return Entry(text=text, captured_at=int(self._clock()))

    def run(self, stop_event: threading.Event) -> None:
        logging.info("clipboard listener started (%s)", getattr(self._reader, "name", "reader"))
        while not stop_event.is_set():
            entry = self.tick()
            if entry is not None:
                self._deliver(entry, stop_event)
            stop_event.wait(self._poll_interval)
        logging.info("clipboard listener stopped")

    def _deliver(self, entry: Entry, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self._channel.put(entry, timeout=self._poll_interval)
                return
            except queue.Full:
                logging.warning("change channel full, waiting for consumer")
        logging.warning("listener stopped before delivering clipboard change (%s chars), change dropped", len(entry.text))
