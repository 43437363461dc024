from __future__ import annotations

import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterable, Iterator, List, Optional

from .entry import Entry


class EntriesView:
    """Read-only, re-iterable view over a store, most recent first."""

    def __init__(self, entries: Deque[Entry]) -> None:
        self._entries = entries

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class HistoryStore:
    def __init__(self, capacity: int = 100) -> None:
        if int(capacity) < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._entries: Deque[Entry] = deque()

    @classmethod
    def from_entries(cls, capacity: int, entries: Iterable[Entry]) -> "HistoryStore":
        """Build a store from a most-recent-first sequence, e.g. a loaded snapshot.

        Entries beyond ``capacity`` are dropped; on duplicate text the first
        (most recent) occurrence wins.
        """
        store = cls(capacity)
        seen = set()
        for entry in entries:
            if len(store._entries) >= store._capacity:
                break
            if entry.text in seen:
                continue
            seen.add(entry.text)
            store._entries.append(entry)
        return store

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, entry: Entry) -> None:
        for index, existing in enumerate(self._entries):
            if existing.text == entry.text:
                del self._entries[index]
                break
        self._entries.appendleft(entry)
        if len(self._entries) > self._capacity:
            self._entries.pop()

    def entries(self) -> EntriesView:
        return EntriesView(self._entries)

    def snapshot(self) -> List[Entry]:
        return list(self._entries)

    def get(self, index: int) -> Optional[Entry]:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def clear(self) -> None:
        self._entries.clear()

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)


class SharedHistory:
    """Lock-guarded handle around a HistoryStore shared between threads.

    The store is only reachable inside ``with shared.locked() as store:``;
    the helper methods each hold the lock for their whole critical section.
    """

    def __init__(self, store: HistoryStore) -> None:
        self._store = store
        self._lock = threading.RLock()

    @contextmanager
    def locked(self) -> Iterator[HistoryStore]:
        with self._lock:
            yield self._store

    def replace(self, store: HistoryStore) -> None:
        with self._lock:
            self._store = store

    def push(self, entry: Entry) -> List[Entry]:
        with self._lock:
            self._store.push(entry)
            return self._store.snapshot()

    def snapshot(self) -> List[Entry]:
        with self._lock:
            return self._store.snapshot()

    def count(self) -> int:
        with self._lock:
            return len(self._store)

    def entry_at(self, index: int) -> Optional[Entry]:
        with self._lock:
            return self._store.get(index)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    @property
    def capacity(self) -> int:
        with self._lock:
            return self._store.capacity
