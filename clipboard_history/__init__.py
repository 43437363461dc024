from __future__ import annotations

from .entry import Entry
from .store import HistoryStore, SharedHistory

__all__ = ["Entry", "HistoryStore", "SharedHistory"]
