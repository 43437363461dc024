from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from .entry import Entry
from .errors import SnapshotDecodeError, SnapshotEncodeError, SnapshotIOError


CURRENT_VERSION = 1


@dataclass
class LoadedSnapshot:
    format_version: int = CURRENT_VERSION
    entries: List[Entry] = field(default_factory=list)

    @property
    def version_mismatch(self) -> bool:
        return self.format_version != CURRENT_VERSION


def write(path: str, entries: Iterable[Entry]) -> None:
    """Write ``entries`` to ``path`` as a versioned JSON document.

    The document is written in full to a sibling ``.tmp`` file and then moved
    over ``path``, so readers see either the previous file or the new one.
    """
    try:
        payload = json.dumps(
            {
                "format_version": CURRENT_VERSION,
                "entries": [entry.to_dict() for entry in entries],
            },
            ensure_ascii=False,
            indent=2,
        )
    except (TypeError, ValueError, AttributeError) as exc:
        raise SnapshotEncodeError(f"cannot serialize history: {exc}") from exc

    tmp_path = f"{path}.tmp"
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as exc:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError:
            logging.warning("snapshot temp cleanup failed: %s", tmp_path)
        raise SnapshotIOError(f"cannot write {path}: {exc}") from exc


def read(path: str) -> LoadedSnapshot:
    if not os.path.exists(path):
        return LoadedSnapshot()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise SnapshotIOError(f"cannot read {path}: {exc}") from exc
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SnapshotDecodeError(f"{path} is not valid JSON: {exc}") from exc

    snapshot = _decode(data, path)
    if snapshot.version_mismatch:
        # TODO: add an upgrade step here once a second format version exists.
        logging.warning(
            "snapshot version mismatch in %s (expected %s, got %s), loading best-effort",
            path,
            CURRENT_VERSION,
            snapshot.format_version,
        )
    return snapshot


def _decode(data: Any, path: str) -> LoadedSnapshot:
    if not isinstance(data, dict):
        raise SnapshotDecodeError(f"{path}: top level must be an object")
    version = data.get("format_version", data.get("version"))
    if isinstance(version, bool) or not isinstance(version, int):
        raise SnapshotDecodeError(f"{path}: missing or invalid format_version")
    raw_entries = data.get("entries")
    if not isinstance(raw_entries, list):
        raise SnapshotDecodeError(f"{path}: entries must be a list")

    entries: List[Entry] = []
    for position, item in enumerate(raw_entries):
        if not isinstance(item, dict):
            raise SnapshotDecodeError(f"{path}: entry {position} must be an object")
        text = item.get("text")
        timestamp = item.get("timestamp")
        if not isinstance(text, str) or not text:
            raise SnapshotDecodeError(f"{path}: entry {position} has no text")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp < 0:
            raise SnapshotDecodeError(f"{path}: entry {position} has an invalid timestamp")
        entries.append(Entry(text=text, captured_at=timestamp))
    return LoadedSnapshot(format_version=version, entries=entries)
