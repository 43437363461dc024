from __future__ import annotations


class ClipboardHistoryError(Exception):
    pass


class SnapshotIOError(ClipboardHistoryError):
    """Snapshot file could not be read or written (missing permissions, full disk...)."""


class SnapshotDecodeError(ClipboardHistoryError):
    """Snapshot file exists but does not hold a valid history document."""


class SnapshotEncodeError(ClipboardHistoryError):
    pass


class ListenerInitError(ClipboardHistoryError):
    """No usable clipboard backend could be acquired."""


class ConfigParseError(ClipboardHistoryError):
    pass


class HotkeyParseError(ConfigParseError):
    pass
