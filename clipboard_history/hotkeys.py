from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import HotkeyParseError


MODIFIERS = {
    "CTRL": "ctrl",
    "CONTROL": "ctrl",
    "SHIFT": "shift",
    "ALT": "alt",
}


@dataclass(frozen=True)
class Hotkey:
    ctrl: bool
    shift: bool
    alt: bool
    key: str

    def __str__(self) -> str:
        parts = []
        if self.ctrl:
            parts.append("Ctrl")
        if self.shift:
            parts.append("Shift")
        if self.alt:
            parts.append("Alt")
        parts.append(self.key)
        return "+".join(parts)


def parse_hotkey(text: str) -> Hotkey:
    if not text or not text.strip():
        raise HotkeyParseError("empty hotkey")
    parts = [p.strip() for p in re.split(r"\s*\+\s*", text.strip())]
    if any(not p for p in parts):
        raise HotkeyParseError(f"empty token in hotkey: {text!r}")

    flags = {"ctrl": False, "shift": False, "alt": False}
    key = None
    for part in parts:
        upper = part.upper()
        if upper in MODIFIERS:
            flags[MODIFIERS[upper]] = True
        elif key is None:
            key = upper
        else:
            raise HotkeyParseError(f"more than one key in hotkey: {text!r}")
    if key is None:
        raise HotkeyParseError(f"no key in hotkey: {text!r}")
    return Hotkey(ctrl=flags["ctrl"], shift=flags["shift"], alt=flags["alt"], key=key)
