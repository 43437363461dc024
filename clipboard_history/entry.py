from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Entry:
    text: str
    captured_at: int  # whole seconds since the unix epoch

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text:
            raise ValueError("entry text must be a non-empty string")

    @classmethod
    def now(cls, text: str) -> "Entry":
        return cls(text=text, captured_at=int(time.time()))

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "timestamp": self.captured_at}
