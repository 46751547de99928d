# utils.py
# Helpers: input sanitizing, simple in-memory TTL cache

from __future__ import annotations

import re
import time
import unicodedata
from dataclasses import dataclass
from typing import Any

# characters that can change the meaning of an outbound query or end up as markup
UNSAFE_CHARS = frozenset("<>\"'`;{}[]\\|^$%")

_WS = re.compile(r"\s+")


def sanitize(text: Any, max_length: int = 100) -> str:
    """
    Normalize free text before it reaches a provider query or the store.
    Total over its input: None -> "", non-strings are stringified, never raises.
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        try:
            text = str(text)
        except Exception:
            return ""
    text = unicodedata.normalize("NFKC", text)
    # control/format/surrogate/private-use chars; whitespace controls become spaces
    kept = []
    for ch in text:
        if ch.isspace():
            kept.append(" ")
        elif ch in UNSAFE_CHARS or unicodedata.category(ch).startswith("C"):
            continue
        else:
            kept.append(ch)
    out = _WS.sub(" ", "".join(kept)).strip()
    if max_length and len(out) > max_length:
        out = out[:max_length].rstrip()
    return out


@dataclass
class CacheEntry:
    expires: float
    data: Any


class TTLCache:
    """Simple in-memory TTL cache (per-process). ttl_seconds <= 0 disables it."""

    def __init__(self, ttl_seconds: int = 600):
        self.ttl = ttl_seconds
        self._store: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        if self.ttl <= 0:
            return None
        entry = self._store.get(key)
        if not entry:
            return None
        if entry.expires < time.time():
            self._store.pop(key, None)
            return None
        return entry.data

    def set(self, key: str, value: Any) -> None:
        if self.ttl <= 0:
            return
        self._store[key] = CacheEntry(expires=time.time() + self.ttl, data=value)

    def clear(self) -> None:
        self._store.clear()
