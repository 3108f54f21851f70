"""Response cache for the proxy: a bounded list of entries in FIFO or LRU order."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

CONTENT_START = b"Content-Length: "
CACHED_HEADER = b"Cached: True"

_HEAD_RE = re.compile(rb"\r\n")
_CONTENT_LENGTH_RE = re.compile(rb"Content-Length: [ -~]{1,128}")
_END_RE = re.compile(rb"\r\n\r\n")
_LEADING_INT_RE = re.compile(rb"\s*([+-]?\d+)")


class CacheMode(str, Enum):
    """Replacement policy of the cache."""

    FIFO = "FIFO"
    LRU = "LRU"


@dataclass(eq=False)
class CacheEntry:
    """A cached response for one (host, uri, port) request."""

    host: str
    uri: str
    port: int
    response: bytes
    hit: bool = False

    def matches(self, host: str, uri: str, port: int) -> bool:
        return self.host == host and self.uri == uri and self.port == port


class Cache:
    """A bounded cache whose first entry is the most recently inserted (or used, in LRU mode)."""

    def __init__(self, mode: CacheMode | str, size: int) -> None:
        self.mode = CacheMode(mode)
        if size < 1:
            raise ValueError(f"cache size must be positive: {size}")
        self.size = size
        self._entries: list[CacheEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries))

    def find(self, host: str, uri: str, port: int) -> CacheEntry | None:
        """Return the entry for the request, or None when it is not cached."""
        return next((e for e in self._entries if e.matches(host, uri, port)), None)

    def hit(self, entry: CacheEntry | None) -> bytes | None:
        """Return the entry's response; in LRU mode the entry also moves to the front."""
        if entry is None or entry.response is None:
            return None
        if self.mode is CacheMode.LRU:
            for index, candidate in enumerate(self._entries):
                if candidate is entry:
                    del self._entries[index]
                    self._entries.insert(0, entry)
                    break
        return entry.response

    def miss(self, host: str, uri: str, port: int, response: bytes) -> CacheEntry:
        """Insert a fresh response at the front, evicting the last entry when full."""
        if len(self._entries) >= self.size:
            self._entries.pop()
        entry = CacheEntry(host, uri, port, bytes(response))
        self._entries.insert(0, entry)
        return entry

    def describe(self) -> str:
        """Return a human-readable dump of the cache contents."""
        if not self._entries:
            return "Empty List\n"
        rule = "---------------\n"
        lines = [rule, f"Length: {len(self._entries)}\n", rule]
        last = len(self._entries) - 1
        for index, entry in enumerate(self._entries):
            prev = self._entries[index - 1].host if index > 0 else "NULL"
            nxt = self._entries[index + 1].host if index < last else "NULL"
            lines.append(
                f"[Index {index}] host: {entry.host}, uri: {entry.uri}, port: {entry.port}\t"
                f"prev: {prev}, next: {nxt}\n"
            )
        head, tail = self._entries[0], self._entries[-1]
        lines.append(rule)
        lines.append(f"[Head] host: {head.host}, uri {head.uri}, port {head.port}\n")
        lines.append(f"[Tail] host: {tail.host}, uri {tail.uri}, port {tail.port}\n")
        lines.append(rule)
        return "".join(lines)


def create_cache(mode: CacheMode | str, size: int) -> Cache | None:
    """Build a cache, or return None when caching is disabled (size 0)."""
    if size == 0:
        return None
    return Cache(mode, size)


def _atoi(text: bytes) -> int:
    match = _LEADING_INT_RE.match(text)
    return int(match.group(1)) if match else 0


def mark_cached(entry: CacheEntry) -> None:
    """Add the "Cached: True" header to an entry's response the first time it is served.

    The header goes right after the status line, and the body is cut to its
    Content-Length. Responses without a Content-Length header are left alone.
    """
    if entry.response is None or entry.hit:
        return
    response = entry.response
    head = _HEAD_RE.search(response)
    content_length = _CONTENT_LENGTH_RE.search(response)
    if content_length is None:
        return
    end = _END_RE.search(response)
    if head is None or end is None:
        return
    length = max(_atoi(content_length.group()[len(CONTENT_START):]), 0)
    entry.response = (
        response[: head.end()]
        + CACHED_HEADER
        + b"\r\n"
        + response[head.end() : end.end()]
        + response[end.end() : end.end() + length]
    )
    entry.hit = True