"""Interned string table with a small lookup cache."""

from __future__ import annotations

import os
from typing import Union

MEMERRMSG = b"not enough memory"

# At most about 2**HASHLIMIT bytes of a string take part in its hash.
HASHLIMIT = 5

MAXSHORTLEN = 40
MINSTRTABSIZE = 128
STRCACHE_N = 53
STRCACHE_M = 2

_MASK32 = 0xFFFFFFFF
_MAX_INT = 2**31 - 1

Data = Union[bytes, bytearray, str]


def _as_bytes(data: Data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def lua_hash(data: Data, seed: int) -> int:
    """Hash ``data`` with ``seed``; the result is an unsigned 32-bit value."""
    raw = _as_bytes(data)
    length = len(raw)
    h = (seed ^ length) & _MASK32
    step = (length >> HASHLIMIT) + 1
    while length >= step:
        h ^= ((h << 5) + (h >> 2) + raw[length - 1]) & _MASK32
        length -= step
    return h


class LuaString:
    """A string object. Short strings are interned; long ones are not."""

    __slots__ = ("data", "hash", "is_long", "extra")

    def __init__(self, data: bytes, hash_value: int, is_long: bool) -> None:
        self.data = data
        self.hash = hash_value
        self.is_long = is_long
        # For short strings: reserved-word index; for long ones: "has hash".
        self.extra = 0

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        kind = "long" if self.is_long else "short"
        return f"LuaString({self.data!r}, {kind})"

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, LuaString):
            return NotImplemented
        return self.is_long and other.is_long and self.data == other.data

    def __hash__(self) -> int:
        return hash(self.data)

    @property
    def is_reserved(self) -> bool:
        return not self.is_long and self.extra > 0

    def long_hash(self) -> int:
        """Compute (once) and return the hash of a long string."""
        if not self.is_long:
            raise ValueError("long_hash applies to long strings only")
        if self.extra == 0:
            self.hash = lua_hash(self.data, self.hash)
            self.extra = 1
        return self.hash


class StringTable:
    """Hash table that keeps every short string unique."""

    def __init__(self, seed: int | None = None, size: int = MINSTRTABSIZE) -> None:
        if seed is None:
            seed = int.from_bytes(os.urandom(4), "little")
        self.seed = seed & _MASK32
        self._buckets: list[list[LuaString]] = []
        self.nuse = 0
        self.resize(size)
        self.memerrmsg = self.intern(MEMERRMSG)
        self._cache = [[self.memerrmsg] * STRCACHE_M for _ in range(STRCACHE_N)]

    @property
    def size(self) -> int:
        return len(self._buckets)

    def __len__(self) -> int:
        return self.nuse

    def __contains__(self, s: object) -> bool:
        if not isinstance(s, LuaString) or s.is_long or not self._buckets:
            return False
        return any(t is s for t in self._buckets[s.hash & (self.size - 1)])

    def resize(self, newsize: int) -> None:
        """Rehash every interned string into ``newsize`` buckets."""
        if newsize <= 0 or newsize & (newsize - 1):
            raise ValueError(f"table size must be a power of two, got {newsize}")
        buckets: list[list[LuaString]] = [[] for _ in range(newsize)]
        for chain in self._buckets:
            for s in chain:
                buckets[s.hash & (newsize - 1)].append(s)
        self._buckets = buckets

    def intern(self, data: Data) -> LuaString:
        """Return the string for ``data``: shared if short, fresh if long."""
        raw = _as_bytes(data)
        if len(raw) > MAXSHORTLEN:
            return LuaString(raw, self.seed, is_long=True)
        h = lua_hash(raw, self.seed)
        for s in self._buckets[h & (self.size - 1)]:
            if s.data == raw:
                return s
        if self.nuse >= self.size and self.size <= _MAX_INT // 2:
            self.resize(self.size * 2)
        s = LuaString(raw, h, is_long=False)
        self._buckets[h & (self.size - 1)].insert(0, s)
        self.nuse += 1
        return s

    def new(self, data: Data) -> LuaString:
        """Like :meth:`intern`, but first consult the lookup cache."""
        raw = _as_bytes(data)
        line = self._cache[hash(raw) % STRCACHE_N]
        for s in line:
            if s.data == raw:
                return s
        s = self.intern(raw)
        line[1:] = line[:-1]
        line[0] = s
        return s

    def remove(self, s: LuaString) -> None:
        """Drop an interned short string from the table."""
        if s.is_long:
            raise KeyError(s)
        chain = self._buckets[s.hash & (self.size - 1)]
        for index, t in enumerate(chain):
            if t is s:
                del chain[index]
                self.nuse -= 1
                self._forget(s)
                return
        raise KeyError(s)

    def _forget(self, s: LuaString) -> None:
        for line in self._cache:
            for index, t in enumerate(line):
                if t is s:
                    line[index] = self.memerrmsg

    def clear_cache(self) -> None:
        """Reset every cache entry to the fixed memory-error string."""
        for line in self._cache:
            line[:] = [self.memerrmsg] * STRCACHE_M