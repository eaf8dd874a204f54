"""Numeric helpers: floating-point bytes, log2, and numeral conversion."""

from __future__ import annotations

import math
import re

# Maximum number of significant hex digits read into a float accumulator.
MAXSIGDIG = 30

_SPACE = " \t\n\v\f\r"
_DIGITS = "0123456789"
_HEXDIGITS = _DIGITS + "abcdefABCDEF"

_MAXINTEGER = 2**63 - 1
_MAXBY10 = _MAXINTEGER // 10
_MAXLASTD = _MAXINTEGER % 10
_MASK64 = 2**64 - 1

_DECIMAL = re.compile(
    r"[ \t\n\v\f\r]*"
    r"([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
    r"[ \t\n\v\f\r]*"
)


def int_to_fb(x: int) -> int:
    """Encode ``x`` as a "floating point byte" ``eeeeexxx``, rounding up.

    The value is ``(1xxx) * 2**(eeeee - 1)`` when ``eeeee != 0`` and ``xxx``
    otherwise.
    """
    if x < 0:
        raise ValueError(f"int_to_fb expects an unsigned value, got {x}")
    if x < 8:
        return x
    e = 0
    while x >= (8 << 4):
        x = (x + 0xF) >> 4
        e += 4
    while x >= (8 << 1):
        x = (x + 1) >> 1
        e += 1
    return ((e + 1) << 3) | (x - 8)


def fb_to_int(x: int) -> int:
    """Decode a "floating point byte" produced by :func:`int_to_fb`."""
    if x < 8:
        return x
    return ((x & 7) + 8) << ((x >> 3) - 1)


def ceil_log2(x: int) -> int:
    """Return ``ceil(log2(x))`` for a positive integer ``x``."""
    if x < 1:
        raise ValueError(f"ceil_log2 expects a positive value, got {x}")
    return (x - 1).bit_length()


def hex_value(c: str) -> int:
    """Value of the hexadecimal digit ``c``."""
    if len(c) != 1 or c not in _HEXDIGITS:
        raise ValueError(f"not a hexadecimal digit: {c!r}")
    if c in _DIGITS:
        return ord(c) - ord("0")
    return ord(c.lower()) - ord("a") + 10


def _skip_space(s: str, pos: int) -> int:
    while pos < len(s) and s[pos] in _SPACE:
        pos += 1
    return pos


def _read_sign(s: str, pos: int) -> tuple[bool, int]:
    if pos < len(s) and s[pos] == "-":
        return True, pos + 1
    if pos < len(s) and s[pos] == "+":
        return False, pos + 1
    return False, pos


def _to_signed(a: int) -> int:
    a &= _MASK64
    return a - (1 << 64) if a >= (1 << 63) else a


def str_to_integer(s: str) -> int:
    """Convert a decimal or hexadecimal integer numeral.

    Hexadecimal numerals wrap around modulo 2**64; decimal numerals that do
    not fit in a signed 64-bit integer are rejected.  Raises ValueError when
    ``s`` is not an integer numeral.
    """
    pos = _skip_space(s, 0)
    neg, pos = _read_sign(s, pos)
    a = 0
    empty = True
    if s.startswith(("0x", "0X"), pos):
        pos += 2
        while pos < len(s) and s[pos] in _HEXDIGITS:
            a = (a * 16 + hex_value(s[pos])) & _MASK64
            empty = False
            pos += 1
    else:
        while pos < len(s) and s[pos] in _DIGITS:
            d = ord(s[pos]) - ord("0")
            if a >= _MAXBY10 and (a > _MAXBY10 or d > _MAXLASTD + neg):
                raise ValueError(f"integer numeral out of range: {s!r}")
            a = a * 10 + d
            empty = False
            pos += 1
    pos = _skip_space(s, pos)
    if empty or pos != len(s):
        raise ValueError(f"malformed integer numeral: {s!r}")
    return _to_signed(-a if neg else a)


def _scan_hex_float(s: str) -> tuple[float, int] | None:
    """Read a hexadecimal float; return its value and end position."""
    n = len(s)
    pos = _skip_space(s, 0)
    neg, pos = _read_sign(s, pos)
    if not s.startswith(("0x", "0X"), pos):
        return None
    pos += 2
    r = 0.0
    sigdig = nosigdig = e = 0
    hasdot = False
    while pos < n:
        ch = s[pos]
        if ch == ".":
            if hasdot:
                break
            hasdot = True
        elif ch in _HEXDIGITS:
            if sigdig == 0 and ch == "0":
                nosigdig += 1
            else:
                sigdig += 1
                if sigdig <= MAXSIGDIG:
                    r = r * 16.0 + hex_value(ch)
                else:
                    e += 1
            if hasdot:
                e -= 1
        else:
            break
        pos += 1
    if nosigdig + sigdig == 0:
        return None
    end = pos
    e *= 4
    if pos < n and s[pos] in "pP":
        neg1, pos = _read_sign(s, pos + 1)
        start = pos
        while pos < n and s[pos] in _DIGITS:
            pos += 1
        if pos == start:
            return None
        exp1 = int(s[start:pos])
        e += -exp1 if neg1 else exp1
        end = pos
    if neg:
        r = -r
    try:
        value = math.ldexp(r, e)
    except OverflowError:
        value = math.copysign(math.inf, r)
    return value, end


def str_to_float(s: str) -> float:
    """Convert a decimal or hexadecimal numeral to a float.

    'inf' and 'nan' are rejected.  Raises ValueError on malformed input.
    """
    special = re.search(r"[.xXnN]", s)
    mode = special.group(0).lower() if special else ""
    if mode == "n":
        raise ValueError(f"malformed number: {s!r}")
    if mode == "x":
        scanned = _scan_hex_float(s)
        if scanned is not None:
            value, end = scanned
            if _skip_space(s, end) == len(s):
                return value
        raise ValueError(f"malformed number: {s!r}")
    match = _DECIMAL.fullmatch(s)
    if match is None:
        raise ValueError(f"malformed number: {s!r}")
    return float(match.group(1))


def str_to_number(s: str) -> int | float:
    """Convert a numeral, preferring an integer result over a float."""
    try:
        return str_to_integer(s)
    except ValueError:
        return str_to_float(s)


def number_to_string(value: int | float) -> str:
    """Format a number the way the interpreter prints it.

    Floats use 14 significant digits and always show that they are floats.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, int):
        return str(_to_signed(value))
    text = "%.14g" % value
    if all(ch in "-0123456789" for ch in text):
        text += ".0"
    return text