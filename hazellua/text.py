"""Message formatting, UTF-8 escapes and chunk identifiers."""

from __future__ import annotations

from typing import Any

from hazellua.numbers import number_to_string

# Default size of the buffer that holds a chunk identifier.
IDSIZE = 60

MAX_CODEPOINT = 0x10FFFF

_RETS = "..."
_PRE = '[string "'
_POS = '"]'


class FormatError(ValueError):
    """Raised for a bad format string or missing arguments."""


def utf8_escape(x: int) -> bytes:
    """Encode code point ``x`` as a UTF-8 byte sequence.

    Surrogate code points are encoded like any other value.
    """
    if not 0 <= x <= MAX_CODEPOINT:
        raise ValueError(f"code point out of range: {x}")
    if x < 0x80:
        return bytes([x])
    tail: list[int] = []
    mfb = 0x3F  # largest value that still fits in the first byte
    while True:
        tail.append(0x80 | (x & 0x3F))
        x >>= 6
        mfb >>= 1
        if x <= mfb:
            break
    first = ((~mfb << 1) | x) & 0xFF
    return bytes([first, *reversed(tail)])


def _is_printable(code: int) -> bool:
    return 0x20 <= code < 0x7F


def _format_char(value: Any) -> str:
    code = ord(value) if isinstance(value, str) else int(value)
    code &= 0xFF
    if _is_printable(code):
        return chr(code)
    return f"<\\{code}>"


def _format_pointer(value: Any) -> str:
    address = value if isinstance(value, int) and not isinstance(value, bool) else id(value)
    return f"{address:#x}"


def format_message(fmt: str, *args: Any) -> str:
    """Format ``fmt`` with the interpreter's restricted set of options.

    Supported: ``%s`` (string, None gives "(null)"), ``%c`` (a character
    code), ``%d`` and ``%I`` (integers), ``%f`` (floats), ``%p`` (an
    address), ``%U`` (a code point as UTF-8) and ``%%``.
    """
    parts: list[str] = []
    remaining = iter(args)
    pos = 0

    def next_arg(option: str) -> Any:
        try:
            return next(remaining)
        except StopIteration:
            raise FormatError(f"missing argument for '%{option}'") from None

    while True:
        e = fmt.find("%", pos)
        if e < 0:
            break
        parts.append(fmt[pos:e])
        option = fmt[e + 1] if e + 1 < len(fmt) else ""
        if option == "s":
            value = next_arg(option)
            parts.append("(null)" if value is None else str(value))
        elif option == "c":
            parts.append(_format_char(next_arg(option)))
        elif option in ("d", "I"):
            parts.append(number_to_string(int(next_arg(option))))
        elif option == "f":
            parts.append(number_to_string(float(next_arg(option))))
        elif option == "p":
            parts.append(_format_pointer(next_arg(option)))
        elif option == "U":
            encoded = utf8_escape(int(next_arg(option)))
            parts.append(encoded.decode("utf-8", "surrogatepass"))
        elif option == "%":
            parts.append("%")
        else:
            raise FormatError(f"invalid option '%{option}' to 'lua_pushfstring'")
        pos = e + 2
    parts.append(fmt[pos:])
    return "".join(parts)


def chunk_id(source: str, bufflen: int = IDSIZE) -> str:
    """Build a printable chunk name that fits in ``bufflen`` (with terminator).

    Sources starting with '=' are used literally, those with '@' are file
    names (shortened from the front), anything else is shown as
    ``[string "..."]``.
    """
    minimum = len(_PRE) + len(_RETS) + len(_POS) + 2
    if bufflen < minimum:
        raise ValueError(f"buffer length must be at least {minimum}")
    length = len(source)
    if source.startswith("="):
        if length <= bufflen:
            return source[1:]
        return source[1:bufflen]
    if source.startswith("@"):
        if length <= bufflen:
            return source[1:]
        room = bufflen - len(_RETS)
        return _RETS + source[length - room + 1:]
    nl = source.find("\n")
    room = bufflen - (len(_PRE) + len(_RETS) + len(_POS) + 1)
    if length < room and nl < 0:
        return _PRE + source + _POS
    if nl >= 0:
        length = nl
    length = min(length, room)
    return _PRE + source[:length] + _RETS + _POS