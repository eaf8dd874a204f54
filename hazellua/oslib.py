"""Operating-system facilities: time and date, environment, files, processes."""

from __future__ import annotations

import locale as _locale
import os
import shutil
import subprocess
import tempfile
import time as _time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, Union

from hazellua.numbers import str_to_number

# Valid strftime conversion specifiers, grouped by length; "||" starts the
# group of two-character options.
STRFTIME_C99 = (
    "aAbBcCdDeFgGhHIjmMnprRStTuUVwWxXyYzZ%"
    "||" "EcECExEXEyEY" "OdOeOHOIOmOMOSOuOUOVOwOWOy"
)
STRFTIME_WIN = "aAbBcdHIjmMpSUwWxXyYzZ%" "||" "#c#x#d#H#I#j#m#M#S#U#w#W#y#Y"
STRFTIME_OPTIONS = STRFTIME_WIN if os.name == "nt" else STRFTIME_C99

# Largest magnitude accepted for a date field.
MAXDATEFIELD = (2**31 - 1) // 2

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

TMPNAME_PREFIX = "lua_"

_UNREPRESENTABLE = "time result cannot be represented in this installation"

_CATEGORIES = {
    "all": _locale.LC_ALL,
    "collate": _locale.LC_COLLATE,
    "ctype": _locale.LC_CTYPE,
    "monetary": _locale.LC_MONETARY,
    "numeric": _locale.LC_NUMERIC,
    "time": _locale.LC_TIME,
}

DateTable = MutableMapping[str, Any]


class OsLibError(Exception):
    """Raised where the library reports an error to its caller."""


@dataclass(frozen=True)
class CommandResult:
    """Outcome of :func:`execute`.

    ``ok`` is True when the command exited normally with status 0 and None
    otherwise; ``what`` is "exit" or "signal"; ``code`` is the exit status
    or the signal number.
    """

    ok: Union[bool, None]
    what: str
    code: int


def _to_integer(value: Any) -> Union[int, None]:
    """Integer value of ``value``, or None when it has no integer form."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return _to_integer(str_to_number(value))
        except ValueError:
            return None
    return None


def _check_time(value: Any, argno: int, fname: str) -> int:
    t = _to_integer(value)
    if t is None:
        raise OsLibError(
            f"bad argument #{argno} to '{fname}' (number has no integer representation)"
        )
    return t


def clock() -> float:
    """CPU time used by the program, in seconds."""
    return _time.process_time()


def _fields(stm: _time.struct_time) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "sec": stm.tm_sec,
        "min": stm.tm_min,
        "hour": stm.tm_hour,
        "day": stm.tm_mday,
        "month": stm.tm_mon,
        "year": stm.tm_year,
        # Sunday is day 1.
        "wday": (stm.tm_wday + 1) % 7 + 1,
        "yday": stm.tm_yday,
    }
    if stm.tm_isdst >= 0:
        fields["isdst"] = bool(stm.tm_isdst)
    return fields


def _check_option(rest: str) -> str:
    """Return the conversion specifier at the start of ``rest``."""
    oplen = 1
    pos = 0
    options = STRFTIME_OPTIONS
    while pos < len(options) and oplen <= len(rest):
        if options[pos] == "|":
            oplen += 1
            pos += 1
            continue
        if rest[:oplen] == options[pos:pos + oplen]:
            return rest[:oplen]
        pos += oplen
    raise OsLibError(
        f"bad argument #1 to 'date' (invalid conversion specifier '%{rest}')"
    )


def date(fmt: str = "%c", t: Any = None) -> Union[str, dict[str, Any]]:
    """Format time ``t`` (default: now) according to ``fmt``.

    A leading '!' selects UTC.  The format "*t" returns a table of fields
    (year, month, day, hour, min, sec, wday, yday and, when known, isdst).
    """
    seconds = int(_time.time()) if t is None else _check_time(t, 2, "date")
    utc = fmt.startswith("!")
    if utc:
        fmt = fmt[1:]
    try:
        stm = _time.gmtime(seconds) if utc else _time.localtime(seconds)
    except (OverflowError, OSError, ValueError):
        raise OsLibError(_UNREPRESENTABLE) from None
    if fmt == "*t":
        return _fields(stm)
    out: list[str] = []
    pos = 0
    while pos < len(fmt):
        ch = fmt[pos]
        if ch != "%":
            out.append(ch)
            pos += 1
            continue
        spec = _check_option(fmt[pos + 1:])
        out.append(_time.strftime("%" + spec, stm))
        pos += 1 + len(spec)
    return "".join(out)


def difftime(t1: Any, t2: Any) -> float:
    """Number of seconds from ``t2`` to ``t1``."""
    return float(_check_time(t1, 1, "difftime") - _check_time(t2, 2, "difftime"))


def _shell_available() -> bool:
    if os.name == "nt":
        return bool(os.environ.get("COMSPEC"))
    return shutil.which("sh") is not None or os.path.exists("/bin/sh")


def execute(cmd: Union[str, None] = None) -> Union[bool, CommandResult]:
    """Run ``cmd`` through the system shell.

    Without a command, tell whether a shell is available.
    """
    if cmd is None:
        return _shell_available()
    completed = subprocess.run(cmd, shell=True, check=False)
    code = completed.returncode
    if code < 0 and os.name != "nt":
        return CommandResult(None, "signal", -code)
    return CommandResult(True if code == 0 else None, "exit", code)


def exit(status: Union[bool, int, None] = None, close: Any = False) -> None:
    """Terminate the program with ``status``.

    True means success and False failure; an integer is used as is; the
    default is success.  When ``close`` is callable it is called first, to
    release the interpreter state.
    """
    if isinstance(status, bool):
        code = EXIT_SUCCESS if status else EXIT_FAILURE
    elif status is None:
        code = EXIT_SUCCESS
    else:
        value = _to_integer(status)
        if value is None:
            raise OsLibError("bad argument #1 to 'exit' (number expected)")
        code = value
    if callable(close):
        close()
    raise SystemExit(code)


def getenv(name: str) -> Union[str, None]:
    """Value of environment variable ``name``, or None."""
    return os.environ.get(name)


def remove(filename: str) -> None:
    """Delete a file or an empty directory; raises OSError on failure."""
    if os.path.isdir(filename) and not os.path.islink(filename):
        os.rmdir(filename)
    else:
        os.remove(filename)


def rename(fromname: str, toname: str) -> None:
    """Rename a file or directory; raises OSError on failure."""
    os.rename(fromname, toname)


def setlocale(locale_name: Union[str, None] = None, category: str = "all") -> Union[str, None]:
    """Set (or, with no name, query) the locale for ``category``.

    Returns the locale's name, or None when the request cannot be honoured.
    """
    try:
        cat = _CATEGORIES[category]
    except KeyError:
        raise OsLibError(
            f"bad argument #2 to 'setlocale' (invalid option '{category}')"
        ) from None
    try:
        return _locale.setlocale(cat, locale_name)
    except _locale.Error:
        return None


def _get_field(table: DateTable, key: str, default: int) -> int:
    value = table.get(key)
    res = _to_integer(value)
    if res is None:
        if value is not None:
            raise OsLibError(f"field '{key}' is not an integer")
        if default < 0:
            raise OsLibError(f"field '{key}' missing in date table")
        return default
    if not -MAXDATEFIELD <= res <= MAXDATEFIELD:
        raise OsLibError(f"field '{key}' is out-of-bound")
    return res


def time(table: Union[DateTable, None] = None) -> int:
    """Current time, or the time described by ``table`` (local time).

    Given a table, its fields are normalised in place.
    """
    if table is None:
        return int(_time.time())
    if not isinstance(table, MutableMapping):
        raise OsLibError(
            f"bad argument #1 to 'time' (table expected, got {type(table).__name__})"
        )
    sec = _get_field(table, "sec", 0)
    minute = _get_field(table, "min", 0)
    hour = _get_field(table, "hour", 12)
    day = _get_field(table, "day", -1)
    month = _get_field(table, "month", -1)
    year = _get_field(table, "year", -1)
    isdst_value = table.get("isdst")
    isdst = -1 if isdst_value is None else int(bool(isdst_value))
    try:
        t = int(_time.mktime((year, month, day, hour, minute, sec, 0, 0, isdst)))
        stm = _time.localtime(t)
    except (OverflowError, OSError, ValueError):
        raise OsLibError(_UNREPRESENTABLE) from None
    if t == -1:
        raise OsLibError(_UNREPRESENTABLE)
    table.update(_fields(stm))
    return t


def tmpname() -> str:
    """Create a fresh empty temporary file and return its name."""
    try:
        fd, name = tempfile.mkstemp(prefix=TMPNAME_PREFIX)
    except OSError:
        raise OsLibError("unable to generate a unique filename") from None
    os.close(fd)
    return name