# hazellua

Pure-Python building blocks of a Lua 5.3 runtime. The package needs nothing
outside the standard library.

## Modules

- `hazellua.opcodes` covers the 32-bit instruction format of the virtual machine.
  - `OpCode`, `OpMode` and `OpArgMask` describe opcodes and how each one uses its operands.
  - `create_abc`, `create_abx`, `create_asbx` and `create_ax` encode instructions.
  - `get_opcode`, `get_a`, `get_b`, `get_c`, `get_bx`, `get_sbx` and `get_ax` decode them.
  - `with_opcode`, `with_a`, `with_b`, `with_c`, `with_bx`, `with_sbx` and `with_ax` return an instruction with one field replaced.
  - `is_k`, `index_k` and `rk_as_k` handle register/constant operands.
  - `op_mode`, `b_mode`, `c_mode`, `sets_register_a` and `is_test` report the properties of an opcode.
  - Fields out of range and unknown opcodes raise `ValueError`.
- `hazellua.strtable` keeps strings unique.
  - `lua_hash` is the seeded 32-bit string hash.
  - `StringTable` interns short strings (40 bytes or fewer) with `intern`. It also provides `new`, which looks in a small cache first, plus `remove`, `resize` (power-of-two sizes only) and `clear_cache`.
  - `LuaString` is the string object. Its `long_hash` computes the hash of a long string once, on first use.
- `hazellua.numbers` converts numerals.
  - `str_to_integer` reads decimal and hexadecimal integers. Hexadecimal values wrap modulo 2**64; decimal values that overflow are rejected.
  - `str_to_float` accepts decimal and hexadecimal floats and rejects `inf` and `nan`.
  - `str_to_number` prefers an integer result over a float. All three raise `ValueError` on a malformed numeral.
  - `number_to_string` prints floats with 14 significant digits and always marks them as floats, so `1.0` prints as `"1.0"`.
  - Also here: the "floating point byte" pair `int_to_fb` and `fb_to_int`, `ceil_log2`, and `hex_value`.
- `hazellua.text` builds messages.
  - `format_message` supports `%s %c %d %I %f %p %U %%`. It raises `FormatError` on an unknown option or a missing argument.
  - `utf8_escape` encodes a code point as UTF-8 bytes.
  - `chunk_id` builds the short source name used in error messages.
- `hazellua.oslib` is the `os` library.
  - Functions: `clock`, `date` (including `"*t"` tables and a leading `!` for UTC), `difftime`, `execute`, `exit`, `getenv`, `remove`, `rename`, `setlocale`, `time` (which normalises a date table in place) and `tmpname`.
  - `execute` runs a command through the shell and returns a `CommandResult`. With no command it returns whether a shell is available.
  - `exit` raises `SystemExit`.
  - `remove` and `rename` raise `OSError` when they fail. The other reported errors are raised as `OsLibError`.
- `hazellua.paths` handles search paths.
  - `compose_path` builds a path from `LUA_PATH_5_3`/`LUA_PATH`-style environment values, replacing `;;` with the default path.
  - `search_path` tries each `?` template in turn. If no file is readable it raises `PathNotFound`, whose `tried` lists every file name it tried.
- `hazellua.package` provides `PackageLibrary`, the `require` machinery.
  - It holds `path`, `cpath`, `loaded`, `preload` and `searchers`.
  - The searchers are `searcher_preload`, `searcher_lua`, `searcher_c` and `searcher_croot`.
  - It also has `find_loader`, `require` and `load_lib`, and `close` (also usable as a context manager) to release loaded libraries.
  - Failures raise `PackageError`, or `LoadLibError` with a `where` of `"open"`, `"absent"` or `"init"`.

## Example

```python
from hazellua.opcodes import OpCode, create_abc, get_b
from hazellua.numbers import str_to_number, number_to_string

i = create_abc(OpCode.ADD, 1, 2, 3)
assert get_b(i) == 2

assert str_to_number("0x10") == 16
assert number_to_string(1.0) == "1.0"
```

```python
from hazellua.package import PackageLibrary

pkg = PackageLibrary(environ={})
pkg.preload["greeting"] = lambda name, data: {"text": "hello"}
assert pkg.require("greeting") == {"text": "hello"}
```

## What it does not do

The package contains no parser, compiler or virtual machine. It cannot read or run Lua source by itself.

`PackageLibrary` has two pluggable parts:

- To load source modules, give it a `chunk_loader`.
- To open native libraries, give it a `library_loader`. Without one, dynamic libraries are reported as not enabled.

There is no command-line program.

## Tests

The tests use pytest. It is installed with the `test` extra.