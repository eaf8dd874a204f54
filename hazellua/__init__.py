"""Building blocks of a Lua 5.3 runtime: bytecode, strings, numerals, messages, os and package libraries."""

__version__ = "0.1.0"

__all__ = ["opcodes", "strtable", "numbers", "text", "oslib", "paths", "package"]