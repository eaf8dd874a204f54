"""Module loading: search paths, searchers, dynamic libraries and 'require'."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Union

from hazellua.paths import (
    CPATH_VAR,
    DIRSEP,
    PATH_MARK,
    PATH_SEP,
    PATH_VAR,
    PathNotFound,
    compose_path,
    search_path,
)

# Everything before this mark is ignored when building an open function name.
IGMARK = "-"
# Mark in a path replaced by the executable's directory.
EXEC_DIR = "!"
# Prefix and separator of open functions in native libraries.
POF = "luaopen_"
OFSEP = "_"
# Replacements for dots in submodule names when searching files.
CSUBSEP = DIRSEP
LSUBSEP = DIRSEP

DLMSG = "dynamic libraries not enabled; check your Lua installation"

DEFAULT_PATH = "./?.lua;./?/init.lua"
DEFAULT_CPATH = "./?.so"

CONFIG = f"{DIRSEP}\n{PATH_SEP}\n{PATH_MARK}\n{EXEC_DIR}\n{IGMARK}\n"

LibraryLoader = Callable[[str, bool], Mapping[str, Callable[..., Any]]]
ChunkLoader = Callable[[str], Callable[..., Any]]
SearcherResult = Union[tuple[Callable[..., Any], Any], str, None]


class PackageError(Exception):
    """Raised when a module cannot be found or loaded."""


class LoadLibError(PackageError):
    """Raised when a dynamic library or one of its functions is unavailable.

    ``where`` is "open" (or "absent" when dynamic loading is not enabled)
    for a library that could not be loaded, and "init" for a missing
    function.
    """

    def __init__(self, message: str, where: str) -> None:
        super().__init__(message)
        self.message = message
        self.where = where


def _truthy(value: Any) -> bool:
    return value is not None and value is not False


class PackageLibrary:
    """The package table together with the 'require' function.

    ``library_loader(path, global_symbols)`` opens a dynamic library and
    returns a mapping from symbol names to functions, raising OSError on
    failure; without one, dynamic libraries are not enabled.
    ``chunk_loader(filename)`` turns a source file into a callable chunk.
    """

    def __init__(
        self,
        *,
        library_loader: LibraryLoader | None = None,
        chunk_loader: ChunkLoader | None = None,
        environ: Mapping[str, str] | None = None,
        noenv: bool = False,
        default_path: str = DEFAULT_PATH,
        default_cpath: str = DEFAULT_CPATH,
    ) -> None:
        self.library_loader = library_loader
        self.chunk_loader = chunk_loader
        self.path: Any = compose_path(PATH_VAR, default_path, environ, noenv)
        self.cpath: Any = compose_path(CPATH_VAR, default_cpath, environ, noenv)
        self.config = CONFIG
        self.loaded: dict[str, Any] = {}
        self.preload: dict[str, Callable[..., Any]] = {}
        self.searchers: Any = [
            self.searcher_preload,
            self.searcher_lua,
            self.searcher_c,
            self.searcher_croot,
        ]
        self._clibs: dict[str, Mapping[str, Callable[..., Any]]] = {}
        self._clib_order: list[Mapping[str, Callable[..., Any]]] = []

    # -- dynamic libraries -------------------------------------------------

    @property
    def _lib_fail(self) -> str:
        return "open" if self.library_loader is not None else "absent"

    def _open_library(self, path: str, global_symbols: bool) -> Mapping[str, Callable[..., Any]]:
        if self.library_loader is None:
            raise LoadLibError(DLMSG, self._lib_fail)
        try:
            return self.library_loader(path, global_symbols)
        except OSError as exc:
            raise LoadLibError(str(exc), self._lib_fail) from exc

    def _look_for_func(self, path: str, sym: str) -> Union[Callable[..., Any], bool]:
        lib = self._clibs.get(path)
        if lib is None:
            lib = self._open_library(path, sym.startswith("*"))
            self._clibs[path] = lib
            self._clib_order.append(lib)
        if sym.startswith("*"):
            return True
        if self.library_loader is None:
            raise LoadLibError(DLMSG, "init")
        func = lib.get(sym)
        if func is None:
            raise LoadLibError(f"{path}: undefined symbol: {sym}", "init")
        return func

    def load_lib(self, path: str, init: str) -> Union[Callable[..., Any], bool]:
        """Load library ``path`` and return its function ``init``.

        With ``init`` equal to "*" only the library is loaded (its symbols
        made global) and True is returned.
        """
        return self._look_for_func(path, init)

    def close(self) -> None:
        """Unload every loaded library, most recent first."""
        for lib in reversed(self._clib_order):
            closer = getattr(lib, "close", None)
            if callable(closer):
                closer()
        self._clib_order.clear()
        self._clibs.clear()

    def __enter__(self) -> PackageLibrary:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- searchers ----------------------------------------------------------

    def _find_file(self, name: str, pname: str, dirsep: str) -> str:
        path = getattr(self, pname)
        if not isinstance(path, str):
            raise PackageError(f"'package.{pname}' must be a string")
        return search_path(name, path, ".", dirsep)

    @staticmethod
    def _load_error(name: str, filename: str, message: str) -> PackageError:
        return PackageError(
            f"error loading module '{name}' from file '{filename}':\n\t{message}"
        )

    def _load_func(self, filename: str, modname: str) -> Union[Callable[..., Any], bool]:
        modname = modname.replace(".", OFSEP)
        mark = modname.find(IGMARK)
        if mark >= 0:
            try:
                return self._look_for_func(filename, POF + modname[:mark])
            except LoadLibError as exc:
                if exc.where != "init":
                    raise
            modname = modname[mark + 1:]
        return self._look_for_func(filename, POF + modname)

    def searcher_preload(self, name: str) -> SearcherResult:
        """Find a loader in the preload table."""
        loader = self.preload.get(name)
        if loader is None:
            return f"\n\tno field package.preload['{name}']"
        return loader, None

    def searcher_lua(self, name: str) -> SearcherResult:
        """Find a source file for ``name`` along the Lua path."""
        try:
            filename = self._find_file(name, "path", LSUBSEP)
        except PathNotFound as exc:
            return exc.message
        if self.chunk_loader is None:
            raise self._load_error(name, filename, "no chunk loader configured")
        try:
            chunk = self.chunk_loader(filename)
        except Exception as exc:
            raise self._load_error(name, filename, str(exc)) from exc
        return chunk, filename

    def searcher_c(self, name: str) -> SearcherResult:
        """Find a dynamic library for ``name`` along the C path."""
        try:
            filename = self._find_file(name, "cpath", CSUBSEP)
        except PathNotFound as exc:
            return exc.message
        try:
            func = self._load_func(filename, name)
        except LoadLibError as exc:
            raise self._load_error(name, filename, exc.message) from exc
        return func, filename

    def searcher_croot(self, name: str) -> SearcherResult:
        """Find a submodule inside the library of its root module."""
        dot = name.find(".")
        if dot < 0:
            return None
        try:
            filename = self._find_file(name[:dot], "cpath", CSUBSEP)
        except PathNotFound as exc:
            return exc.message
        try:
            func = self._load_func(filename, name)
        except LoadLibError as exc:
            if exc.where != "init":
                raise self._load_error(name, filename, exc.message) from exc
            return f"\n\tno module '{name}' in file '{filename}'"
        return func, filename

    # -- require ------------------------------------------------------------

    def find_loader(self, name: str) -> tuple[Callable[..., Any], Any]:
        """Ask each searcher in turn; return the first loader and its data."""
        if not isinstance(self.searchers, list):
            raise PackageError("'package.searchers' must be a table")
        messages: list[str] = []
        for searcher in self.searchers:
            result = searcher(name)
            if isinstance(result, tuple) and result and callable(result[0]):
                return result[0], result[1] if len(result) > 1 else None
            if isinstance(result, str):
                messages.append(result)
        raise PackageError(f"module '{name}' not found:{''.join(messages)}")

    def require(self, name: str) -> Any:
        """Load module ``name`` once and return its value."""
        current = self.loaded.get(name)
        if _truthy(current):
            return current
        loader, data = self.find_loader(name)
        result = loader(name, data)
        if result is not None:
            self.loaded[name] = result
        if self.loaded.get(name) is None:
            self.loaded[name] = True
        return self.loaded[name]