import os

import pytest

from hazellua.package import (
    CONFIG,
    DLMSG,
    LoadLibError,
    PackageError,
    PackageLibrary,
)


class FakeLib(dict):
    def __init__(self, symbols, log, name):
        super().__init__(symbols)
        self.log = log
        self.name = name

    def close(self):
        self.log.append(self.name)


def make_loader(libraries, calls=None, log=None):
    log = [] if log is None else log

    def loader(path, global_symbols):
        if calls is not None:
            calls.append((path, global_symbols))
        if path not in libraries:
            raise OSError(f"cannot open {path}")
        return FakeLib(libraries[path], log, path)

    return loader


def test_require_preload_runs_loader_once():
    pkg = PackageLibrary()
    calls = []

    def loader(name, data):
        calls.append((name, data))
        return {"answer": 42}

    pkg.preload["mod"] = loader
    first = pkg.require("mod")
    second = pkg.require("mod")
    assert first == {"answer": 42}
    assert second is first
    assert calls == [("mod", None)]
    assert pkg.loaded["mod"] is first


def test_require_stores_true_when_loader_returns_nothing():
    pkg = PackageLibrary()
    pkg.preload["quiet"] = lambda name, data: None
    assert pkg.require("quiet") is True
    assert pkg.loaded["quiet"] is True


def test_require_keeps_value_set_by_loader():
    pkg = PackageLibrary()

    def loader(name, data):
        pkg.loaded[name] = "set-by-loader"
        return None

    pkg.preload["self"] = loader
    assert pkg.require("self") == "set-by-loader"


def test_require_reloads_false_entry():
    pkg = PackageLibrary()
    pkg.loaded["m"] = False
    pkg.preload["m"] = lambda name, data: "fresh"
    assert pkg.require("m") == "fresh"


def test_require_missing_module_lists_every_attempt(tmp_path):
    pkg = PackageLibrary()
    pkg.path = str(tmp_path / "?.lua")
    pkg.cpath = str(tmp_path / "?.so")
    with pytest.raises(PackageError) as info:
        pkg.require("nope")
    message = str(info.value)
    assert message.startswith("module 'nope' not found:")
    assert "\n\tno field package.preload['nope']" in message
    assert f"\n\tno file '{tmp_path / 'nope.lua'}'" in message
    assert f"\n\tno file '{tmp_path / 'nope.so'}'" in message


def test_searcher_lua_uses_chunk_loader(tmp_path):
    source = tmp_path / "hello.lua"
    source.write_text("return 1")
    seen = []

    def chunk_loader(filename):
        seen.append(filename)
        return lambda name, data: (name, data)

    pkg = PackageLibrary(chunk_loader=chunk_loader)
    pkg.path = str(tmp_path / "?.lua")
    loader, filename = pkg.searcher_lua("hello")
    assert filename == str(source)
    assert seen == [str(source)]
    assert pkg.require("hello") == ("hello", str(source))


def test_searcher_lua_reports_load_failure(tmp_path):
    (tmp_path / "bad.lua").write_text("oops")

    def chunk_loader(filename):
        raise SyntaxError("unexpected symbol")

    pkg = PackageLibrary(chunk_loader=chunk_loader)
    pkg.path = str(tmp_path / "?.lua")
    with pytest.raises(PackageError) as info:
        pkg.searcher_lua("bad")
    assert str(info.value).startswith("error loading module 'bad' from file")
    assert "unexpected symbol" in str(info.value)


def test_searcher_lua_requires_string_path():
    pkg = PackageLibrary()
    pkg.path = 5
    with pytest.raises(PackageError, match="'package.path' must be a string"):
        pkg.searcher_lua("x")


def test_searcher_c_finds_open_function(tmp_path):
    (tmp_path / "a").mkdir()
    lib_file = tmp_path / "a" / "b.so"
    lib_file.write_bytes(b"")
    opener = lambda name, data: "opened"
    libs = {str(lib_file): {"luaopen_a_b": opener}}
    pkg = PackageLibrary(library_loader=make_loader(libs))
    pkg.cpath = str(tmp_path / "?.so")
    loader, filename = pkg.searcher_c("a.b")
    assert loader is opener
    assert filename == str(lib_file)


def test_searcher_c_ignore_mark(tmp_path):
    lib_file = tmp_path / "v2-mod.so"
    lib_file.write_bytes(b"")
    old_style = lambda name, data: "old"
    libs = {str(lib_file): {"luaopen_mod": old_style}}
    pkg = PackageLibrary(library_loader=make_loader(libs))
    pkg.cpath = str(tmp_path / "?.so")
    loader, _ = pkg.searcher_c("v2-mod")
    assert loader is old_style

    new_style = lambda name, data: "new"
    libs[str(lib_file)]["luaopen_v2"] = new_style
    pkg2 = PackageLibrary(library_loader=make_loader(libs))
    pkg2.cpath = str(tmp_path / "?.so")
    loader2, _ = pkg2.searcher_c("v2-mod")
    assert loader2 is new_style


def test_searcher_c_missing_function_is_error(tmp_path):
    lib_file = tmp_path / "m.so"
    lib_file.write_bytes(b"")
    pkg = PackageLibrary(library_loader=make_loader({str(lib_file): {}}))
    pkg.cpath = str(tmp_path / "?.so")
    with pytest.raises(PackageError, match="error loading module 'm'"):
        pkg.searcher_c("m")


def test_searcher_croot(tmp_path):
    lib_file = tmp_path / "a.so"
    lib_file.write_bytes(b"")
    sub = lambda name, data: "sub"
    libs = {str(lib_file): {"luaopen_a_b": sub}}
    pkg = PackageLibrary(library_loader=make_loader(libs))
    pkg.cpath = str(tmp_path / "?.so")
    assert pkg.searcher_croot("a") is None
    assert pkg.searcher_croot("a.b") == (sub, str(lib_file))
    assert pkg.searcher_croot("a.c") == f"\n\tno module 'a.c' in file '{lib_file}'"


def test_load_lib_without_dynamic_loading():
    pkg = PackageLibrary()
    with pytest.raises(LoadLibError) as info:
        pkg.load_lib("lib.so", "luaopen_lib")
    assert info.value.where == "absent"
    assert info.value.message == DLMSG


def test_load_lib_open_failure_and_missing_symbol():
    calls = []
    pkg = PackageLibrary(library_loader=make_loader({"x.so": {}}, calls))
    with pytest.raises(LoadLibError) as opened:
        pkg.load_lib("missing.so", "f")
    assert opened.value.where == "open"
    with pytest.raises(LoadLibError) as init:
        pkg.load_lib("x.so", "f")
    assert init.value.where == "init"


def test_load_lib_star_loads_once_with_global_symbols():
    calls = []
    func = lambda: 1
    pkg = PackageLibrary(library_loader=make_loader({"x.so": {"f": func}}, calls))
    assert pkg.load_lib("x.so", "*") is True
    assert pkg.load_lib("x.so", "f") is func
    assert calls == [("x.so", True)]


def test_close_unloads_in_reverse_order():
    log = []
    libs = {"one.so": {}, "two.so": {}}
    with PackageLibrary(library_loader=make_loader(libs, log=log)) as pkg:
        pkg.load_lib("one.so", "*")
        pkg.load_lib("two.so", "*")
    assert log == ["two.so", "one.so"]


def test_paths_from_environment():
    pkg = PackageLibrary(
        environ={"LUA_PATH": "x;;", "LUA_CPATH_5_3": "c"},
        default_path="d",
        default_cpath="dc",
    )
    assert pkg.path == "x;d;"
    assert pkg.cpath == "c"
    plain = PackageLibrary(environ={"LUA_PATH": "x"}, noenv=True, default_path="d")
    assert plain.path == "d"


def test_config_string():
    pkg = PackageLibrary()
    assert pkg.config == CONFIG
    assert pkg.config.split("\n") == [os.sep, ";", "?", "!", "-", ""]


def test_searchers_must_be_a_list():
    pkg = PackageLibrary()
    pkg.searchers = None
    with pytest.raises(PackageError, match="'package.searchers' must be a table"):
        pkg.require("anything")