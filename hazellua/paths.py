"""Search paths for modules: composing them and looking files up in them."""

from __future__ import annotations

import os
from collections.abc import Mapping

# Separator between templates in a path.
PATH_SEP = ";"
# Mark in a template that is replaced by the module name.
PATH_MARK = "?"
# Directory separator used when a module name is turned into a file name.
DIRSEP = os.sep
# Suffix added to an environment variable's name to make the versioned name.
VERSUFFIX = "_5_3"
# Auxiliary mark that stands for the default path while composing.
AUXMARK = "\1"

PATH_VAR = "LUA_PATH"
CPATH_VAR = "LUA_CPATH"


class PathNotFound(LookupError):
    """Raised when no template of a path names a readable file.

    ``tried`` lists the file names that were tried, in order; ``message``
    holds one "no file" line for each of them.
    """

    def __init__(self, name: str, tried: list[str]) -> None:
        self.name = name
        self.tried = tried
        self.message = "".join(f"\n\tno file '{filename}'" for filename in tried)
        super().__init__(self.message)


def compose_path(
    envname: str,
    default: str,
    environ: Mapping[str, str] | None = None,
    noenv: bool = False,
) -> str:
    """Build a search path from the environment.

    The versioned variable (``envname`` plus ``VERSUFFIX``) is preferred over
    ``envname`` itself.  Without either, or when ``noenv`` is set, the result
    is ``default``.  Otherwise every ";;" in the value is replaced by
    ";<default>;".
    """
    env = os.environ if environ is None else environ
    path = env.get(envname + VERSUFFIX)
    if path is None:
        path = env.get(envname)
    if path is None or noenv:
        return default
    doubled = PATH_SEP + PATH_SEP
    path = path.replace(doubled, PATH_SEP + AUXMARK + PATH_SEP)
    return path.replace(AUXMARK, default)


def _templates(path: str):
    for template in path.split(PATH_SEP):
        if template:
            yield template


def _readable(filename: str) -> bool:
    try:
        with open(filename, "rb"):
            return True
    except OSError:
        return False


def search_path(name: str, path: str, sep: str = ".", dirsep: str = DIRSEP) -> str:
    """Return the first readable file named by a template of ``path``.

    Every ``sep`` in ``name`` is first replaced by ``dirsep`` (unless ``sep``
    is empty); then each template has its ``PATH_MARK`` replaced by the
    name.  Raises :class:`PathNotFound` when no such file is readable.
    """
    if sep:
        name = name.replace(sep, dirsep)
    tried: list[str] = []
    for template in _templates(path):
        filename = template.replace(PATH_MARK, name)
        if _readable(filename):
            return filename
        tried.append(filename)
    raise PathNotFound(name, tried)