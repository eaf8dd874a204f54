[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hazellua"
version = "0.1.0"
description = "Building blocks of a Lua 5.3 runtime: bytecode encoding, string interning, numeral conversion, message formatting, the os library and module search"
requires-python = ">=3.10"
dependencies = []
keywords = ["lua", "interpreter", "bytecode", "runtime", "require"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hazellua"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
