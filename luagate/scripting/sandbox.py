"""Lua runtime creation using lupa."""

from lupa import LuaRuntime  # type: ignore[import-untyped]

# Removed unless a config sets allow_open_libs.
_OPEN_LIB_GLOBALS = ("io", "os", "debug", "loadfile", "dofile", "require", "package")

# lupa's bridge into the Python interpreter; never exposed to scripts.
_HOST_GLOBALS = ("python",)


def create_lua_runtime() -> LuaRuntime:
    """Create a Lua runtime with every standard library still loaded."""
    return LuaRuntime(unpack_returned_tuples=True)


def strip_globals(lua: LuaRuntime, allow_open_libs: bool = False) -> None:
    """Remove globals scripts must not reach."""
    g = lua.globals()
    for name in _HOST_GLOBALS:
        g[name] = None
    if allow_open_libs:
        return
    for name in _OPEN_LIB_GLOBALS:
        g[name] = None
