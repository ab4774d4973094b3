"""luagate: Lua scripting for API gateway pipelines."""

__version__ = "1.0.0"
