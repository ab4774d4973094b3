"""Lua scripting bridge: sessions, containers, value conversion and errors."""

from luagate.scripting.bridge import host_to_script, script_to_host
from luagate.scripting.containers import List, Table
from luagate.scripting.errors import (
    ArgumentError,
    HTTPError,
    HTTPErrorWithEncoding,
    InternalError,
    PositionedFault,
    ScriptError,
    UnknownSourceError,
    decode,
)
from luagate.scripting.session import CORE_REGISTRARS, ScriptSession
from luagate.scripting.sourcemap import SourceMap
from luagate.scripting.values import NULL

__all__ = [
    "host_to_script",
    "script_to_host",
    "List",
    "Table",
    "NULL",
    "ArgumentError",
    "HTTPError",
    "HTTPErrorWithEncoding",
    "InternalError",
    "PositionedFault",
    "ScriptError",
    "UnknownSourceError",
    "decode",
    "CORE_REGISTRARS",
    "ScriptSession",
    "SourceMap",
]
