"""Lua execution session: one engine per pipeline invocation."""

import threading
from typing import Any, Callable, Iterable, List, Optional, Protocol, Tuple, cast

from loguru import logger
from lupa import LuaRuntime  # type: ignore[import-untyped]

from luagate.core.logging import get_log_prefix
from luagate.scripting.bridge import host_to_script, register_json, script_to_host
from luagate.scripting.containers import register_list, register_nil, register_table
from luagate.scripting.errors import (
    CHUNK_NAME,
    EngineError,
    UnknownSourceError,
    decode,
    register_errors,
)
from luagate.scripting.sandbox import create_lua_runtime, strip_globals
from luagate.scripting.sourcemap import SourceMap

Registrar = Callable[["ScriptSession"], None]


class SourceLoader(Protocol):
    def get(self, name: str) -> Optional[str]: ...


CORE_REGISTRARS: Tuple[Registrar, ...] = (
    register_errors,
    register_nil,
    register_table,
    register_list,
    register_json,
)

# Loads one piece of code under CHUNK_NAME and runs it. Faults come back as a
# single string; faults raised by host bindings carry no position of their
# own, so the handler stamps them with the innermost script line.
_RUNNER_FACTORY = """
function(chunkname)
    local load, xpcall, tostring, type = load, xpcall, tostring, type
    local getinfo = debug and debug.getinfo
    local source = "=" .. chunkname

    local function locate(err)
        if type(err) == "string" then
            return err
        end
        if getinfo ~= nil then
            local level = 2
            local info = getinfo(level, "Sl")
            while info ~= nil do
                if info.source == source and info.currentline > 0 then
                    return chunkname .. ":" .. info.currentline .. ": " .. tostring(err)
                end
                level = level + 1
                info = getinfo(level, "Sl")
            end
        end
        return tostring(err)
    end

    return function(code)
        local chunk, err = load(code, source, "t")
        if chunk == nil then
            return false, err
        end
        local ok, fault = xpcall(chunk, locate)
        if ok then
            return true, nil
        end
        return false, fault
    end
end
"""


class ScriptSession:
    """Owns one Lua engine for exactly one invocation.

    Every piece of code run through ``execute`` is appended to the same
    ``SourceMap`` and loaded so that the engine reports global line numbers,
    which keeps faults resolvable across sources, pre and post code.

    A session is confined to the thread that created it and must be closed
    on every exit path; use it as a context manager.
    """

    def __init__(
        self,
        registrars: Iterable[Registrar],
        allow_open_libs: bool = False,
    ) -> None:
        self._owner = threading.get_ident()
        self._closers: List[Callable[[], None]] = []
        self.source_map = SourceMap()

        self._lua: Optional[LuaRuntime] = create_lua_runtime()
        self._runner = self._lua.eval(_RUNNER_FACTORY)(CHUNK_NAME)
        strip_globals(self._lua, allow_open_libs)

        try:
            for registrar in registrars:
                registrar(self)
        except BaseException:
            self.close()
            raise

    # =========================================================================
    # Registration
    # =========================================================================

    @property
    def lua(self) -> LuaRuntime:
        self._check_usable()
        return cast(LuaRuntime, self._lua)

    @property
    def closed(self) -> bool:
        return self._lua is None

    def set_global(self, name: str, value: Any) -> None:
        self.lua.globals()[name] = value

    def get_global(self, name: str) -> Any:
        return self.lua.globals()[name]

    def set_table(self, name: str, **members: Any) -> None:
        """Publish a global table of host callables, e.g. ``luaTable.new``."""
        self.set_global(name, self.lua.table_from(members))

    def bind(self, name: str, value: Any) -> None:
        """Publish a host value as a script global; maps and lists are shared, not copied."""
        self.set_global(name, host_to_script(value))

    def read(self, name: str) -> Any:
        """Convert a script global back into a fresh host value."""
        return script_to_host(self.get_global(name))

    def add_closer(self, closer: Callable[[], None]) -> None:
        """Register a resource release callback run when the session closes."""
        self._closers.append(closer)

    # =========================================================================
    # Execution
    # =========================================================================

    def run_sources(self, sources: Iterable[str], loader: SourceLoader) -> None:
        """Execute configured sources in order, stopping at the first failure."""
        for name in sources:
            text = loader.get(name)
            if text is None:
                raise UnknownSourceError(name)
            self.execute(name, text)

    def execute(self, name: str, code: str) -> None:
        """Run *code* as the fragment *name*; raises the decoded error on failure."""
        self._check_usable()
        offset = self.source_map.total_lines
        self.source_map.append(name, code)

        logger.debug(f"{get_log_prefix()} Executing {name}")
        ok, fault = self._runner("\n" * offset + code.rstrip("\n"))
        if ok:
            return

        err = decode(EngineError(str(fault)), self.source_map)
        logger.warning(f"{get_log_prefix()} {name} failed: {err}")
        raise err

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Release the engine and every registered resource. Idempotent."""
        if self._lua is None:
            return
        closers, self._closers = self._closers, []
        self._lua = None
        self._runner = None
        for closer in reversed(closers):
            try:
                closer()
            except Exception as e:
                logger.error(f"{get_log_prefix()} Failed to release session resource: {e}")

    def __enter__(self) -> "ScriptSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _check_usable(self) -> None:
        if self._lua is None:
            raise RuntimeError("script session is closed")
        if threading.get_ident() != self._owner:
            raise RuntimeError("script session used outside the thread that created it")
