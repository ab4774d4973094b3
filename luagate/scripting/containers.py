"""Growable map and list types shared between the host and Lua scripts.

``Table`` and ``List`` are handles over host storage (a ``dict`` or a
``list``). Scripts reach them as ``luaTable`` / ``luaList`` userdata and call
methods with the colon syntax::

    local t = luaTable.new()
    t:set("a", 1)
    local l = luaList.new()
    l:set(2, "x")      -- l == [nil, nil, "x"]

``get`` never copies: a stored map or list comes back as a new handle over the
same storage, so mutating the child through its own ``set``/``del`` is seen by
the parent. Re-assigning the parent slot does not affect handles taken before.
"""

import functools
import inspect
from typing import TYPE_CHECKING, Any, Callable, Dict, List as ListType, Optional

from luagate.scripting.errors import (
    ArgumentError,
    HTTPResponseError,
    NamedHTTPResponseError,
)
from luagate.scripting.values import (
    NULL,
    Nil,
    is_lua_table,
    key_text,
    lua_type,
    normalize_number,
    try_convert_to_list,
)

if TYPE_CHECKING:
    from luagate.scripting.session import ScriptSession


def binding(func: Callable) -> Callable:
    """Report wrong script call arity as ArgumentError instead of TypeError."""
    signature = inspect.signature(func)

    @functools.wraps(func)
    def wrapper(self, *args):
        try:
            signature.bind(self, *args)
        except TypeError:
            raise ArgumentError() from None
        return func(self, *args)

    return wrapper


class Table:
    """Handle over a ``Dict[str, Any]``."""

    __slots__ = ("data",)

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data = {} if data is None else data

    @staticmethod
    def new() -> "Table":
        return Table()

    @binding
    def get(self, key: Any) -> Any:
        """Return the value under *key*, or None (Lua nil) when absent."""
        key = _table_key(key)
        if key not in self.data:
            return None
        return to_script(self.data[key])

    @binding
    def set(self, key: Any, value: Any) -> None:
        self.data[_table_key(key)] = to_storage(value)

    @binding
    def delete(self, key: Any) -> None:
        self.data.pop(_table_key(key), None)

    @binding
    def len(self) -> int:
        return len(self.data)

    @binding
    def keys(self) -> "List":
        return List(sorted(self.data))

    @binding
    def key_exists(self, key: Any) -> bool:
        return _table_key(key) in self.data

    keyExists = key_exists

    def __repr__(self) -> str:
        return f"luaTable({self.data!r})"


class List:
    """Handle over a ``List[Any]``; indices start at 0."""

    __slots__ = ("data",)

    def __init__(self, data: Optional[ListType[Any]] = None) -> None:
        self.data = [] if data is None else data

    @staticmethod
    def new() -> "List":
        return List()

    @binding
    def get(self, index: Any) -> Any:
        """Return the element at *index*; out of range is a silent no-op (nil)."""
        index = _list_index(index)
        if index < 0 or index >= len(self.data):
            return None
        return to_script(self.data[index])

    @binding
    def set(self, index: Any, value: Any) -> None:
        """Store *value*, padding with nulls when *index* is past the end."""
        index = _list_index(index)
        if index < 0:
            return
        if index >= len(self.data):
            self.data.extend([None] * (index - len(self.data) + 1))
        self.data[index] = to_storage(value)

    @binding
    def delete(self, index: Any) -> None:
        """Remove the element at *index*, shifting the tail left; out of range is a no-op."""
        index = _list_index(index)
        if index < 0 or index >= len(self.data):
            return
        del self.data[index]

    @binding
    def len(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"luaList({self.data!r})"


# ``del`` is a Python keyword but the method name scripts use.
setattr(Table, "del", Table.delete)
setattr(List, "del", List.delete)


def _table_key(key: Any) -> str:
    if key is None or isinstance(key, Nil):
        raise ArgumentError("table key expected")
    return key_text(key)


def _list_index(index: Any) -> int:
    if isinstance(index, bool) or not isinstance(index, (int, float)):
        raise ArgumentError("list index must be a number")
    return int(index)


def http_error_to_map(err: HTTPResponseError) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "http_status_code": err.status_code,
        "http_body": err.body,
        "http_body_encoding": err.encoding,
    }
    if isinstance(err, NamedHTTPResponseError):
        data["name"] = err.name
    return data


def to_script(value: Any) -> Any:
    """Storage value -> value handed to a script."""
    if value is None:
        return NULL
    if isinstance(value, dict):
        return Table(value)
    if isinstance(value, list):
        return List(value)
    if isinstance(value, HTTPResponseError):
        return Table(http_error_to_map(value))
    return value


def to_storage(value: Any) -> Any:
    """Script value -> storage value.

    Containers are stored by reference to their storage; native Lua tables
    are converted key by key.
    """
    if value is None or isinstance(value, Nil):
        return None
    if isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float)):
        return normalize_number(value)
    if isinstance(value, (Table, List)):
        return value.data
    if is_lua_table(value):
        return native_table_to_storage(value)
    kind = lua_type(value)
    if kind is not None:
        raise ArgumentError(f"unsupported value type: {kind}")
    return value


def native_table_to_storage(table: Any) -> Any:
    data = {key_text(k): to_storage(v) for k, v in table.items()}
    as_list = try_convert_to_list(data)
    return data if as_list is None else as_list


def register_table(session: "ScriptSession") -> None:
    session.set_table("luaTable", new=Table.new)


def register_list(session: "ScriptSession") -> None:
    session.set_table("luaList", new=List.new)


def register_nil(session: "ScriptSession") -> None:
    session.set_table("luaNil", new=Nil.new)
