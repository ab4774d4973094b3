"""Conversion between host values and script values.

Host values are what JSON decoding or the pipeline produce: ``None``,
``bool``, ``int``, ``float``, ``str``, ``list``, ``dict`` and opaque objects.

* ``host_to_script`` never copies maps and lists; they become ``Table`` /
  ``List`` handles over the host storage, so a script mutating them mutates
  the host value in place.
* ``script_to_host`` always returns fresh host structures. Numbers equal to
  their own floor become ints. Native Lua tables become lists when their keys
  are ``"0".."n-1"`` and maps otherwise; the same rule applies at every depth
  and at every entry point (``Table.set``, ``List.set``, ``json.marshal`` and
  reading a binding back from a session).
"""

import json
from typing import TYPE_CHECKING, Any

from luagate.scripting.containers import to_script, to_storage
from luagate.scripting.errors import ArgumentError
from luagate.scripting.values import normalize_number

if TYPE_CHECKING:
    from luagate.scripting.session import ScriptSession


def host_to_script(value: Any) -> Any:
    if value is None:
        return None
    return to_script(value)


def script_to_host(value: Any) -> Any:
    return _copy(to_storage(value))


def _copy(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy(v) for v in value]
    if isinstance(value, float):
        return normalize_number(value)
    return value


def unmarshal(*args: Any) -> Any:
    """json.unmarshal(text): decode JSON into a script value."""
    if len(args) != 1:
        raise ArgumentError()
    if not isinstance(args[0], str):
        raise ArgumentError("json text expected")
    return host_to_script(json.loads(args[0]))


def marshal(*args: Any) -> str:
    """json.marshal(value): encode a script value as tab-indented JSON."""
    if len(args) != 1:
        raise ArgumentError()
    return json.dumps(
        script_to_host(args[0]),
        indent="\t",
        sort_keys=True,
        ensure_ascii=False,
        allow_nan=False,
    )


def register_json(session: "ScriptSession") -> None:
    session.set_table("json", marshal=marshal, unmarshal=unmarshal)
