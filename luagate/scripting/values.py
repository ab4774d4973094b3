"""Scalar rules shared by the containers and the value bridge."""

import math
import re
from typing import Any, Dict, List, Optional

from lupa import lua_type  # type: ignore[import-untyped]


class Nil:
    """Script-visible null.

    Lua ``nil`` cannot be stored in a table, so containers hand this value out
    for ``None`` slots (list holes, JSON nulls).
    """

    _instance: Optional["Nil"] = None

    def __new__(cls) -> "Nil":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @staticmethod
    def new() -> "Nil":
        return NULL

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "luaNil"


NULL = Nil()

# Keys of a table that converts to a host list must run from this base.
LIST_BASE = 0

_INT_KEY_RE = re.compile(r"[+-]?\d+")


def normalize_number(value: float) -> Any:
    """A number equal to its own floor becomes an int, anything else stays a float."""
    if isinstance(value, float) and math.isfinite(value) and value == math.floor(value):
        return int(value)
    return value


def is_lua_table(value: Any) -> bool:
    return lua_type(value) == "table"


def key_text(key: Any) -> str:
    """Render a script key the way Lua's tostring would."""
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, (int, float)):
        return str(normalize_number(key))
    return str(key)


def try_convert_to_list(data: Dict[str, Any]) -> Optional[List[Any]]:
    """Return the list form of *data*, or None when it is not array-like.

    A map is array-like iff every key parses as an integer and the keys form
    an unbroken run starting at ``LIST_BASE``. An empty map is not array-like.
    """
    if not data:
        return None
    indexed: Dict[int, Any] = {}
    for key, value in data.items():
        if not _INT_KEY_RE.fullmatch(key):
            return None
        indexed[int(key)] = value
    if len(indexed) != len(data):
        return None
    if sorted(indexed) != list(range(LIST_BASE, LIST_BASE + len(indexed))):
        return None
    return [indexed[i] for i in range(LIST_BASE, LIST_BASE + len(indexed))]
