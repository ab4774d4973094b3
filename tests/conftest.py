"""Shared test fixtures and configuration"""
from typing import Dict, Generator, Optional

import pytest

from luagate.scripting.session import CORE_REGISTRARS, ScriptSession


class DictLoader:
    """In-memory source loader"""

    def __init__(self, sources: Dict[str, str]):
        self._sources = sources

    def get(self, name: str) -> Optional[str]:
        return self._sources.get(name)


@pytest.fixture
def session() -> Generator[ScriptSession, None, None]:
    """Session with the core script surface registered"""
    with ScriptSession(CORE_REGISTRARS) as s:
        yield s


@pytest.fixture
def loader_factory():
    return DictLoader


@pytest.fixture
def lua_files(tmp_path):
    """Write Lua sources to disk and return their paths"""

    def write(**sources: str) -> Dict[str, str]:
        paths = {}
        for name, text in sources.items():
            path = tmp_path / f"{name}.lua"
            path.write_text(text, encoding="utf-8")
            paths[name] = str(path)
        return paths

    return write
