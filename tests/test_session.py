"""Tests for ScriptSession lifecycle, sandboxing and source execution"""
import threading

import pytest

from luagate.scripting.errors import PositionedFault, UnknownSourceError
from luagate.scripting.session import CORE_REGISTRARS, ScriptSession


@pytest.mark.unit
class TestRegistration:
    def test_custom_registrar(self):
        def register_greeting(session):
            session.set_table("greeting", hello=lambda name: f"hello {name}")

        with ScriptSession((*CORE_REGISTRARS, register_greeting)) as session:
            session.execute("pre-script", 'out = greeting.hello("lua")')
            assert session.get_global("out") == "hello lua"

    def test_failing_registrar_closes_session(self):
        released = []

        def register_resource(session):
            session.add_closer(lambda: released.append(True))

        def broken(session):
            raise ValueError("cannot register")

        with pytest.raises(ValueError):
            ScriptSession((register_resource, broken))
        assert released == [True]

    def test_bind_and_read(self, session):
        session.bind("request", {"headers": {"a": "1"}})
        session.execute("pre-script", 'copy = request:get("headers"):get("a")')
        assert session.get_global("copy") == "1"
        assert session.read("request") == {"headers": {"a": "1"}}

    def test_bind_none_is_nil(self, session):
        session.bind("nothing", None)
        session.execute("pre-script", "is_nil = nothing == nil")
        assert session.get_global("is_nil") is True


@pytest.mark.unit
class TestSandbox:
    def test_dangerous_globals_are_removed(self, session):
        session.execute(
            "pre-script",
            "has_os = os ~= nil\nhas_io = io ~= nil\nhas_python = python ~= nil\nhas_require = require ~= nil",
        )
        assert session.get_global("has_os") is False
        assert session.get_global("has_io") is False
        assert session.get_global("has_python") is False
        assert session.get_global("has_require") is False

    def test_safe_libraries_stay(self, session):
        session.execute("pre-script", 'n = string.upper("a") .. math.floor(1.5) .. #table.concat({"x"})')
        assert session.get_global("n") == "A11"

    def test_allow_open_libs(self):
        with ScriptSession(CORE_REGISTRARS, allow_open_libs=True) as session:
            session.execute("pre-script", "has_os = os ~= nil\nhas_python = python ~= nil")
            assert session.get_global("has_os") is True
            assert session.get_global("has_python") is False


@pytest.mark.unit
class TestSources:
    def test_sources_share_state(self, session, loader_factory):
        loader = loader_factory(
            {
                "lib.lua": "function double(x)\n  return x * 2\nend\n",
                "main.lua": "result = double(21)\n",
            }
        )
        session.run_sources(["lib.lua", "main.lua"], loader)
        assert session.get_global("result") == 42

    def test_unknown_source(self, session, loader_factory):
        with pytest.raises(UnknownSourceError) as exc_info:
            session.run_sources(["missing.lua"], loader_factory({}))
        assert str(exc_info.value) == "lua: unable to load required source missing.lua"

    def test_stops_at_first_failure(self, session, loader_factory):
        loader = loader_factory(
            {
                "a.lua": "first = true\n",
                "b.lua": "error('stop here')\n",
                "c.lua": "third = true\n",
            }
        )
        with pytest.raises(PositionedFault) as exc_info:
            session.run_sources(["a.lua", "b.lua", "c.lua"], loader)
        assert exc_info.value.file == "b.lua"
        assert exc_info.value.line == 1
        assert session.get_global("first") is True
        assert session.get_global("third") is None

    def test_line_numbers_are_global(self, session, loader_factory):
        session.run_sources(["a.lua"], loader_factory({"a.lua": "x = 1\ny = 2\n\n\n"}))
        assert session.source_map.total_lines == 2
        with pytest.raises(PositionedFault) as exc_info:
            session.execute("pre-script", "z = 3\nerror('late')")
        assert exc_info.value.file == "pre-script"
        assert exc_info.value.line == 2
        assert session.source_map.total_lines == 4


@pytest.mark.unit
class TestLifecycle:
    def test_close_is_idempotent(self):
        session = ScriptSession(CORE_REGISTRARS)
        session.close()
        session.close()
        assert session.closed

    def test_closers_run_in_reverse(self):
        order = []
        session = ScriptSession(CORE_REGISTRARS)
        session.add_closer(lambda: order.append("first"))
        session.add_closer(lambda: order.append("second"))
        session.close()
        assert order == ["second", "first"]

    def test_closer_failure_does_not_stop_others(self):
        order = []

        def broken():
            raise RuntimeError("boom")

        session = ScriptSession(CORE_REGISTRARS)
        session.add_closer(lambda: order.append("first"))
        session.add_closer(broken)
        session.close()
        assert order == ["first"]

    def test_closed_on_error_path(self):
        released = []
        with pytest.raises(PositionedFault):
            with ScriptSession(CORE_REGISTRARS) as session:
                session.add_closer(lambda: released.append(True))
                session.execute("pre-script", "error('fail')")
        assert released == [True]
        assert session.closed

    def test_closed_session_rejects_use(self):
        session = ScriptSession(CORE_REGISTRARS)
        session.close()
        with pytest.raises(RuntimeError, match="closed"):
            session.execute("pre-script", "x = 1")

    def test_closed_session_hides_runtime(self):
        session = ScriptSession(CORE_REGISTRARS)
        session.close()
        with pytest.raises(RuntimeError, match="closed"):
            session.lua

    def test_confined_to_creating_thread(self, session):
        errors = []

        def use():
            try:
                session.execute("pre-script", "x = 1")
            except RuntimeError as e:
                errors.append(str(e))

        worker = threading.Thread(target=use)
        worker.start()
        worker.join()
        assert len(errors) == 1
        assert "thread" in errors[0]
