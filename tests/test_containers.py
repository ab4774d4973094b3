"""Tests for luaTable / luaList semantics"""
import pytest

from luagate.scripting.containers import List, Table
from luagate.scripting.errors import (
    ArgumentError,
    HTTPResponseError,
    NamedHTTPResponseError,
    PositionedFault,
)
from luagate.scripting.values import NULL


@pytest.mark.unit
class TestList:
    def test_sparse_growth_pads_with_null(self):
        lst = List.new()
        lst.set(0, "foo")
        lst.set(2, "bar")
        assert lst.len() == 3
        assert lst.get(0) == "foo"
        assert lst.get(1) is NULL
        assert lst.get(2) == "bar"
        assert lst.data == ["foo", None, "bar"]

    def test_get_out_of_range_is_absent(self):
        lst = List(["a"])
        assert lst.get(1) is None
        assert lst.get(-1) is None

    def test_negative_set_is_ignored(self):
        lst = List(["a"])
        lst.set(-1, "b")
        assert lst.data == ["a"]

    def test_del_shifts_left(self):
        lst = List(["a", "b", "c"])
        getattr(lst, "del")(1)
        assert lst.data == ["a", "c"]
        assert lst.len() == 2

    def test_del_out_of_range_is_noop(self):
        lst = List(["a"])
        lst.delete(5)
        lst.delete(-1)
        assert lst.data == ["a"]

    def test_float_index_is_truncated(self):
        lst = List(["a", "b"])
        assert lst.get(1.0) == "b"

    def test_wrong_arity(self):
        with pytest.raises(ArgumentError):
            List().get()
        with pytest.raises(ArgumentError):
            List().set(0)

    def test_index_must_be_a_number(self):
        with pytest.raises(ArgumentError):
            List().get("0")


@pytest.mark.unit
class TestTable:
    def test_set_get(self):
        t = Table.new()
        t.set("a", 1)
        assert t.get("a") == 1
        assert t.get("missing") is None

    def test_del(self):
        t = Table.new()
        t.set("a", 1)
        getattr(t, "del")("a")
        assert t.keyExists("a") is False
        assert "a" not in t.keys().data

    def test_del_missing_key_is_noop(self):
        t = Table({"a": 1})
        t.delete("b")
        assert t.data == {"a": 1}

    def test_keys_are_sorted(self):
        t = Table({"b": 1, "c": 2, "a": 3})
        keys = t.keys()
        assert isinstance(keys, List)
        assert keys.data == ["a", "b", "c"]
        assert t.len() == 3

    def test_null_value_is_present(self):
        t = Table({"a": None})
        assert t.key_exists("a") is True
        assert t.get("a") is NULL

    def test_numeric_keys_are_rendered_as_text(self):
        t = Table()
        t.set(1, "one")
        t.set(2.0, "two")
        assert t.data == {"1": "one", "2": "two"}

    def test_integral_floats_are_stored_as_ints(self):
        t = Table()
        t.set("n", 2.0)
        t.set("f", 2.5)
        assert t.data["n"] == 2 and isinstance(t.data["n"], int)
        assert t.data["f"] == 2.5

    def test_null_stores_none(self):
        t = Table()
        t.set("a", NULL)
        assert t.data == {"a": None}

    def test_wrong_arity(self):
        with pytest.raises(ArgumentError):
            Table().set("a")
        with pytest.raises(ArgumentError):
            Table().key_exists()

    def test_http_errors_are_projected(self):
        t = Table(
            {
                "plain": HTTPResponseError(502, "bad gateway", "text/plain"),
                "named": NamedHTTPResponseError("users", 404, "{}", "application/json"),
            }
        )
        assert t.get("plain").data == {
            "http_status_code": 502,
            "http_body": "bad gateway",
            "http_body_encoding": "text/plain",
        }
        assert t.get("named").data == {
            "http_status_code": 404,
            "http_body": "{}",
            "http_body_encoding": "application/json",
            "name": "users",
        }

    def test_opaque_values_pass_through(self):
        handle = object()
        t = Table({"h": handle})
        assert t.get("h") is handle


@pytest.mark.unit
class TestAliasing:
    def test_child_mutation_is_visible_through_parent(self):
        parent = Table.new()
        parent.set("child", List.new())
        child = parent.get("child")
        child.set(0, "z")
        assert parent.get("child").get(0) == "z"

    def test_child_handle_is_new_but_shares_storage(self):
        storage = {"child": {"a": 1}}
        parent = Table(storage)
        first = parent.get("child")
        second = parent.get("child")
        assert first is not second
        assert first.data is second.data is storage["child"]

    def test_stored_container_is_not_copied(self):
        parent = Table()
        child = List(["a"])
        parent.set("child", child)
        child.set(1, "b")
        assert parent.get("child").data == ["a", "b"]

    def test_growth_through_child_is_visible(self):
        parent = List([[]])
        child = parent.get(0)
        child.set(5, "x")
        assert parent.get(0).len() == 6

    def test_reassigning_parent_does_not_affect_old_handle(self):
        parent = Table()
        parent.set("child", List(["old"]))
        old = parent.get("child")
        parent.set("child", List())
        old.set(1, "still mine")
        assert parent.get("child").len() == 0
        assert old.data == ["old", "still mine"]


@pytest.mark.unit
class TestContainersFromLua:
    def test_list_growth(self, session):
        session.execute(
            "pre-script",
            "\n".join(
                [
                    "local l = luaList.new()",
                    'l:set(0, "foo")',
                    'l:set(2, "bar")',
                    "size = l:len()",
                    "first = l:get(0)",
                    "hole = l:get(1)",
                    "last = l:get(2)",
                    "beyond = l:get(3) == nil",
                ]
            ),
        )
        assert session.get_global("size") == 3
        assert session.get_global("first") == "foo"
        assert session.get_global("hole") is NULL
        assert session.get_global("last") == "bar"
        assert session.get_global("beyond") is True

    def test_table_del_and_keys(self, session):
        session.execute(
            "pre-script",
            "\n".join(
                [
                    "local t = luaTable.new()",
                    't:set("b", 2)',
                    't:set("a", 1)',
                    't:del("a")',
                    'exists = t:keyExists("a")',
                    "keys = t:keys()",
                ]
            ),
        )
        assert session.get_global("exists") is False
        assert session.read("keys") == ["b"]

    def test_aliasing(self, session):
        session.execute(
            "pre-script",
            "\n".join(
                [
                    "local p = luaTable.new()",
                    'p:set("child", luaList.new())',
                    'local c = p:get("child")',
                    'c:set(0, "z")',
                    'result = p:get("child"):get(0)',
                ]
            ),
        )
        assert session.get_global("result") == "z"

    def test_native_table_value(self, session):
        session.execute(
            "pre-script",
            'box = luaTable.new()\nbox:set("cfg", {retries = 3, hosts = {["0"] = "a", ["1"] = "b"}})',
        )
        assert session.get_global("box").data == {"cfg": {"retries": 3, "hosts": ["a", "b"]}}

    def test_luanil_is_storable(self, session):
        session.execute("pre-script", 'box = luaTable.new()\nbox:set("gone", luaNil.new())')
        assert session.get_global("box").data == {"gone": None}

    def test_functions_cannot_be_stored(self, session):
        with pytest.raises(PositionedFault) as exc_info:
            session.execute(
                "pre-script", "local t = luaTable.new()\nt:set('f', function() end)"
            )
        assert "unsupported value type: function" in str(exc_info.value)
