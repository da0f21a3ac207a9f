"""Tests for ContextKey, LogContext and context resolution."""

import asyncio

from duolog.context import (
    ContextKey,
    LogContext,
    as_context_key,
    current_context,
    resolve_context,
)


class TestContextKey:
    def test_typed_key_differs_from_plain_string(self):
        """A ContextKey and a bare string with the same name never collide."""
        ctx = {ContextKey("id"): "typed", "id": "plain"}
        assert ctx[ContextKey("id")] == "typed"
        assert ctx["id"] == "plain"

    def test_equal_by_name(self):
        assert ContextKey("id") == ContextKey("id")
        assert hash(ContextKey("id")) == hash(ContextKey("id"))

    def test_str_is_name(self):
        assert str(ContextKey("request_id")) == "request_id"

    def test_as_context_key(self):
        key = ContextKey("a")
        assert as_context_key(key) is key
        assert as_context_key("a") == key


class TestResolveContext:
    def test_typed_key_preferred(self):
        ctx = {ContextKey("id"): "typed", "id": "plain"}
        assert resolve_context([ContextKey("id")], ctx) == [("id", "typed")]

    def test_plain_string_fallback(self):
        assert resolve_context([ContextKey("id")], {"id": "plain"}) == [
            ("id", "plain")
        ]

    def test_missing_and_none_skipped(self):
        """Verifies absent keys produce no placeholder attribute.

        Arrangement:
        1. Three declared keys: one present, one missing, one mapped to None.

        Action:
        Resolves the keys against the mapping.

        Assertion Strategy:
        Only the present key appears, with no placeholder for the others.
        """
        keys = [ContextKey("a"), ContextKey("missing"), ContextKey("none")]
        ctx = {"a": 1, "none": None}
        assert resolve_context(keys, ctx) == [("a", "1")]

    def test_declared_order_kept(self):
        keys = [ContextKey("z"), ContextKey("a")]
        assert resolve_context(keys, {"a": 1, "z": 2}) == [("z", "2"), ("a", "1")]

    def test_values_stringified(self):
        assert resolve_context([ContextKey("n")], {"n": 42}) == [("n", "42")]

    def test_defaults_to_ambient_context(self):
        with LogContext(user="alice"):
            assert resolve_context([ContextKey("user")], None) == [("user", "alice")]

    def test_no_context_resolves_nothing(self):
        assert resolve_context([ContextKey("user")], None) == []


class TestLogContext:
    def test_installs_and_restores(self):
        assert dict(current_context()) == {}
        with LogContext(a=1):
            assert dict(current_context()) == {"a": 1}
        assert dict(current_context()) == {}

    def test_mapping_and_kwargs(self):
        key = ContextKey("id")
        with LogContext({key: "x"}, user="bob"):
            ctx = current_context()
            assert ctx[key] == "x"
            assert ctx["user"] == "bob"

    def test_nested_contexts_merge_and_override(self):
        with LogContext(a=1, b=2):
            with LogContext(b=3, c=4):
                assert dict(current_context()) == {"a": 1, "b": 3, "c": 4}
            assert dict(current_context()) == {"a": 1, "b": 2}

    def test_restored_after_exception(self):
        try:
            with LogContext(a=1):
                raise ValueError("boom")
        except ValueError:
            pass
        assert dict(current_context()) == {}

    def test_task_isolation(self):
        async def task(name):
            with LogContext(task=name):
                await asyncio.sleep(0)
                return current_context()["task"]

        async def main():
            return await asyncio.gather(task("a"), task("b"))

        assert asyncio.run(main()) == ["a", "b"]
