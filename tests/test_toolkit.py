"""Tests for the toolkit: definitions, the registry and the invoker."""

from __future__ import annotations

import re

import pytest

from quarry.cancellation import CancellationToken
from quarry.exceptions import DuplicateToolError, RunCancelledError, ToolNotFoundError
from quarry.models.content import BinarySegment, TextSegment
from quarry.toolkit import (
    ToolDefinition,
    ToolDescriptor,
    ToolInvoker,
    ToolRegistry,
    normalize_result,
)
from tests.conftest import echo_tool


def _tool(name="fetch", handler=None, schema=None, pattern=None) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description="Fetch a thing",
        parameters=schema or {
            "type": "object",
            "properties": {"url": {"type": "string"}},
            "required": ["url"],
        },
        handler=handler or (lambda args, token: f"fetched {args['url']}"),
        side_effect_pattern=pattern,
    )


class TestToolDescriptor:
    def test_to_openai(self):
        d = _tool().describe()
        out = d.to_openai()
        assert out["type"] == "function"
        assert out["function"]["name"] == "fetch"
        assert out["function"]["parameters"]["required"] == ["url"]

    def test_to_anthropic(self):
        out = _tool().describe().to_anthropic()
        assert out == {
            "name": "fetch",
            "description": "Fetch a thing",
            "input_schema": _tool().parameters,
        }

    def test_default_schema_is_empty_object(self):
        d = ToolDescriptor(name="x", description="y")
        assert d.input_schema == {"type": "object", "properties": {}}


class TestToolValidation:
    def test_valid_input(self):
        assert _tool().validate({"url": "http://x"}) is None

    def test_missing_required(self):
        problem = _tool().validate({})
        assert problem is not None
        assert "url" in problem

    def test_wrong_type_reports_path(self):
        problem = _tool().validate({"url": 5})
        assert problem.startswith("url: ")

    def test_non_object_arguments(self):
        assert _tool().validate(["url"]) == "expected an object, got list"


class TestSideEffectDirs:
    def test_named_group(self):
        tool = _tool(pattern=re.compile(r"^Saved to: (?P<dir>.+?)/?$", re.M))
        text = "Saved to: /w/shots/a/\nother\nSaved to: /w/shots/b"
        assert tool.side_effect_dirs(text) == {"/w/shots/a", "/w/shots/b"}

    def test_first_group_when_unnamed(self):
        tool = _tool(pattern=re.compile(r"dir=(\S+)"))
        assert tool.side_effect_dirs("dir=/tmp/x/ dir=/tmp/x") == {"/tmp/x"}

    def test_no_pattern(self):
        assert _tool().side_effect_dirs("Saved to: /w") == set()


class TestToolRegistry:
    def test_lookup_and_order(self):
        reg = ToolRegistry([_tool("a"), _tool("b")])
        assert reg.names() == ["a", "b"]
        assert "a" in reg
        assert len(reg) == 2
        assert [d.name for d in reg.descriptors()] == ["a", "b"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(DuplicateToolError) as exc_info:
            ToolRegistry([_tool("a"), _tool("a")])
        assert exc_info.value.tool_name == "a"

    def test_require_missing(self):
        reg = ToolRegistry([_tool("a")])
        with pytest.raises(ToolNotFoundError, match="Unknown tool: zzz"):
            reg.require("zzz")

    def test_get_missing_returns_none(self):
        assert ToolRegistry().get("zzz") is None

    def test_registry_is_read_only(self):
        reg = ToolRegistry([_tool("a")])
        with pytest.raises(TypeError):
            reg._tools["b"] = _tool("b")  # type: ignore[index]
        assert not hasattr(reg, "register")


class TestNormalizeResult:
    def test_string(self):
        assert normalize_result("hi") == [TextSegment("hi")]

    def test_none(self):
        assert normalize_result(None) == [TextSegment("")]

    def test_single_segment(self):
        seg = BinarySegment(b"x", "image/png")
        assert normalize_result(seg) == [seg]

    def test_mixed_list(self):
        seg = TextSegment("a")
        assert normalize_result([seg, 42]) == [seg, TextSegment("42")]

    def test_empty_list(self):
        assert normalize_result([]) == [TextSegment("")]

    def test_other_object(self):
        assert normalize_result({"k": 1}) == [TextSegment("{'k': 1}")]


class TestToolInvoker:
    def test_invoke_success(self):
        invoker = ToolInvoker(ToolRegistry([_tool()]))
        assert invoker.invoke("fetch", {"url": "u"}) == [TextSegment("fetched u")]

    def test_unknown_tool(self):
        invoker = ToolInvoker(ToolRegistry([_tool()]))
        assert invoker.invoke("nope", {}) == [TextSegment("Unknown tool: nope")]

    def test_invalid_input_skips_handler(self):
        calls = []
        tool = _tool(handler=lambda args, token: calls.append(args))
        result = ToolInvoker(ToolRegistry([tool])).invoke("fetch", {"url": 1})
        assert len(result) == 1
        assert result[0].text.startswith("Invalid input for fetch: ")
        assert calls == []

    def test_handler_exception_becomes_error_text(self):
        def boom(args, token):
            raise ConnectionError("network error")

        result = ToolInvoker(ToolRegistry([_tool(handler=boom)])).invoke("fetch", {"url": "u"})
        assert result == [TextSegment("Error: network error")]

    def test_cancelled_handler(self):
        def slow(args, token):
            token.raise_if_cancelled("fetch")
            return "unreachable"

        token = CancellationToken()
        token.cancel()
        result = ToolInvoker(ToolRegistry([_tool(handler=slow)])).invoke("fetch", {"url": "u"}, token)
        assert result == [TextSegment("Cancelled: fetch did not complete")]

    def test_handler_receives_token(self):
        seen = []
        tool = _tool(handler=lambda args, token: seen.append(token) or "ok")
        token = CancellationToken()
        ToolInvoker(ToolRegistry([tool])).invoke("fetch", {"url": "u"}, token)
        assert seen == [token]

    def test_handler_gets_a_copy_of_arguments(self):
        tool = echo_tool()
        args = {"query": "x"}
        ToolInvoker(ToolRegistry([tool])).invoke("search", args)
        assert tool.handler.seen == [args]
        assert tool.handler.seen[0] is not args

    def test_available_tools(self):
        invoker = ToolInvoker(ToolRegistry([_tool("a"), _tool("b")]))
        assert invoker.available_tools() == ["a", "b"]

    def test_run_cancelled_error_message(self):
        assert str(RunCancelledError("fetch")) == "Run cancelled (fetch)"
