from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any

import pytest

from xfmt.errors import ExpressionEvaluationError, FormatSpecError
from xfmt.evaluator import (
    Evaluator,
    compile_expression,
    format_value,
    normalize_block,
    split_guard,
)


@dataclass
class Point:
    x: Any
    y: Any


def test_evaluate_sees_variables_globals_and_helpers() -> None:
    ev = Evaluator(globals={"scale": 10, "x": "global"})
    assert ev.evaluate("a * scale", {"a": 2}) == 20
    assert ev.evaluate("x", {"x": "local"}) == "local"
    assert ev.evaluate("csv(range(3))", {}) == "0,1,2"
    assert ev.evaluate("len('abc')", {}) == 3


def test_evaluate_multiline_expression() -> None:
    assert Evaluator().evaluate("1 +\n  2", {}) == 3


def test_compiled_expressions_are_cached() -> None:
    assert compile_expression("a + b") is compile_expression("a + b")


def test_evaluate_failure_is_wrapped() -> None:
    with pytest.raises(ExpressionEvaluationError, match="NameError") as info:
        Evaluator().evaluate("missing + 1", {})
    assert isinstance(info.value.__cause__, NameError)


def test_evaluate_syntax_error_is_wrapped() -> None:
    with pytest.raises(ExpressionEvaluationError, match="SyntaxError"):
        Evaluator().evaluate("1 +", {})


def test_test_uses_truthiness() -> None:
    ev = Evaluator()
    assert ev.test("items", {"items": [1]})
    assert not ev.test("items", {"items": []})


def test_match_capture_and_wildcard() -> None:
    ev = Evaluator()
    assert ev.match("item", 5, {}) == {"item": 5}
    assert ev.match("_", 5, {}) == {}


def test_match_structural_patterns() -> None:
    ev = Evaluator()
    scope = {"Point": Point}
    assert ev.match("Point(x, y)", Point(1, 2), scope) == {"x": 1, "y": 2}
    assert ev.match("Point(x=0)", Point(1, 2), scope) is None
    assert ev.match("(a, [b, *rest])", (1, [2, 3, 4]), {}) == {"a": 1, "b": 2, "rest": [3, 4]}
    assert ev.match("{'k': v}", {"k": "v", "other": 1}, {}) == {"v": "v"}
    assert ev.match("None", None, {}) == {}
    assert ev.match("None", 0, {}) is None


def test_match_guard_sees_variables() -> None:
    ev = Evaluator()
    assert ev.match("n if n > limit", 5, {"limit": 3}) == {"n": 5}
    assert ev.match("n if n > limit", 2, {"limit": 3}) is None


def test_match_multiline_pattern() -> None:
    assert Evaluator().match("(a,\n b)", (1, 2), {}) == {"a": 1, "b": 2}


def test_bind_requires_a_match() -> None:
    ev = Evaluator()
    assert ev.bind("(a, b)", (1, 2), {}) == {"a": 1, "b": 2}
    with pytest.raises(ExpressionEvaluationError, match="does not match"):
        ev.bind("(a, b)", 3, {})


def test_iterate_wraps_errors() -> None:
    def broken():
        yield 1
        raise KeyError("gone")

    ev = Evaluator()
    assert list(ev.iterate("range(3)", {})) == [0, 1, 2]
    with pytest.raises(ExpressionEvaluationError, match="iterate"):
        list(ev.iterate("5", {}))
    items = ev.iterate("broken()", {"broken": broken})
    assert next(items) == 1
    with pytest.raises(ExpressionEvaluationError, match="KeyError"):
        next(items)


def test_execute_runs_statements() -> None:
    out = io.StringIO()
    Evaluator().execute(
        "\n    for i in range(3):\n        out.write(str(i))\n",
        {"out": out},
    )
    assert out.getvalue() == "012"


def test_execute_failure_is_wrapped() -> None:
    with pytest.raises(ExpressionEvaluationError, match="ZeroDivisionError"):
        Evaluator().execute("1 / 0", {})


def test_normalize_block() -> None:
    assert normalize_block(" f.write(1) ") == "f.write(1)"
    assert normalize_block("\n    a = 1\n    b = 2\n") == "a = 1\nb = 2"
    assert normalize_block(" a = 1\n    b = 2\n") == "a = 1\nb = 2"
    assert normalize_block(" if x:\n        y()\n") == "if x:\n    y()"
    assert normalize_block("   \n  ") == "pass"


def test_format_value() -> None:
    assert format_value(42, "#x") == "0x2a"
    assert format_value(3.14159, ".2f") == "3.14"
    assert format_value("ab", ">4") == "  ab"
    assert format_value(None) == "None"
    assert Evaluator().format(7, "03") == "007"


def test_format_value_rejects_unknown_spec() -> None:
    with pytest.raises(FormatSpecError, match="spec 'd'") as info:
        format_value("abc", "d")
    assert isinstance(info.value, ValueError)


def test_match_multiline_string_pattern_is_kept_verbatim() -> None:
    ev = Evaluator()
    assert ev.match('"""a\nb"""', "a\nb", {}) == {}
    assert ev.match('"""a\nb"""', "a b", {}) is None


def test_match_guard_on_its_own_line() -> None:
    ev = Evaluator()
    assert ev.match("n\nif n > 1", 5, {}) == {"n": 5}
    assert ev.match("n\nif n > 1", 0, {}) is None


def test_split_guard_ignores_if_in_strings_and_brackets() -> None:
    assert split_guard("Point(x=1) if x") == ("Point(x=1) ", " x")
    assert split_guard("'if' | 'else'") == ("'if' | 'else'", None)
    assert split_guard("{'k': v} if v") == ("{'k': v} ", " v")
    ev = Evaluator()
    assert ev.match("'if' | 'else'", "if", {}) == {}
    assert ev.match("{'k': v} if v", {"k": 0}, {}) is None


def test_unbalanced_pattern_is_an_evaluation_error() -> None:
    with pytest.raises(ExpressionEvaluationError, match="match pattern"):
        Evaluator().match("(a, b", (1, 2), {})
