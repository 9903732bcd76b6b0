"""Python as the host language of templates.

Expressions, patterns and closure bodies are handed over as source strings and
compiled on first use. Compiled code is cached per source string, so a
template rendered many times compiles each fragment once.
"""

from __future__ import annotations

import builtins
import functools
import io
import keyword
import logging
import textwrap
import tokenize
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import ExpressionEvaluationError, FormatSpecError, TemplateError
from .helpers import HELPERS

logger = logging.getLogger(__name__)

MATCH_FUNCTION = "__xfmt_match__"
MATCH_SUBJECT = "__xfmt_subject__"
OPEN_BRACKETS = frozenset("([{")
CLOSE_BRACKETS = frozenset(")]}")


@functools.lru_cache(maxsize=1024)
def compile_expression(source: str):
    # Parenthesized so expressions may span lines.
    return compile("(\n" + source + "\n)", "<expression>", "eval")


def split_guard(pattern: str) -> Tuple[str, Optional[str]]:
    """Split ``pattern if guard`` at the first ``if`` outside brackets and strings."""
    lines = io.StringIO(pattern).readlines()
    depth = 0
    for tok in tokenize.generate_tokens(io.StringIO(pattern).readline):
        if tok.type == tokenize.OP and tok.string in OPEN_BRACKETS:
            depth += 1
        elif tok.type == tokenize.OP and tok.string in CLOSE_BRACKETS:
            depth -= 1
        elif tok.type == tokenize.NAME and tok.string == "if" and depth == 0:
            row, col = tok.start
            offset = sum(len(line) for line in lines[: row - 1]) + col
            return pattern[:offset], pattern[offset + 2 :]
    return pattern, None


@functools.lru_cache(maxsize=1024)
def compile_pattern(pattern: str):
    # Pattern and guard are parenthesized so both may span lines.
    pattern, guard = split_guard(pattern)
    clause = f"(\n{pattern}\n)"
    if guard is not None:
        clause += f" if (\n{guard}\n)"
    code = (
        f"def {MATCH_FUNCTION}({MATCH_SUBJECT}):\n"
        f"    match {MATCH_SUBJECT}:\n"
        f"        case {clause}:\n"
        f"            return locals()\n"
        f"    return None\n"
    )
    return compile(code, "<pattern>", "exec")


@functools.lru_cache(maxsize=512)
def compile_block(source: str):
    return compile(normalize_block(source), "<closure>", "exec")


def normalize_block(source: str) -> str:
    """Dedent a closure body lifted out of the surrounding template.

    Code written on the same line as the opening brace is stripped on its own;
    the remaining lines are dedented together, then indented one level if
    that first line opens a block.
    """
    lines = source.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return "pass"
    head = lines[0].strip()
    rest = textwrap.dedent("\n".join(lines[1:]))
    if not head:
        return rest.strip("\n") or "pass"
    if not rest.strip():
        return head
    if head.endswith(":"):
        rest = textwrap.indent(rest, "    ")
    return head + "\n" + rest.strip("\n")


def is_capture(pattern: str) -> bool:
    return pattern.isidentifier() and not keyword.iskeyword(pattern) and pattern != "_"


def format_value(value: Any, spec: Optional[str] = None) -> str:
    try:
        return format(value, spec or "")
    except (ValueError, TypeError) as exc:
        raise FormatSpecError(
            f"Cannot format {type(value).__name__} with spec {spec!r}: {exc}"
        ) from exc


class Evaluator:
    """Evaluate host fragments against a namespace of variables.

    The namespace seen by a fragment is, in increasing priority: Python
    builtins, the template helpers, `globals` and the render variables.
    """

    def __init__(self, globals: Optional[Dict[str, Any]] = None) -> None:
        self.globals = dict(globals or {})

    def namespace(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        scope: Dict[str, Any] = {"__builtins__": builtins}
        scope.update(HELPERS)
        scope.update(self.globals)
        scope.update(variables)
        return scope

    def evaluate(self, source: str, variables: Dict[str, Any]) -> Any:
        try:
            return eval(compile_expression(source), self.namespace(variables))
        except TemplateError:
            raise
        except Exception as exc:
            raise self._failure("evaluate expression", source, exc) from exc

    def test(self, source: str, variables: Dict[str, Any]) -> bool:
        value = self.evaluate(source, variables)
        try:
            return bool(value)
        except Exception as exc:
            raise self._failure("test condition", source, exc) from exc

    def iterate(self, source: str, variables: Dict[str, Any]) -> Iterator[Any]:
        iterable = self.evaluate(source, variables)
        try:
            items = iter(iterable)
        except TypeError as exc:
            raise self._failure("iterate over", source, exc) from exc
        while True:
            try:
                item = next(items)
            except StopIteration:
                return
            except TemplateError:
                raise
            except Exception as exc:
                raise self._failure("iterate over", source, exc) from exc
            yield item

    def match(self, pattern: str, value: Any, variables: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the names bound by matching `value`, or None on no match."""
        pattern = pattern.strip()
        if pattern == "_":
            return {}
        if is_capture(pattern):
            return {pattern: value}
        scope = self.namespace(variables)
        try:
            exec(compile_pattern(pattern), scope)
            bindings = scope[MATCH_FUNCTION](value)
        except TemplateError:
            raise
        except Exception as exc:
            raise self._failure("match pattern", pattern, exc) from exc
        if bindings is None:
            return None
        bindings.pop(MATCH_SUBJECT, None)
        return bindings

    def bind(self, pattern: str, value: Any, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Like match(), but the pattern must match."""
        bindings = self.match(pattern, value, variables)
        if bindings is None:
            raise ExpressionEvaluationError(
                f"Pattern {pattern.strip()!r} does not match value of type {type(value).__name__}"
            )
        return bindings

    def execute(self, source: str, variables: Dict[str, Any]) -> None:
        try:
            exec(compile_block(source), self.namespace(variables))
        except TemplateError:
            raise
        except Exception as exc:
            raise self._failure("execute closure", source, exc) from exc

    def format(self, value: Any, spec: Optional[str] = None) -> str:
        return format_value(value, spec)

    def _failure(self, action: str, source: str, exc: Exception) -> ExpressionEvaluationError:
        logger.debug("Failed to %s %r", action, source, exc_info=exc)
        snippet = " ".join(source.split())
        return ExpressionEvaluationError(f"Failed to {action} {snippet!r}: {type(exc).__name__}: {exc}")


__all__ = [
    "Evaluator",
    "compile_expression",
    "compile_pattern",
    "split_guard",
    "compile_block",
    "normalize_block",
    "format_value",
]
