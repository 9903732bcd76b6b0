from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import ast
from .errors import ExpressionEvaluationError, FormatSpecError
from .escape import escape, escape_attr, escape_cdata, escape_comment
from .evaluator import Evaluator

logger = logging.getLogger(__name__)


class Writer:
    """Write-only view of the output handed to closure escapes."""

    __slots__ = ("_write",)

    def __init__(self, sink: Any) -> None:
        self._write = sink.write

    def write(self, text: Any) -> None:
        self._write(str(text))


@dataclass
class Context:
    sink: Any
    variables: Dict[str, Any]
    evaluator: Evaluator
    source: str = ""


@contextmanager
def located(ctx: Context, pos: int):
    """Attach the template location of `pos` to render errors raised inside."""
    try:
        yield
    except (ExpressionEvaluationError, FormatSpecError) as exc:
        if exc.pos is not None or not ctx.source:
            raise
        raise type(exc)(str(exc), pos, ctx.source) from exc.__cause__


def generate(
    document: ast.Document,
    sink: Any,
    variables: Optional[Dict[str, Any]] = None,
    evaluator: Optional[Evaluator] = None,
) -> None:
    ctx = Context(sink, dict(variables or {}), evaluator or Evaluator(), document.source)
    logger.debug("Rendering %d top-level nodes", len(document.nodes))
    gen_nodes(document.nodes, ctx)
    logger.debug("Rendering finished")


def gen_nodes(nodes: List[ast.Node], ctx: Context, bindings: Optional[Dict[str, Any]] = None) -> None:
    new_vars = dict(ctx.variables)
    if bindings:
        new_vars.update(bindings)
    scope = Context(ctx.sink, new_vars, ctx.evaluator, ctx.source)
    for node in nodes:
        gen_node(node, scope)


def gen_node(node: ast.Node, ctx: Context) -> None:
    write = ctx.sink.write
    if isinstance(node, ast.TextLiteral):
        write(node.value)
        return
    if isinstance(node, ast.ExpressionValue):
        write(render_value(node, ctx))
        return
    if isinstance(node, ast.Element):
        gen_element(node, ctx)
        return
    if isinstance(node, ast.ClosureEscape):
        run_closure(node, ctx)
        return
    if isinstance(node, ast.Doctype):
        write(f"<!{node.payload}>")
        return
    if isinstance(node, ast.ProcessingInstruction):
        write(f"<?{node.payload}?>")
        return
    if isinstance(node, ast.Comment):
        write("<!-- " + escape_comment(raw_parts(node.parts, ctx)) + " -->")
        return
    if isinstance(node, ast.CData):
        write("<![CDATA[" + escape_cdata(raw_parts(node.parts, ctx)) + "]]>")
        return
    if isinstance(node, ast.Let):
        with located(ctx, node.pos):
            value = ctx.evaluator.evaluate(node.value, ctx.variables)
            ctx.variables.update(ctx.evaluator.bind(node.pattern, value, ctx.variables))
        return
    if isinstance(node, ast.If):
        gen_if(node, ctx)
        return
    if isinstance(node, ast.Match):
        with located(ctx, node.pos):
            value = ctx.evaluator.evaluate(node.scrutinee, ctx.variables)
            for arm in node.arms:
                bindings = ctx.evaluator.match(arm.pattern, value, ctx.variables)
                if bindings is not None:
                    gen_nodes(arm.body, ctx, bindings)
                    return
        return
    if isinstance(node, ast.For):
        # Errors raised by the body are located by the body's own nodes.
        with located(ctx, node.pos):
            for item in ctx.evaluator.iterate(node.iterable, ctx.variables):
                gen_nodes(node.body, ctx, ctx.evaluator.bind(node.pattern, item, ctx.variables))
        return
    raise RuntimeError(f"Unsupported node {type(node).__name__}")


def gen_if(node: ast.If, ctx: Context) -> None:
    evaluator = ctx.evaluator
    for branch in node.branches:
        with located(ctx, branch.pos):
            if branch.pattern is None:
                bindings = {} if evaluator.test(branch.condition, ctx.variables) else None
            else:
                value = evaluator.evaluate(branch.condition, ctx.variables)
                bindings = evaluator.match(branch.pattern, value, ctx.variables)
        if bindings is not None:
            gen_nodes(branch.body, ctx, bindings)
            return
    if node.orelse is not None:
        gen_nodes(node.orelse, ctx)


def gen_element(node: ast.Element, ctx: Context) -> None:
    write = ctx.sink.write
    write(f"<{node.name}")
    for attr in node.attrs:
        write(f" {attr.name}")
        if attr.value is not None:
            write('="')
            gen_attr_value(attr.value, ctx)
            write('"')
    if node.self_closing:
        write(" />")
        return
    write(">")
    gen_nodes(node.children, ctx)
    write(f"</{node.close_name or node.name}>")


def gen_attr_value(value: ast.AttrValue, ctx: Context) -> None:
    write = ctx.sink.write
    if isinstance(value, ast.TextLiteral):
        write(escape_attr(value.value))
    elif isinstance(value, ast.ExpressionValue):
        write(render_value(value, ctx))
    elif isinstance(value, ast.ConcatGroup):
        for part in value.parts:
            gen_attr_value(part, ctx)
    elif isinstance(value, ast.ConditionalList):
        for text, condition in value.items:
            with located(ctx, value.pos):
                enabled = ctx.evaluator.test(condition, ctx.variables)
            if enabled:
                write(escape_attr(text) + " ")
    elif isinstance(value, ast.ClosureEscape):
        run_closure(value, ctx)
    else:
        raise RuntimeError(f"Unsupported attribute value {type(value).__name__}")


def render_value(node: ast.ExpressionValue, ctx: Context) -> str:
    return escape(node.context, format_expression(node, ctx))


def format_expression(node: ast.ExpressionValue, ctx: Context) -> str:
    with located(ctx, node.pos):
        value = ctx.evaluator.evaluate(node.source, ctx.variables)
        return ctx.evaluator.format(value, node.spec)


def raw_parts(parts: List[Any], ctx: Context) -> str:
    """Concatenate literal and formatted expression parts, unescaped."""
    out = []
    for part in parts:
        if isinstance(part, ast.TextLiteral):
            out.append(part.value)
        else:
            out.append(format_expression(part, ctx))
    return "".join(out)


def run_closure(node: ast.ClosureEscape, ctx: Context) -> None:
    new_vars = dict(ctx.variables)
    new_vars[node.binding] = Writer(ctx.sink)
    with located(ctx, node.pos):
        ctx.evaluator.execute(node.body, new_vars)


__all__ = ["Writer", "Context", "generate"]
