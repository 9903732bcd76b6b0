"""Attribute parsing.

The token after ``name =`` picks the value form; each form opens with a
different delimiter:

* ``"text"`` or ``42``            literal
* ``{expr}`` / ``{expr;spec}``    expression
* ``["part": cond, ...]``         conditional list
* ``("part" {expr} ...)``         concatenation group
* ``|f| {body}`` / ``|f| stmt;``  closure escape

Control flow is not part of this grammar, so it can never appear inside an
attribute value.
"""

from __future__ import annotations

from typing import List, Union

from . import ast
from .escape import ATTRIBUTE
from .lexer import Token, TokenStream


def parse_attribute(stream: TokenStream) -> ast.Attribute:
    name = stream.read_name()
    if not stream.at("PUNCT", "="):
        return ast.Attribute(name)
    stream.next()
    return ast.Attribute(name, parse_attribute_value(stream))


def parse_attribute_value(stream: TokenStream) -> ast.AttrValue:
    tok = stream.peek()
    if tok.kind in ("STRING", "NUMBER"):
        stream.next()
        return ast.TextLiteral(tok.value)
    if tok.kind == "BRACE":
        stream.next()
        return expression_value(stream, tok, ATTRIBUTE)
    if tok.kind == "BRACKET":
        stream.next()
        return _parse_conditional_list(stream, tok)
    if tok.kind == "PAREN":
        stream.next()
        return _parse_concat_group(stream, tok)
    if tok.kind == "PUNCT" and tok.value == "|":
        return parse_closure(stream)
    raise stream.error(f"Unrecognized attribute value starting with {tok.value or 'end of input'!r}", tok)


def expression_value(stream: TokenStream, tok: Token, context: str) -> ast.ExpressionValue:
    source, spec = stream.expression(tok)
    return ast.ExpressionValue(source, spec, context, pos=tok.pos)


def _parse_conditional_list(stream: TokenStream, tok: Token) -> ast.ConditionalList:
    inner = stream.group(tok)
    items = []
    while not inner.at_end():
        part = inner.next()
        if part.kind not in ("STRING", "NUMBER"):
            raise inner.error("Expected a literal in conditional list", part)
        inner.expect("PUNCT", ":")
        cond = inner.take_until(
            lambda t: t.kind == "PUNCT" and t.value == ",", "condition", allow_end=True
        )
        if not cond:
            raise inner.error(f"Missing condition for {part.value!r}")
        items.append((part.value, inner.raw(cond)))
        if inner.at("PUNCT", ","):
            inner.next()
    return ast.ConditionalList(items, pos=tok.pos)


def _parse_concat_group(stream: TokenStream, tok: Token) -> ast.ConcatGroup:
    inner = stream.group(tok)
    parts: List[Union[ast.TextLiteral, ast.ExpressionValue]] = []
    while not inner.at_end():
        part = inner.next()
        if part.kind in ("STRING", "NUMBER"):
            parts.append(ast.TextLiteral(part.value))
        elif part.kind == "BRACE":
            parts.append(expression_value(inner, part, ATTRIBUTE))
        else:
            raise inner.error("Expected a literal or {expression} in attribute group", part)
    return ast.ConcatGroup(parts)


def parse_closure(stream: TokenStream) -> ast.ClosureEscape:
    start = stream.expect("PUNCT", "|")
    binding = stream.expect("IDENT").value
    stream.expect("PUNCT", "|")
    tok = stream.peek()
    if tok.kind == "BRACE":
        stream.next()
        body = tok.atom.inner
    else:
        stmt = stream.take_until(lambda t: t.kind == "PUNCT" and t.value == ";", "';' after closure")
        stream.next()
        body = stream.raw(stmt)
    if not body.strip():
        raise stream.error("Empty closure body", start)
    return ast.ClosureEscape(binding, body, pos=start.pos)
