from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from . import ast
from .attributes import expression_value, parse_attribute, parse_closure
from .escape import CDATA, COMMENT, TEXT
from .lexer import Token, TokenStream, tokenize
from .scanner import Atom

logger = logging.getLogger(__name__)


class Parser:
    def __init__(self, text: str, name: str = "<template>") -> None:
        self.text = text
        self.name = name

    def parse_document(self, atoms: Optional[Sequence[Atom]] = None) -> ast.Document:
        """Parse the template, or `atoms` already split from the same text."""
        stream = tokenize(self.text) if atoms is None else TokenStream(atoms, self.text)
        nodes = self.parse_nodes(stream)
        logger.debug("Parsed %s: %d top-level nodes", self.name, len(nodes))
        return ast.Document(nodes, self.text)

    def parse_nodes(self, stream: TokenStream, open_tok: Optional[Token] = None) -> List[ast.Node]:
        """Parse nodes until the end of the stream, or until a close tag when
        `open_tok` marks an element body."""
        nodes: List[ast.Node] = []
        while True:
            tok = stream.peek()
            if tok.kind == "EOF":
                if open_tok is not None:
                    raise stream.error("Unterminated element, missing closing tag", open_tok)
                return nodes
            if tok.kind == "CLOSE":
                if open_tok is not None:
                    return nodes
                name = stream.read_close_tag()
                nodes.append(ast.TextLiteral(f"</{name}>"))
                continue
            nodes.append(self.parse_node(stream))

    def parse_node(self, stream: TokenStream) -> ast.Node:
        tok = stream.peek()
        if tok.kind == "COMMENT":
            return self._parse_comment(stream)
        if tok.kind == "DECL":
            if self._is_cdata(stream.peek(1)):
                return self._parse_cdata(stream)
            return self._parse_doctype(stream)
        if tok.kind == "PI":
            return self._parse_pi(stream)
        if tok.kind == "LT":
            return self._parse_element(stream)
        if tok.kind in ("STRING", "NUMBER"):
            stream.next()
            return ast.TextLiteral(tok.value)
        if tok.kind == "BRACE":
            stream.next()
            return expression_value(stream, tok, TEXT)
        if tok.kind == "PUNCT" and tok.value == "|":
            return parse_closure(stream)
        if tok.kind == "KW":
            if tok.value == "if":
                return self._parse_if(stream)
            if tok.value == "match":
                return self._parse_match(stream)
            if tok.value == "for":
                return self._parse_for(stream)
            if tok.value == "let":
                return self._parse_let(stream)
            if tok.value == "else":
                raise stream.error("'else' without a preceding 'if'", tok)
        if tok.kind == "IDENT":
            raise stream.error(f"Unexpected bare word {tok.value!r}, text must be quoted", tok)
        raise stream.error(f"Unexpected token {tok.value!r}", tok)

    # Markup

    def _parse_element(self, stream: TokenStream) -> ast.Element:
        open_tok = stream.expect("LT")
        name = stream.read_name()
        attrs: List[ast.Attribute] = []
        while True:
            tok = stream.peek()
            if tok.kind == "GT":
                stream.next()
                break
            if tok.kind == "SELF_CLOSE":
                stream.next()
                return ast.Element(name, attrs, self_closing=True)
            if tok.kind == "EOF":
                raise stream.error(f"Unterminated tag <{name}", open_tok)
            attrs.append(parse_attribute(stream))
        children = self.parse_nodes(stream, open_tok=open_tok)
        close_name = stream.read_close_tag()
        return ast.Element(name, attrs, children=children, close_name=close_name)

    def _parse_comment(self, stream: TokenStream) -> ast.Comment:
        open_tok = stream.expect("COMMENT")
        parts = self._parse_payload(stream, COMMENT, lambda t: t.kind == "COMMENT_END")
        if not stream.at("COMMENT_END"):
            raise stream.error("Unterminated comment, missing '-->'", open_tok)
        stream.next()
        return ast.Comment(parts)

    @staticmethod
    def _is_cdata(tok: Token) -> bool:
        if tok.kind != "BRACKET" or tok.atom is None:
            return False
        children = tok.atom.children
        return (
            len(children) == 2
            and children[0].kind == "IDENT"
            and children[0].value == "CDATA"
            and children[1].kind == "GROUP"
            and children[1].value == "["
        )

    def _parse_cdata(self, stream: TokenStream) -> ast.CData:
        stream.expect("DECL")
        outer = stream.group(stream.expect("BRACKET"))
        outer.expect("IDENT", "CDATA")
        body_tok = outer.expect("BRACKET")
        stream.expect("GT")
        body = outer.group(body_tok)
        parts = self._parse_payload(body, CDATA, lambda t: False)
        return ast.CData(parts)

    def _parse_payload(self, stream, context, stop) -> List[Union[ast.TextLiteral, ast.ExpressionValue]]:
        parts: List[Union[ast.TextLiteral, ast.ExpressionValue]] = []
        while True:
            tok = stream.peek()
            if tok.kind == "EOF" or stop(tok):
                return parts
            stream.next()
            if tok.kind in ("STRING", "NUMBER"):
                parts.append(ast.TextLiteral(tok.value))
            elif tok.kind == "BRACE":
                parts.append(expression_value(stream, tok, context))
            else:
                raise stream.error(f"Expected a literal or {{expression}} in {context}", tok)

    def _parse_doctype(self, stream: TokenStream) -> ast.Doctype:
        open_tok = stream.expect("DECL")
        payload = stream.take_until(lambda t: t.kind == "GT", "'>' to close <!")
        stream.next()
        if not payload:
            raise stream.error("Empty declaration", open_tok)
        return ast.Doctype(stream.joined(payload))

    def _parse_pi(self, stream: TokenStream) -> ast.ProcessingInstruction:
        stream.expect("PI")
        payload = stream.take_until(lambda t: t.kind == "PI_END", "'?>' to close <?")
        stream.next()
        return ast.ProcessingInstruction(stream.joined(payload))

    # Control flow

    def _parse_block(self, stream: TokenStream) -> List[ast.Node]:
        tok = stream.expect("BRACE")
        return self.parse_nodes(stream.group(tok))

    def _parse_head(self, stream: TokenStream, what: str) -> str:
        """Collect the host expression between a keyword and its block."""
        start = stream.peek()
        tokens = stream.take_until(lambda t: t.kind == "BRACE", f"'{{' to open the {what} block")
        if not tokens:
            raise stream.error(f"Missing {what} expression", start)
        return stream.raw(tokens)

    def _parse_if(self, stream: TokenStream) -> ast.If:
        branches: List[ast.IfBranch] = []
        orelse: Optional[List[ast.Node]] = None
        stream.expect("KW", "if")
        while True:
            tok = stream.peek()
            pattern = None
            if tok.kind == "KW" and tok.value == "let":
                stream.next()
                pattern = self._parse_pattern(stream, lambda t: t.kind == "PUNCT" and t.value == "=", "'='")
                stream.next()
            condition = self._parse_head(stream, "if")
            body = self._parse_block(stream)
            branches.append(ast.IfBranch(condition, body, pattern=pattern, pos=tok.pos))
            if not stream.at("KW", "else"):
                break
            stream.next()
            if stream.at("KW", "if"):
                stream.next()
                continue
            orelse = self._parse_block(stream)
            break
        return ast.If(branches, orelse)

    def _parse_match(self, stream: TokenStream) -> ast.Match:
        start = stream.expect("KW", "match")
        scrutinee = self._parse_head(stream, "match")
        arms_stream = stream.group(stream.expect("BRACE"))
        arms: List[ast.MatchArm] = []
        while not arms_stream.at_end():
            pattern = self._parse_pattern(arms_stream, lambda t: t.kind == "ARROW", "'=>'")
            arms_stream.next()
            if arms_stream.at("BRACE"):
                body = self._parse_block(arms_stream)
            else:
                body = [self.parse_node(arms_stream)]
            if arms_stream.at("PUNCT", ","):
                arms_stream.next()
            arms.append(ast.MatchArm(pattern, body))
        return ast.Match(scrutinee, arms, pos=start.pos)

    def _parse_for(self, stream: TokenStream) -> ast.For:
        start = stream.expect("KW", "for")
        pattern = self._parse_pattern(stream, lambda t: t.kind == "KW" and t.value == "in", "'in'")
        stream.next()
        iterable = self._parse_head(stream, "for")
        body = self._parse_block(stream)
        return ast.For(pattern, iterable, body, pos=start.pos)

    def _parse_let(self, stream: TokenStream) -> ast.Let:
        start = stream.expect("KW", "let")
        pattern = self._parse_pattern(stream, lambda t: t.kind == "PUNCT" and t.value == "=", "'='")
        stream.next()
        value = stream.take_until(lambda t: t.kind == "PUNCT" and t.value == ";", "';' after let")
        stream.next()
        if not value:
            raise stream.error("Missing value in let", start)
        return ast.Let(pattern, stream.raw(value), pos=start.pos)

    def _parse_pattern(self, stream: TokenStream, stop, what: str) -> str:
        start = stream.peek()
        tokens = stream.take_until(stop, what)
        if not tokens:
            raise stream.error("Missing pattern", start)
        return stream.raw(tokens)


def parse(text: str, name: str = "<template>") -> ast.Document:
    return Parser(text, name).parse_document()
