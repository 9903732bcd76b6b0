from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import TemplateSyntaxError
from .scanner import Atom, split_atoms

KEYWORDS = {"if", "else", "match", "for", "in", "let"}

# Longest sequences first; every character must touch the previous one.
COMPOUNDS: List[Tuple[str, str]] = [
    ("<!--", "COMMENT"),
    ("-->", "COMMENT_END"),
    ("</", "CLOSE"),
    ("<!", "DECL"),
    ("<?", "PI"),
    ("?>", "PI_END"),
    ("/>", "SELF_CLOSE"),
    ("=>", "ARROW"),
    ("<", "LT"),
    (">", "GT"),
]

GROUP_KINDS = {"(": "PAREN", "[": "BRACKET", "{": "BRACE"}
NAME_KINDS = ("IDENT", "KW")
SEGMENT_KINDS = ("IDENT", "KW", "NUMBER")


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int
    end: int
    atom: Optional[Atom] = None


def classify(atoms: Sequence[Atom]) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    while i < len(atoms):
        atom = atoms[i]
        if atom.kind == "PUNCT":
            for seq, kind in COMPOUNDS:
                if _glued(atoms, i, seq):
                    last = atoms[i + len(seq) - 1]
                    tokens.append(Token(kind, seq, atom.pos, last.end))
                    i += len(seq)
                    break
            else:
                tokens.append(Token("PUNCT", atom.value, atom.pos, atom.end))
                i += 1
            continue
        if atom.kind == "GROUP":
            tokens.append(Token(GROUP_KINDS[atom.value], atom.value, atom.pos, atom.end, atom))
        elif atom.kind == "IDENT" and atom.value in KEYWORDS:
            tokens.append(Token("KW", atom.value, atom.pos, atom.end))
        else:
            tokens.append(Token(atom.kind, atom.value, atom.pos, atom.end, atom))
        i += 1
    return tokens


def _glued(atoms: Sequence[Atom], i: int, seq: str) -> bool:
    if i + len(seq) > len(atoms):
        return False
    for k, ch in enumerate(seq):
        atom = atoms[i + k]
        if atom.kind != "PUNCT" or atom.value != ch:
            return False
        if k and atom.pos != atoms[i + k - 1].end:
            return False
    return True


class TokenStream:
    """Cursor over the tokens of one atom sequence (the document or a group)."""

    def __init__(self, atoms: Sequence[Atom], source: str, end: Optional[int] = None) -> None:
        self.source = source
        self.tokens = classify(atoms)
        self.index = 0
        self.end = len(source) if end is None else end

    def group(self, tok: Token) -> "TokenStream":
        if tok.atom is None or tok.atom.kind != "GROUP":
            raise self.error("Expected a bracket group", tok)
        return TokenStream(tok.atom.children, self.source, end=tok.end - 1)

    def peek(self, offset: int = 0) -> Token:
        i = self.index + offset
        if i < len(self.tokens):
            return self.tokens[i]
        return Token("EOF", "", self.end, self.end)

    def next(self) -> Token:
        tok = self.peek()
        if tok.kind != "EOF":
            self.index += 1
        return tok

    def at(self, kind: str, value: Optional[str] = None) -> bool:
        tok = self.peek()
        return tok.kind == kind and (value is None or tok.value == value)

    def at_end(self) -> bool:
        return self.peek().kind == "EOF"

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        tok = self.next()
        if tok.kind != kind or (value is not None and tok.value != value):
            expected = repr(value) if value is not None else kind
            raise self.error(f"Expected {expected}, found {describe(tok)}", tok)
        return tok

    def error(self, message: str, tok: Optional[Token] = None) -> TemplateSyntaxError:
        pos = (tok or self.peek()).pos
        return TemplateSyntaxError(message, pos, self.source)

    def take_until(
        self, stop: Callable[[Token], bool], what: str, allow_end: bool = False
    ) -> List[Token]:
        taken: List[Token] = []
        while True:
            tok = self.peek()
            if tok.kind == "EOF":
                if allow_end:
                    return taken
                raise self.error(f"Expected {what}", tok)
            if stop(tok):
                return taken
            taken.append(self.next())

    def raw(self, tokens: Sequence[Token]) -> str:
        if not tokens:
            return ""
        return self.source[tokens[0].pos : tokens[-1].end].strip()

    def joined(self, tokens: Sequence[Token]) -> str:
        out: List[str] = []
        prev_end: Optional[int] = None
        for tok in tokens:
            if prev_end is not None and tok.pos > prev_end:
                out.append(" ")
            out.append(self.source[tok.pos : tok.end])
            prev_end = tok.end
        return "".join(out)

    def read_name(self) -> str:
        tok = self.peek()
        if tok.kind == "STRING":
            self.next()
            return tok.value
        if tok.kind not in NAME_KINDS:
            raise self.error(f"Expected a name, found {describe(tok)}", tok)
        self.next()
        parts = [tok.value]
        end = tok.end
        allow_ns = True
        while True:
            sep, seg = self.peek(), self.peek(1)
            if sep.kind != "PUNCT" or sep.value not in ":-." or sep.pos != end:
                break
            if sep.value == ":" and not allow_ns:
                break
            if seg.kind not in SEGMENT_KINDS or seg.pos != sep.end:
                break
            self.next()
            self.next()
            parts.append(sep.value)
            parts.append(seg.value)
            end = seg.end
            allow_ns = False
        return "".join(parts)

    def read_close_tag(self) -> str:
        self.expect("CLOSE")
        name = self.read_name()
        tok = self.next()
        if tok.kind == "SELF_CLOSE":
            raise self.error("Closing tag may not be self-closing", tok)
        if tok.kind != "GT":
            raise self.error(f"Expected '>' after closing tag name, found {describe(tok)}", tok)
        return name

    def expression(self, tok: Token) -> Tuple[str, Optional[str]]:
        """Split a brace group into expression source and optional format spec."""
        atom = tok.atom
        if atom is None or atom.value != "{":
            raise self.error("Expected an expression in braces", tok)
        base = atom.pos + 1
        source, spec = atom.inner, None
        for child in atom.children:
            if child.kind == "PUNCT" and child.value == ";":
                source = atom.inner[: child.pos - base]
                spec = atom.inner[child.end - base :].strip()
                break
        source = source.strip()
        if not source:
            raise self.error("Empty expression", tok)
        return source, spec


def describe(tok: Token) -> str:
    if tok.kind == "EOF":
        return "end of input"
    if tok.kind in ("PAREN", "BRACKET", "BRACE"):
        return f"{tok.value!r} group"
    return repr(tok.value)


def tokenize(source: str) -> TokenStream:
    return TokenStream(split_atoms(source), source)
