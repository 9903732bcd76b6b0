"""Split template source into primitive atoms.

Atoms are identifiers, string and number literals, single punctuation
characters and balanced bracket groups. Groups keep their raw inner text so
embedded host expressions can be handed on untouched.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import TemplateSyntaxError

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}

ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "\n": "",  # line continuation
}
HEX_ESCAPES = {"x": 2, "u": 4, "U": 8}
HEXDIGITS = frozenset("0123456789abcdefABCDEF")
OCTDIGITS = frozenset("01234567")


@dataclass(frozen=True)
class Atom:
    kind: str  # 'IDENT', 'STRING', 'NUMBER', 'PUNCT', 'GROUP'
    value: str
    pos: int
    end: int
    inner: str = ""
    children: Tuple["Atom", ...] = ()


class Scanner:
    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos

    def scan(self) -> List[Atom]:
        return self._scan_seq(None, self.pos)

    def _skip_ws(self) -> None:
        text = self.text
        while self.pos < len(text) and text[self.pos].isspace():
            self.pos += 1

    def _scan_seq(self, closer: Optional[str], opened_at: int) -> List[Atom]:
        atoms: List[Atom] = []
        while True:
            self._skip_ws()
            if self.pos >= len(self.text):
                if closer is not None:
                    raise TemplateSyntaxError(
                        f"Unterminated group {self.text[opened_at]!r}", opened_at, self.text
                    )
                return atoms
            ch = self.text[self.pos]
            if ch in CLOSERS:
                if ch != closer:
                    raise TemplateSyntaxError(f"Unexpected {ch!r}", self.pos, self.text)
                return atoms
            atoms.append(self._next_atom())

    def _next_atom(self) -> Atom:
        text = self.text
        ch = text[self.pos]
        start = self.pos

        if ch in OPENERS:
            self.pos += 1
            children = self._scan_seq(OPENERS[ch], start)
            inner = text[start + 1 : self.pos]
            self.pos += 1
            return Atom("GROUP", ch, start, self.pos, inner=inner, children=tuple(children))

        if ch in "'\"":
            return self._scan_string()

        if ch.isdigit():
            self.pos += 1
            while self.pos < len(text):
                c = text[self.pos]
                if c.isalnum() or c in "._":
                    self.pos += 1
                    continue
                if c in "+-" and text[self.pos - 1] in "eE" and not text.startswith(("0x", "0X"), start):
                    self.pos += 1
                    continue
                break
            return Atom("NUMBER", text[start:self.pos], start, self.pos)

        if ch.isalpha() or ch == "_":
            self.pos += 1
            while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] == "_"):
                self.pos += 1
            return Atom("IDENT", text[start:self.pos], start, self.pos)

        self.pos += 1
        return Atom("PUNCT", ch, start, self.pos)

    def _scan_string(self) -> Atom:
        text = self.text
        start = self.pos
        raw = _is_raw_prefix(text, start)
        quote = text[self.pos]
        if text.startswith(quote * 3, self.pos):
            quote = quote * 3
        self.pos += len(quote)
        out = []
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    break
                if raw:
                    out.append(ch + text[self.pos])
                    self.pos += 1
                else:
                    out.append(self._scan_escape())
                continue
            if text.startswith(quote, self.pos):
                self.pos += len(quote)
                return Atom("STRING", "".join(out), start, self.pos)
            out.append(ch)
            self.pos += 1
        raise TemplateSyntaxError("Unterminated string", start, text)

    def _scan_escape(self) -> str:
        """Decode one escape sequence; self.pos is just past the backslash.

        Sequences follow Python string literals. Unknown ones are kept with
        their backslash.
        """
        text = self.text
        at = self.pos - 1
        esc = text[self.pos]
        self.pos += 1
        if esc in ESCAPES:
            return ESCAPES[esc]
        if esc == "\r":
            if text.startswith("\n", self.pos):
                self.pos += 1
            return ""
        if esc in HEX_ESCAPES:
            width = HEX_ESCAPES[esc]
            digits = text[self.pos : self.pos + width]
            if len(digits) != width or any(c not in HEXDIGITS for c in digits):
                raise TemplateSyntaxError(f"Invalid \\{esc} escape", at, text)
            self.pos += width
            try:
                return chr(int(digits, 16))
            except ValueError:
                raise TemplateSyntaxError(f"Invalid \\{esc} escape", at, text) from None
        if esc in OCTDIGITS:
            digits = esc
            while len(digits) < 3 and self.pos < len(text) and text[self.pos] in OCTDIGITS:
                digits += text[self.pos]
                self.pos += 1
            return chr(int(digits, 8))
        if esc == "N" and text.startswith("{", self.pos):
            close = text.find("}", self.pos)
            if close < 0:
                raise TemplateSyntaxError("Invalid \\N escape", at, text)
            name = text[self.pos + 1 : close]
            try:
                value = unicodedata.lookup(name)
            except KeyError:
                raise TemplateSyntaxError(f"Unknown character name {name!r}", at, text) from None
            self.pos = close + 1
            return value
        return "\\" + esc


def _is_raw_prefix(text: str, quote_pos: int) -> bool:
    """True when the string at `quote_pos` carries an r/R literal prefix."""
    begin = quote_pos
    while begin > 0 and quote_pos - begin < 2 and text[begin - 1] in "rRbBfF":
        begin -= 1
    if begin > 0 and (text[begin - 1].isalnum() or text[begin - 1] == "_"):
        return False
    return "r" in text[begin:quote_pos].lower()


def split_atoms(text: str, offset: int = 0) -> List[Atom]:
    """Split `text` from `offset` on; atom positions are offsets into `text`."""
    return Scanner(text, offset).scan()
