from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .escape import TEXT


class Node:
    pass


@dataclass
class Document:
    nodes: List[Node]
    source: str = ""


@dataclass
class TextLiteral(Node):
    value: str


@dataclass
class ExpressionValue(Node):
    source: str
    spec: Optional[str] = None
    context: str = TEXT  # 'text', 'attribute', 'comment', 'cdata'
    pos: int = 0


@dataclass
class ClosureEscape(Node):
    binding: str
    body: str
    pos: int = 0


@dataclass
class ConditionalList:
    items: List[Tuple[str, str]]  # (text, condition source)
    pos: int = 0


@dataclass
class ConcatGroup:
    parts: List[Union[TextLiteral, ExpressionValue]]


AttrValue = Union[TextLiteral, ExpressionValue, ConditionalList, ConcatGroup, ClosureEscape]


@dataclass
class Attribute:
    name: str
    value: Optional[AttrValue] = None


@dataclass
class Element(Node):
    name: str
    attrs: List[Attribute] = field(default_factory=list)
    self_closing: bool = False
    children: List[Node] = field(default_factory=list)
    close_name: Optional[str] = None


@dataclass
class Doctype(Node):
    payload: str


@dataclass
class ProcessingInstruction(Node):
    payload: str


@dataclass
class Comment(Node):
    parts: List[Union[TextLiteral, ExpressionValue]]


@dataclass
class CData(Node):
    parts: List[Union[TextLiteral, ExpressionValue]]


@dataclass
class Let(Node):
    pattern: str
    value: str
    pos: int = 0


class ControlFlow(Node):
    pass


@dataclass
class IfBranch:
    condition: str
    body: List[Node]
    pattern: Optional[str] = None  # set for `if let`
    pos: int = 0


@dataclass
class If(ControlFlow):
    branches: List[IfBranch]
    orelse: Optional[List[Node]] = None


@dataclass
class MatchArm:
    pattern: str
    body: List[Node]


@dataclass
class Match(ControlFlow):
    scrutinee: str
    arms: List[MatchArm]
    pos: int = 0


@dataclass
class For(ControlFlow):
    pattern: str
    iterable: str
    body: List[Node]
    pos: int = 0
