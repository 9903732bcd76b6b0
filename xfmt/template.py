from __future__ import annotations

import functools
import io
from typing import Any, Dict, Optional

from . import ast
from .evaluator import Evaluator
from .generator import generate
from .parser import Parser


class Template:
    """A parsed template, ready to be rendered any number of times."""

    def __init__(self, document: ast.Document, name: str = "<template>", evaluator: Optional[Evaluator] = None) -> None:
        self.document = document
        self.name = name
        self.evaluator = evaluator or Evaluator()

    def __repr__(self) -> str:
        return f"<Template {self.name}>"

    def render(self, variables: Optional[Dict[str, Any]] = None, **kw: Any) -> str:
        buf = io.StringIO()
        self.write(buf, variables, **kw)
        return buf.getvalue()

    def write(self, sink: Any, variables: Optional[Dict[str, Any]] = None, **kw: Any) -> None:
        """Render into `sink`, any object with a ``write(str)`` method.

        On error the output written so far stays in the sink.
        """
        merged = dict(variables or {})
        merged.update(kw)
        generate(self.document, sink, merged, self.evaluator)


def compile_template(source: str, name: str = "<template>", evaluator: Optional[Evaluator] = None) -> Template:
    return Template(Parser(source, name).parse_document(), name, evaluator)


@functools.lru_cache(maxsize=128)
def _cached(source: str) -> Template:
    return compile_template(source)


def render(source: str, variables: Optional[Dict[str, Any]] = None, **kw: Any) -> str:
    return _cached(source).render(variables, **kw)


def write(sink: Any, source: str, variables: Optional[Dict[str, Any]] = None, **kw: Any) -> None:
    _cached(source).write(sink, variables, **kw)
