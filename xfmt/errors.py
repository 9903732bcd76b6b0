"""
Exceptions raised while compiling or rendering templates.

Every expected failure derives from TemplateError so callers can report it
as a clean message. Each subclass also derives from the matching builtin
exception, so ``except SyntaxError`` and friends keep working.
"""

from __future__ import annotations

from typing import Optional


class TemplateError(Exception):
    """Base class for all template compilation and rendering errors.

    `pos` is an offset into the template source; when the source is known the
    message ends with its line and column.
    """

    def __init__(self, message: str, pos: Optional[int] = None, source: Optional[str] = None) -> None:
        self.pos = pos
        if pos is not None and source is not None:
            line, col = location(source, pos)
            message = f"{message} at {pos} (line {line}, column {col})"
        elif pos is not None:
            message = f"{message} at {pos}"
        super().__init__(message)


class TemplateSyntaxError(TemplateError, SyntaxError):
    """Malformed template source. Raised at parse time, never recovered."""
    pass


class ExpressionEvaluationError(TemplateError, RuntimeError):
    """An embedded expression, pattern or closure failed while rendering."""
    pass


class FormatSpecError(TemplateError, ValueError):
    """A format spec is not understood by the value it is applied to."""
    pass


def location(source: str, pos: int) -> tuple[int, int]:
    line = source.count("\n", 0, pos) + 1
    col = pos - (source.rfind("\n", 0, pos) + 1) + 1
    return line, col


__all__ = [
    "TemplateError",
    "TemplateSyntaxError",
    "ExpressionEvaluationError",
    "FormatSpecError",
    "location",
]
