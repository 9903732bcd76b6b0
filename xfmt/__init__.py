"""XML and HTML templates with Python expressions, compiled once and rendered many times."""

__version__ = "0.1.0"

from .errors import ExpressionEvaluationError, FormatSpecError, TemplateError, TemplateSyntaxError
from .evaluator import Evaluator
from .helpers import csv, escape, join, spaced
from .template import Template, compile_template, render, write

__all__ = [
    "Template",
    "compile_template",
    "render",
    "write",
    "Evaluator",
    "escape",
    "join",
    "spaced",
    "csv",
    "TemplateError",
    "TemplateSyntaxError",
    "ExpressionEvaluationError",
    "FormatSpecError",
    "__version__",
]
