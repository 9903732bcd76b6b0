"""Functions visible by name inside every template expression."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable

from .escape import escape_attr


def escape(value: Any) -> str:
    """Escape ``& < > " '`` in the string form of `value`."""
    return escape_attr(str(value))


def join(sep: str, items: Iterable[Any], spec: str = "") -> str:
    return sep.join(format(item, spec) for item in items)


def spaced(items: Iterable[Any], spec: str = "") -> str:
    return join(" ", items, spec)


def csv(items: Iterable[Any], spec: str = "") -> str:
    return join(",", items, spec)


HELPERS: Dict[str, Callable[..., str]] = {
    "escape": escape,
    "join": join,
    "spaced": spaced,
    "csv": csv,
}
