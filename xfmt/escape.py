from __future__ import annotations

from typing import Callable, Dict

TEXT = "text"
ATTRIBUTE = "attribute"
COMMENT = "comment"
CDATA = "cdata"

CDATA_TERMINATOR = "]]>"
CDATA_SPLIT = "]]]]><![CDATA[>"


def escape_text(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def escape_attr(text: str) -> str:
    return escape_text(text).replace("'", "&apos;").replace('"', "&quot;")


def escape_comment(text: str) -> str:
    return "".join(text.split("--"))


def escape_cdata(text: str) -> str:
    return CDATA_SPLIT.join(text.split(CDATA_TERMINATOR))


ESCAPERS: Dict[str, Callable[[str], str]] = {
    TEXT: escape_text,
    ATTRIBUTE: escape_attr,
    COMMENT: escape_comment,
    CDATA: escape_cdata,
}


def escape(context: str, text: str) -> str:
    fn = ESCAPERS.get(context)
    if fn is None:
        raise ValueError(f"Unknown escaping context {context!r}")
    return fn(text)
