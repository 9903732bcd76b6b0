from __future__ import annotations

import pytest

from xfmt.escape import (
    ATTRIBUTE,
    CDATA,
    COMMENT,
    TEXT,
    escape,
    escape_attr,
    escape_cdata,
    escape_comment,
    escape_text,
)


def test_escape_text_replaces_markup_characters() -> None:
    assert escape_text("a < b && c > d") == "a &lt; b &amp;&amp; c &gt; d"
    assert escape_text("it's \"fine\"") == "it's \"fine\""


def test_escape_attr_also_replaces_quotes() -> None:
    assert escape_attr("&<>\"'") == "&amp;&lt;&gt;&quot;&apos;"


def test_escaping_twice_double_encodes_ampersand() -> None:
    once = escape_text("&")
    assert once == "&amp;"
    assert escape_text(once) == "&amp;amp;"


def test_escape_comment_removes_double_dashes() -> None:
    assert escape_comment("a--b") == "ab"
    assert escape_comment("---") == "-"
    assert escape_comment("a-b") == "a-b"


def test_escape_cdata_splits_terminator() -> None:
    escaped = escape_cdata("x]]>y")
    assert escaped == "x]]]]><![CDATA[>y"
    wrapped = "<![CDATA[" + escaped + "]]>"
    # The only terminators are the ones closing a section.
    assert wrapped.count("]]>") == 2
    assert wrapped.endswith("]]>")


def test_escape_dispatches_by_context() -> None:
    assert escape(TEXT, "<") == "&lt;"
    assert escape(ATTRIBUTE, "'") == "&apos;"
    assert escape(COMMENT, "--") == ""
    assert escape(CDATA, "]]>") == "]]]]><![CDATA[>"


def test_escape_unknown_context_raises() -> None:
    with pytest.raises(ValueError, match="Unknown escaping context"):
        escape("script", "x")
