from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from xfmt import cli


def write_template(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "page.xfmt"
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_renders_to_stdout(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, '<h1>"Hello " {name}</h1>')
    assert cli.main([str(path), "--var", "name=World"]) == 0
    assert capsys.readouterr().out == "<h1>Hello World</h1>"


def test_cli_var_values_are_json_when_possible(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, "{n + 1} {flags[0]} {word}")
    assert cli.main([str(path), "--var", "n=41", "--var", "flags=[true]", "--var", "word=[oops"]) == 0
    assert capsys.readouterr().out == "42True[oops"


def test_cli_vars_file_and_output_file(tmp_path: Path) -> None:
    path = write_template(tmp_path, "<ul>for x in (items) {<li>{x}</li>}</ul>")
    vars_path = tmp_path / "vars.json"
    vars_path.write_text(json.dumps({"items": ["a", "b"], "title": "x"}), encoding="utf-8")
    out_path = tmp_path / "out.html"
    assert cli.main([str(path), "--vars", str(vars_path), "-o", str(out_path)]) == 0
    assert out_path.read_text(encoding="utf-8") == "<ul><li>a</li><li>b</li></ul>"


def test_cli_var_overrides_vars_file(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, "{who}")
    vars_path = tmp_path / "vars.json"
    vars_path.write_text('{"who": "file"}', encoding="utf-8")
    assert cli.main([str(path), "--vars", str(vars_path), "--var", "who=flag"]) == 0
    assert capsys.readouterr().out == "flag"


def test_cli_template_error_exits_1(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, "<p>\n  oops</p>")
    assert cli.main([str(path)]) == 1
    err = capsys.readouterr().err
    assert err.startswith(str(path))
    assert "line 2, column 3" in err
    assert err.count("\n") == 1


def test_cli_render_error_exits_1(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, "{missing}")
    assert cli.main([str(path)]) == 1
    assert "NameError" in capsys.readouterr().err


def test_cli_bad_var_exits_2(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, '"x"')
    assert cli.main([str(path), "--var", "novalue"]) == 2
    assert "NAME=VALUE" in capsys.readouterr().err


def test_cli_missing_template_exits_2(tmp_path: Path, capsys) -> None:
    assert cli.main([str(tmp_path / "nope.xfmt")]) == 2
    assert "nope.xfmt" in capsys.readouterr().err


def test_cli_requires_template_argument(capsys) -> None:
    with pytest.raises(SystemExit):
        cli.main([])


def test_cli_verbose_enables_debug_logging(tmp_path: Path, monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
    path = write_template(tmp_path, '"x"')
    assert cli.main([str(path), "--verbose"]) == 0
    assert calls == [{"level": logging.DEBUG}]


def test_cli_unwritable_output_exits_2(tmp_path: Path, capsys) -> None:
    path = write_template(tmp_path, '"x"')
    out_path = tmp_path / "missing" / "out.html"
    assert cli.main([str(path), "-o", str(out_path)]) == 2
    err = capsys.readouterr().err
    assert "out.html" in err
    assert err.count("\n") == 1
    assert not out_path.exists()
