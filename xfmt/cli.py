from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .errors import TemplateError
from .template import compile_template


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="xfmt", description="Render an xfmt template.")
    ap.add_argument("template", help="template file")
    ap.add_argument("--vars", metavar="JSON_FILE", help="JSON object with template variables")
    ap.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="set one variable; VALUE is parsed as JSON when possible (repeatable)",
    )
    ap.add_argument("-o", "--output", help="write output to this file instead of stdout")
    ap.add_argument("--verbose", action="store_true", help="enable debug logging")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def parse_var(item: str) -> tuple[str, Any]:
    name, sep, raw = item.partition("=")
    if not sep or not name.isidentifier():
        raise ValueError(f"Invalid --var {item!r}, expected NAME=VALUE")
    try:
        return name, json.loads(raw)
    except json.JSONDecodeError:
        return name, raw


def load_variables(vars_file: Optional[str], items: List[str]) -> Dict[str, Any]:
    variables: Dict[str, Any] = {}
    if vars_file:
        data = json.loads(Path(vars_file).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{vars_file}: expected a JSON object")
        variables.update(data)
    for item in items:
        name, value = parse_var(item)
        variables[name] = value
    return variables


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        path = Path(args.template)
        template = compile_template(path.read_text(encoding="utf-8"), name=str(path))
        output = template.render(load_variables(args.vars, args.var))
        if args.output:
            Path(args.output).write_text(output, encoding="utf-8")
        else:
            sys.stdout.write(output)
    except TemplateError as e:
        sys.stderr.write(f"{args.template}: {str(e).rstrip()}\n")
        return 1
    except (OSError, ValueError) as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
