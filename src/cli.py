"""
Command-line interface for inspecting the lexical scopes of JavaScript files.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

import esprima

from analyzer import Location, find_scopes
from frontend import FrontEndResult, run_frontend


def _format_location(line: int | None, column: int | None) -> str:
    if line is None:
        return ""
    if column is None:
        return f":{line}"
    return f":{line}:{column}"


def _print_diagnostics(messages: List[str]) -> None:
    if not messages:
        return
    for message in messages:
        sys.stderr.write(message + "\n")


def _collect_diagnostics(frontend_result: FrontEndResult) -> List[str]:
    diagnostics: List[str] = []
    source_name = frontend_result.parse.source_name

    for error in frontend_result.parse.errors:
        loc = _format_location(error.line, error.column)
        diagnostics.append(f"WARNING {source_name}{loc}: {error.description}")

    if frontend_result.error is not None:
        diagnostics.append(f"ERROR {source_name}: {frontend_result.error}")

    return diagnostics


def _run(args: argparse.Namespace) -> FrontEndResult | None:
    input_path = Path(args.input).resolve()
    if not input_path.exists():
        sys.stderr.write(f"ERROR: Input file not found: {input_path}\n")
        return None

    try:
        source = input_path.read_text(encoding="utf-8")
    except OSError as exc:
        sys.stderr.write(f"ERROR: Failed to read {input_path}: {exc}\n")
        return None

    source_type = "module" if getattr(args, "module", False) else "script"
    try:
        frontend_result = run_frontend(
            source,
            source_name=str(input_path),
            tolerant=not args.strict,
            source_type=source_type,
            generated=args.generated,
        )
    except esprima.Error as exc:
        sys.stderr.write(f"ERROR: Parsing failed: {exc}\n")
        return None

    _print_diagnostics(_collect_diagnostics(frontend_result))

    if frontend_result.parse.ast is None:
        sys.stderr.write("ERROR: Parsing failed; no AST produced.\n")
        return None
    if frontend_result.scopes is None:
        return None
    return frontend_result


def scopes_command(args: argparse.Namespace) -> int:
    frontend_result = _run(args)
    if frontend_result is None:
        return 1

    payload = json.dumps(frontend_result.scopes.to_dict(), ensure_ascii=False, indent=2)
    if args.out:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(payload + "\n", encoding="utf-8")
    else:
        sys.stdout.write(payload + "\n")

    if args.strict and frontend_result.parse.errors:
        return 1
    return 0


def find_command(args: argparse.Namespace) -> int:
    frontend_result = _run(args)
    if frontend_result is None:
        return 1

    location = Location(line=args.line, column=args.column)
    for scope in find_scopes(frontend_result.scopes, location):
        names = ", ".join(
            f"{name} ({binding.kind.value})" for name, binding in scope.bindings.items()
        )
        sys.stdout.write(f"{scope.type.value} {scope.display_name}: {names}\n")
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Path to the JavaScript file")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Disable tolerant parsing and treat parse warnings as errors.",
    )
    parser.add_argument(
        "--module",
        action="store_true",
        help="Parse the input as an ES module (enables import/export syntax).",
    )
    parser.add_argument(
        "--generated",
        action="store_true",
        help="Treat the input as bundled/generated output when deciding on a module scope.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="js2scopes", description="Inspect the lexical scopes of JavaScript source"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    scopes_parser = subparsers.add_parser("scopes", help="Write the scope tree as JSON")
    _add_common_arguments(scopes_parser)
    scopes_parser.add_argument(
        "--out",
        help="Output JSON file path (defaults to stdout)",
    )
    scopes_parser.set_defaults(func=scopes_command)

    find_parser = subparsers.add_parser(
        "find", help="List the scopes enclosing a source position, innermost first"
    )
    _add_common_arguments(find_parser)
    find_parser.add_argument("--line", type=int, required=True, help="1-based line")
    find_parser.add_argument("--column", type=int, default=0, help="0-based column")
    find_parser.set_defaults(func=find_command)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
