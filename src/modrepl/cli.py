"""Command-line entry point: open a REPL over a module's top-level symbols."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from modrepl.harness.launch import (
    InterpreterConfig,
    cleanup,
    harness_path_for,
    read_source,
    run_harness,
    write_harness,
)
from modrepl.harness.logging_utils import configure_logging
from modrepl.harness.synthesize import LINE_EDITORS, HarnessOptions, build_harness
from modrepl.paths import history_path_default

logger = logging.getLogger(__name__)

HARNESS_RUN_NAME = "__modrepl__"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modrepl",
        description="Start an interactive session with every top-level symbol of a Python file.",
    )
    parser.add_argument("file", help="Python source file to load")
    parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Run the harness in Python development mode (-X dev)",
    )
    parser.add_argument(
        "--warnings-as-errors",
        action="store_true",
        help="Turn every warning into an exception (-W error)",
    )
    parser.add_argument(
        "--path-interop",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Put the file's directory on PYTHONPATH",
    )
    parser.add_argument(
        "--as-main",
        action="store_true",
        help='Run the module as __main__ (fires `if __name__ == "__main__"` blocks)',
    )
    parser.add_argument("--python", default=sys.executable, help="Interpreter for the harness")
    parser.add_argument("--tmp-dir", default=None, help="Directory for the generated harness")
    parser.add_argument("--keep", action="store_true", help="Keep the harness file after the session")
    parser.add_argument(
        "--line-editor",
        choices=LINE_EDITORS,
        default="auto",
        help="Line editor for the session (auto prefers prompt_toolkit on a terminal)",
    )
    parser.add_argument(
        "--plain",
        action="store_true",
        help="Shorthand for --line-editor readline",
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable the :reload command",
    )
    parser.add_argument(
        "--print-harness",
        action="store_true",
        help="Print the generated harness and exit without running it",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (overrides MODREPL_LOG_LEVEL).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Log file path (defaults to stderr).",
    )
    return parser


def _fail(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the ``modrepl`` command."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level, args.log_file)
    except ValueError as exc:
        parser.error(str(exc))

    source_path = Path(args.file).expanduser().resolve()
    if not source_path.is_file():
        _fail(f"File not found: {source_path}")

    try:
        source_text, encoding = read_source(source_path)
    except (OSError, SyntaxError, UnicodeDecodeError) as exc:
        # tokenize.open raises SyntaxError for a bad coding cookie
        _fail(f"Could not read {source_path}: {exc}")

    options = HarnessOptions(
        line_editor="readline" if args.plain else args.line_editor,
        reload_argv=None if args.no_reload else [sys.executable, "-m", "modrepl", *argv],
        source_path=str(source_path),
    )
    try:
        harness_text, extraction = build_harness(source_text, options, filename=str(source_path))
    except SyntaxError as exc:
        logger.info("parse failed path=%s error=%s", source_path, exc)
        _fail(f"Could not parse {source_path}:{exc.lineno}: {exc.msg}")

    logger.info(
        "extracted path=%s symbols=%d exports=%d history=%s",
        source_path,
        len(extraction.all_symbols),
        len(extraction.export_statements),
        history_path_default(),
    )

    if args.print_harness:
        sys.stdout.write(harness_text)
        return

    config = InterpreterConfig(
        python=args.python,
        strict=args.strict,
        warnings_as_errors=args.warnings_as_errors,
        path_interop=args.path_interop,
        run_name=None if args.as_main else HARNESS_RUN_NAME,
    )

    harness_path = harness_path_for(source_path, args.tmp_dir)
    try:
        write_harness(harness_text, harness_path, encoding=encoding)
    except (OSError, UnicodeError) as exc:
        # UnicodeError: the banner path or reload argv may not fit the source encoding
        _fail(f"Could not write harness {harness_path}: {exc}")

    print("compiling...")
    print(harness_path)
    sys.stdout.flush()
    try:
        try:
            code = run_harness(harness_path, source_path, config)
        except OSError as exc:
            _fail(f"Failed to start {config.python}: {exc}")
    finally:
        if args.keep:
            logger.info("keeping harness path=%s", harness_path)
        else:
            cleanup(harness_path)

    raise SystemExit(code)


__all__ = ["build_parser", "main"]
