"""Harness generation and launching.

Turns a module's source plus its extracted symbols into a runnable program
that opens an interactive session, and runs that program in a subprocess.

Usage:
    from modrepl.harness import build_harness, InterpreterConfig

    harness, extraction = build_harness(source_text)
"""

from modrepl.harness.launch import InterpreterConfig, run_harness, write_harness
from modrepl.harness.synthesize import HarnessOptions, build_harness, synthesize

__all__ = [
    "InterpreterConfig",
    "run_harness",
    "write_harness",
    "HarnessOptions",
    "build_harness",
    "synthesize",
]
