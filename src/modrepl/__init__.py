"""Interactive sessions over a Python module's top-level symbols.

Usage:
    # From the command line
    modrepl path/to/module.py

    # Or build a harness programmatically
    from modrepl import build_harness

    harness, extraction = build_harness(source_text)
    print(extraction.all_symbols)
"""

from modrepl.extractor import DeclarationKind, DeclarationRecord, Extraction, extract
from modrepl.harness.synthesize import HarnessOptions, build_harness, synthesize

__version__ = "0.1.0"

__all__ = [
    "DeclarationKind",
    "DeclarationRecord",
    "Extraction",
    "extract",
    "HarnessOptions",
    "build_harness",
    "synthesize",
]
