"""Harness program assembly.

A harness is the original module text, followed by the export statements the
extractor asked for, followed by the session bootstrap. The whole thing is a
single Python program that, when run, executes the module body and then opens
an interactive session over everything the module bound at top level.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Sequence

from modrepl.extractor import EXPORT_LIST, RESERVED_PREFIX, Extraction, extract
from modrepl.harness.bootstrap import SESSION_BOOTSTRAP
from modrepl.harness.logging_utils import abbreviate, preview_names
from modrepl.paths import HISTFILE_DEFAULT, HISTFILE_ENV

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# ---- BEGIN MODREPL ----"
END_MARKER = "# ---- END MODREPL ----"

LINE_EDITORS = ("auto", "readline", "prompt_toolkit")


@dataclass
class HarnessOptions:
    """Settings baked into the generated session bootstrap."""

    history_env: str = HISTFILE_ENV
    history_default: str = HISTFILE_DEFAULT
    prompt: str = ">>> "
    continuation_prompt: str = "... "
    line_editor: str = "auto"
    reload_argv: list[str] | None = None
    """Command spawned by `:reload`; None disables reloading."""
    source_path: str | None = None
    """Shown in the session banner."""

    def __post_init__(self) -> None:
        if self.line_editor not in LINE_EDITORS:
            raise ValueError(
                f"Unknown line editor: {self.line_editor!r} "
                f"(expected one of {', '.join(LINE_EDITORS)})"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _augmentation_block(export_statements: Sequence[str]) -> list[str]:
    if not export_statements:
        return []
    lines = [
        "# additional exports for top-level names missing from __all__",
        # the module may have rebound list or globals
        f"from builtins import globals as {RESERVED_PREFIX}globals, list as {RESERVED_PREFIX}list",
        # also turns a tuple __all__ into a list
        f'{EXPORT_LIST} = {RESERVED_PREFIX}list({RESERVED_PREFIX}globals().get("{EXPORT_LIST}", ()))',
    ]
    seen: set[str] = set()
    for statement in export_statements:
        if statement in seen:
            continue
        seen.add(statement)
        lines.append(statement)
    return lines


def _symbols_literal(all_symbols: Sequence[str]) -> str:
    if not all_symbols:
        return f"{RESERVED_PREFIX}all_symbols = []"
    items = "".join(f"    {name!r},\n" for name in all_symbols)
    return f"{RESERVED_PREFIX}all_symbols = [\n{items}]"


def _options_literal(options: HarnessOptions) -> str:
    items = "".join(f"    {key!r}: {value!r},\n" for key, value in options.to_dict().items())
    return f"{RESERVED_PREFIX}options = {{\n{items}}}"


def synthesize(
    original_text: str,
    export_statements: Sequence[str],
    all_symbols: Sequence[str],
    options: HarnessOptions | None = None,
) -> str:
    """Assemble the harness program text.

    Args:
        original_text: Module source, copied verbatim.
        export_statements: Statements from `extract`, appended after the source.
        all_symbols: Ordered symbol set, embedded as a list literal.
        options: Session settings; defaults apply when omitted.

    Returns:
        Self-contained Python source for the harness.
    """
    options = options or HarnessOptions()
    if original_text and not original_text.endswith("\n"):
        original_text += "\n"

    augmentation = _augmentation_block(export_statements)
    parts = [original_text, "", BEGIN_MARKER]
    parts.extend(augmentation)
    parts.append("")
    parts.append("# session bootstrap")
    parts.append(_symbols_literal(all_symbols))
    parts.append(_options_literal(options))
    parts.append("")
    parts.append(SESSION_BOOTSTRAP.rstrip("\n"))
    parts.append(END_MARKER)
    harness = "\n".join(parts) + "\n"

    logger.debug(
        "synthesized harness exports=%d symbols=[%s] bytes=%d augmentation=%s",
        len(export_statements),
        preview_names(all_symbols),
        len(harness),
        abbreviate("\n".join(augmentation)),
    )
    return harness


def build_harness(
    source_text: str,
    options: HarnessOptions | None = None,
    filename: str = "<source>",
) -> tuple[str, Extraction]:
    """Extract and synthesize in one step.

    Raises:
        SyntaxError: If the source does not parse. Nothing is generated.
    """
    extraction = extract(source_text, filename=filename)
    harness = synthesize(
        source_text,
        extraction.export_statements,
        extraction.all_symbols,
        options,
    )
    return harness, extraction


def augmented_source(harness_text: str) -> str:
    """Return the harness up to and including the export statements.

    Useful for checking that re-extracting an augmented module adds nothing.
    """
    head, marker, rest = harness_text.partition(BEGIN_MARKER)
    if not marker:
        return harness_text
    block, _, _ = rest.partition("# session bootstrap")
    return head + marker + block


__all__ = [
    "BEGIN_MARKER",
    "END_MARKER",
    "LINE_EDITORS",
    "HarnessOptions",
    "augmented_source",
    "build_harness",
    "synthesize",
]
