"""Top-level binding extraction.

Parses a Python module and enumerates the names it binds at module level:
imports, functions, classes and assigned variables. For every binding that is
not already listed in the module's ``__all__`` an export statement is produced,
so the generated harness can read the complete symbol set back out of
``__all__``.

Only direct children of the module body count as top-level. Bindings inside
functions, classes, or compound statements (``if``/``try``/``with``/loops) are
not collected.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

logger = logging.getLogger(__name__)

EXPORT_LIST = "__all__"
RESERVED_PREFIX = "__modrepl__"

# ast.TypeAlias only exists on 3.12+
_TYPE_ALIAS = getattr(ast, "TypeAlias", None)


class DeclarationKind(Enum):
    """What introduced a top-level name."""

    FUNCTION = "function"
    VARIABLE = "variable"
    CLASS = "class"
    IMPORT = "import"


@dataclass
class DeclarationRecord:
    """A single top-level binding."""

    name: str
    kind: DeclarationKind
    already_exported: bool
    lineno: int = 0


@dataclass
class Extraction:
    """Result of analysing one module.

    Unpacks as ``(export_statements, all_symbols)``.
    """

    export_statements: list[str] = field(default_factory=list)
    all_symbols: list[str] = field(default_factory=list)
    records: list[DeclarationRecord] = field(default_factory=list)
    exported: set[str] = field(default_factory=set)

    def __iter__(self) -> Iterator[list[str]]:
        yield self.export_statements
        yield self.all_symbols

    def record(self, name: str) -> DeclarationRecord | None:
        for record in self.records:
            if record.name == name:
                return record
        return None

    @property
    def missing(self) -> list[str]:
        """Names that needed a synthetic export."""
        return [r.name for r in self.records if not r.already_exported]


def export_statement(name: str) -> str:
    """Statement that adds ``name`` to the module's ``__all__``."""
    return f'{EXPORT_LIST}.append("{name}")'


def _string_elements(node: ast.AST | None) -> list[str]:
    if isinstance(node, (ast.List, ast.Tuple, ast.Set)):
        return [
            elt.value
            for elt in node.elts
            if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
        ]
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.Add):
        return _string_elements(node.left) + _string_elements(node.right)
    return []


def _is_export_list(node: ast.AST) -> bool:
    return isinstance(node, ast.Name) and node.id == EXPORT_LIST


def collect_exports(module: ast.Module) -> set[str]:
    """Collect the string literals listed in ``__all__`` at module level.

    Recognises plain, annotated and augmented assignment as well as
    ``__all__.append(...)`` / ``__all__.extend(...)`` calls. Entries that are
    not string literals are ignored.
    """
    exported: set[str] = set()
    for stmt in module.body:
        if isinstance(stmt, ast.Assign):
            if any(_is_export_list(target) for target in stmt.targets):
                exported.update(_string_elements(stmt.value))
        elif isinstance(stmt, (ast.AugAssign, ast.AnnAssign)):
            if _is_export_list(stmt.target):
                exported.update(_string_elements(stmt.value))
        elif isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Call):
            call = stmt.value
            func = call.func
            if not (isinstance(func, ast.Attribute) and _is_export_list(func.value)):
                continue
            if not call.args:
                continue
            arg = call.args[0]
            if func.attr == "append":
                if isinstance(arg, ast.Constant) and isinstance(arg.value, str):
                    exported.add(arg.value)
            elif func.attr == "extend":
                exported.update(_string_elements(arg))
    return exported


def _target_names(target: ast.AST) -> Iterator[str]:
    if isinstance(target, ast.Name):
        yield target.id
    elif isinstance(target, (ast.Tuple, ast.List)):
        for elt in target.elts:
            yield from _target_names(elt)
    elif isinstance(target, ast.Starred):
        yield from _target_names(target.value)


def _bindings(stmt: ast.stmt) -> Iterator[tuple[str, DeclarationKind]]:
    """Yield ``(name, kind)`` for each name a top-level statement binds."""
    if isinstance(stmt, ast.Import):
        for alias in stmt.names:
            # `import a.b` binds `a`
            yield alias.asname or alias.name.split(".")[0], DeclarationKind.IMPORT
    elif isinstance(stmt, ast.ImportFrom):
        if stmt.module == "__future__":
            return
        for alias in stmt.names:
            if alias.name == "*":
                continue
            yield alias.asname or alias.name, DeclarationKind.IMPORT
    elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
        yield stmt.name, DeclarationKind.FUNCTION
    elif isinstance(stmt, ast.ClassDef):
        yield stmt.name, DeclarationKind.CLASS
    elif isinstance(stmt, ast.Assign):
        for target in stmt.targets:
            for name in _target_names(target):
                yield name, DeclarationKind.VARIABLE
    elif isinstance(stmt, ast.AnnAssign):
        # a bare annotation (`x: int`) binds nothing
        if stmt.value is not None:
            for name in _target_names(stmt.target):
                yield name, DeclarationKind.VARIABLE
    elif _TYPE_ALIAS is not None and isinstance(stmt, _TYPE_ALIAS):
        yield from ((name, DeclarationKind.VARIABLE) for name in _target_names(stmt.name))


def extract(source_text: str, filename: str = "<source>") -> Extraction:
    """Enumerate top-level bindings and the exports needed to expose them.

    Args:
        source_text: Python source of the module.
        filename: Used in ``SyntaxError`` messages only.

    Returns:
        Extraction with export statements in discovery order and the symbol
        set in order of first appearance. When a name is bound more than once
        (e.g. imported and later redefined) the first binding wins and only
        one export statement is produced.

    Raises:
        SyntaxError: If the source does not parse.
    """
    module = ast.parse(source_text, filename=filename)
    exported = collect_exports(module)
    extraction = Extraction(exported=exported)
    seen: set[str] = set()

    for stmt in module.body:
        for name, kind in _bindings(stmt):
            if name == EXPORT_LIST or name.startswith(RESERVED_PREFIX):
                continue
            if name in seen:
                logger.debug("duplicate binding name=%s line=%s", name, stmt.lineno)
                continue
            seen.add(name)
            record = DeclarationRecord(
                name=name,
                kind=kind,
                already_exported=name in exported,
                lineno=stmt.lineno,
            )
            extraction.records.append(record)
            extraction.all_symbols.append(name)
            if not record.already_exported:
                extraction.export_statements.append(export_statement(name))

    logger.debug(
        "extracted file=%s symbols=%d exports=%d",
        filename,
        len(extraction.all_symbols),
        len(extraction.export_statements),
    )
    return extraction


__all__ = [
    "EXPORT_LIST",
    "RESERVED_PREFIX",
    "DeclarationKind",
    "DeclarationRecord",
    "Extraction",
    "collect_exports",
    "export_statement",
    "extract",
]
