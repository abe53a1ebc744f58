"""Write a harness to disk and run it under a Python interpreter."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
import tokenize
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from modrepl.paths import harness_tmp_dir

logger = logging.getLogger(__name__)

MARKER_ENV = {"REPL": "1", "MODREPL": "1"}

# Runs the harness under a chosen __name__ so `if __name__ == "__main__"`
# blocks in the source module stay dormant.
RUN_PATH_SNIPPET = (
    "import runpy, sys; "
    "path, name = sys.argv[1:3]; "
    "del sys.argv[1:]; "
    "runpy.run_path(path, run_name=name)"
)


@dataclass
class InterpreterConfig:
    """How the harness interpreter is invoked."""

    python: str = field(default_factory=lambda: sys.executable)
    strict: bool = True
    """Python development mode (-X dev): extra runtime checks and warnings."""
    warnings_as_errors: bool = False
    path_interop: bool = True
    """Put the source file's directory on PYTHONPATH so sibling imports work."""
    unbuffered: bool = True
    write_bytecode: bool = False
    run_name: str | None = None
    """Module __name__ for the harness run; None runs it as __main__."""

    def flags(self) -> list[str]:
        flags: list[str] = []
        if self.unbuffered:
            flags.append("-u")
        if not self.write_bytecode:
            flags.append("-B")
        if self.strict:
            flags.extend(["-X", "dev"])
        if self.warnings_as_errors:
            flags.extend(["-W", "error"])
        return flags

    def to_argv(self, harness_path: Path | str) -> list[str]:
        argv = [self.python, *self.flags()]
        if self.run_name is None or self.run_name == "__main__":
            argv.append(str(harness_path))
        else:
            argv.extend(["-c", RUN_PATH_SNIPPET, str(harness_path), self.run_name])
        return argv

    def to_env(
        self,
        source_path: Path | str,
        base_env: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        env = dict(os.environ if base_env is None else base_env)
        env.update(MARKER_ENV)
        if self.path_interop:
            source_dir = str(Path(source_path).resolve().parent)
            existing = env.get("PYTHONPATH")
            env["PYTHONPATH"] = (
                os.pathsep.join([source_dir, existing]) if existing else source_dir
            )
        return env


def read_source(path: Path) -> tuple[str, str]:
    """Read a module honouring its PEP 263 coding cookie.

    Returns:
        (text, encoding)
    """
    with tokenize.open(path) as handle:
        return handle.read(), handle.encoding


def harness_path_for(
    source_path: Path | str,
    tmp_dir: Path | str | None = None,
    now_ms: int | None = None,
) -> Path:
    """Temp location for a harness: <tmp>/<stem>.<timestamp-ms>.<pid>.py"""
    directory = Path(tmp_dir) if tmp_dir is not None else harness_tmp_dir()
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    stem = Path(source_path).stem
    return directory / f"{stem}.{now_ms}.{os.getpid()}.py"


def write_harness(text: str, path: Path, encoding: str = "utf-8") -> Path:
    """Create the harness file; never overwrites and leaves nothing behind on failure."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "x", encoding=encoding) as handle:
            handle.write(text)
    except FileExistsError:
        raise
    except BaseException:
        cleanup(path)
        raise
    logger.info("wrote harness path=%s bytes=%d", path, len(text))
    return path


def run_harness(
    harness_path: Path,
    source_path: Path,
    config: InterpreterConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run the harness with inherited stdio and return its exit code.

    Raises:
        OSError: If the interpreter cannot be started.
    """
    config = config or InterpreterConfig()
    argv = config.to_argv(harness_path)
    logger.info("launching harness argv=%s", argv)
    result = subprocess.run(argv, env=config.to_env(source_path, env))
    logger.info("harness exited code=%s", result.returncode)
    return result.returncode


def cleanup(path: Path) -> None:
    """Best-effort removal of a harness file."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("could not remove harness path=%s error=%s", path, exc)


__all__ = [
    "MARKER_ENV",
    "InterpreterConfig",
    "cleanup",
    "harness_path_for",
    "read_source",
    "run_harness",
    "write_harness",
]
