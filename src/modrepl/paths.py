"""Default filesystem locations for modrepl."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

HISTFILE_ENV = "MODREPL_HISTFILE"
HISTFILE_DEFAULT = "~/.modrepl_history"


def harness_tmp_dir() -> Path:
    env_tmp = os.environ.get("MODREPL_TMPDIR")
    if env_tmp:
        return Path(env_tmp).expanduser()
    return Path(tempfile.gettempdir()) / "modrepl"


def history_path_default() -> Path:
    """Resolve the history file the same way the generated harness does."""
    override = os.environ.get(HISTFILE_ENV)
    if override:
        return Path(override).expanduser()
    return Path(HISTFILE_DEFAULT).expanduser()


__all__ = [
    "HISTFILE_ENV",
    "HISTFILE_DEFAULT",
    "harness_tmp_dir",
    "history_path_default",
]
