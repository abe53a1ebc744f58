"""End-to-end tests for the generated session bootstrap.

Each test writes a harness for a small module and drives it over a pipe, the
same way the launcher runs it, minus the inherited terminal.
"""

import os
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from modrepl.harness.launch import InterpreterConfig
from modrepl.harness.synthesize import HarnessOptions, build_harness


MODULE = textwrap.dedent("""
    import json
    from collections import OrderedDict

    __all__ = ["greet"]

    GREETING = "hello"


    def greet(name):
        return f"{GREETING}, {name}"


    def _double(value):
        return value * 2


    class Counter:
        def __init__(self):
            self.count = 0


    if __name__ == "__main__":
        print("MAIN BLOCK RAN")
""")


@pytest.fixture
def session(tmp_path: Path):
    """Return a runner: (stdin, source=MODULE, **option overrides) -> CompletedProcess."""

    def run(
        stdin: str,
        source: str = MODULE,
        config: InterpreterConfig | None = None,
        env: dict | None = None,
        **options,
    ) -> subprocess.CompletedProcess:
        options.setdefault("line_editor", "readline")
        harness, _ = build_harness(source, HarnessOptions(**options))
        source_path = tmp_path / "module.py"
        source_path.write_text(source, encoding="utf-8")
        harness_path = tmp_path / "module.harness.py"
        harness_path.write_text(harness, encoding="utf-8")

        config = config or InterpreterConfig(strict=False, run_name="__modrepl__")
        base_env = dict(os.environ)
        base_env["TERM"] = "dumb"
        base_env["MODREPL_HISTFILE"] = str(tmp_path / "history")
        base_env.update(env or {})
        return subprocess.run(
            config.to_argv(harness_path),
            input=stdin,
            capture_output=True,
            text=True,
            env=config.to_env(source_path, base_env),
            timeout=60,
        )

    return run


def outputs(result: subprocess.CompletedProcess) -> list[str]:
    """Text printed after each primary prompt."""
    return [chunk.strip() for chunk in result.stdout.split(">>> ")[1:]]


class TestStartup:
    """Tests for the Starting state."""

    def test_prints_history_and_symbols(self, session, tmp_path):
        """History location and the symbol list are shown before the prompt."""
        result = session("")

        header = result.stdout.split(">>> ")[0]
        assert f"history: {tmp_path / 'history'}" in header
        assert "available top-level symbols:" in header
        for name in ["json", "OrderedDict", "GREETING", "greet", "_double", "Counter"]:
            assert f"\n{name}\n" in header
        assert result.returncode == 0

    def test_banner_shows_source_path(self, session):
        result = session("", source_path="/src/module.py")

        assert result.stdout.startswith("modrepl: /src/module.py")

    def test_every_symbol_resolvable(self, session):
        """No captured symbol is missing from the evaluation context."""
        names = ["json", "OrderedDict", "GREETING", "greet", "_double", "Counter"]
        result = session(f"[n for n in {names!r} if n not in globals()]\n")

        assert "[]" in outputs(result)

    def test_private_and_unexported_callable(self, session):
        """Names outside __all__ are usable."""
        result = session("_double(21)\ngreet('world')\nCounter().count\n")

        assert outputs(result)[:3] == ["42", "'hello, world'", "0"]

    def test_main_block_dormant(self, session):
        """The harness does not run as __main__ by default."""
        result = session("")

        assert "MAIN BLOCK RAN" not in result.stdout

    def test_main_block_runs_as_main(self, session):
        result = session("", config=InterpreterConfig(strict=False))

        assert "MAIN BLOCK RAN" in result.stdout

    def test_module_symbols_win_over_helpers(self, session):
        """A module binding named like a helper keeps the module's value."""
        result = session("list_symbols\n", source="list_symbols = 'mine'\n")

        assert "'mine'" in outputs(result)

    def test_shadowed_builtins_do_not_break_session(self, session):
        """A module defining print/input/open still gets a working session."""
        source = textwrap.dedent("""
            def print(*args, **kwargs):
                raise RuntimeError("shadowed print")

            def input(prompt=""):
                raise RuntimeError("shadowed input")

            def open(*args, **kwargs):
                raise RuntimeError("shadowed open")
        """)
        result = session("1 + 1\n", source=source)

        assert "2" in outputs(result)
        assert "shadowed" not in result.stderr

    def test_module_defining_list_and_globals(self, session):
        """Exports still load when the module rebinds list and globals."""
        source = textwrap.dedent("""
            def list():
                return ["a", "b"]

            def globals():
                return {}

            def show(item):
                return item
        """)
        result = session("show(1)\nlist()\n", source=source)

        assert result.returncode == 0, result.stderr
        assert outputs(result)[:2] == ["1", "['a', 'b']"]

    def test_module_defining_issubclass(self, session):
        """Error reporting does not depend on the module's issubclass."""
        source = "def issubclass(*args):\n    raise RuntimeError('shadowed issubclass')\n"
        result = session("1 / 0\n1 + 1\n", source=source)

        assert "ZeroDivisionError" in result.stderr
        assert "shadowed" not in result.stderr
        assert "2" in outputs(result)

    def test_rebound_export_list(self, session):
        """Names dropped by a later __all__ assignment still reach the context."""
        source = '__all__ = ["a"]\na = 1\nb = 2\n__all__ = ["b"]\n'
        result = session("(a, b)\n", source=source)

        assert "(1, 2)" in outputs(result)
        assert "NameError" not in result.stderr

    def test_marker_environment(self, session):
        """The session can tell it runs inside modrepl."""
        result = session("import os\n(os.environ['REPL'], os.environ['MODREPL'])\n")

        assert "('1', '1')" in outputs(result)

    def test_source_directory_importable(self, session, tmp_path):
        """Sibling modules of the source file resolve."""
        (tmp_path / "sibling.py").write_text("VALUE = 99\n", encoding="utf-8")
        result = session("VALUE\n", source="from sibling import VALUE\n")

        assert "99" in outputs(result)


class TestEvaluation:
    """Tests for the Evaluating state."""

    def test_expression_value_reported(self, session):
        """1 + 1 prints 2."""
        result = session("1 + 1\n")

        assert outputs(result)[0] == "2"

    def test_expression_leaves_context_unchanged(self, session):
        """Evaluating an expression binds nothing new in the context."""
        result = session(
            "before = None\n"
            "before = sorted(globals())\n"
            "1 + 1\n"
            "sorted(globals()) == before\n"
        )

        assert outputs(result)[2:4] == ["2", "True"]

    def test_bindings_are_cumulative(self, session):
        """x = 5 then x + 1 gives 6."""
        result = session("x = 5\nx + 1\n")

        assert outputs(result)[:2] == ["", "6"]

    def test_none_prints_nothing(self, session):
        result = session("None\n")

        assert outputs(result)[0] == ""

    def test_error_does_not_end_session(self, session):
        """A failing input is reported and the next one still runs."""
        result = session("1 / 0\ngreet('again')\n")

        assert "ZeroDivisionError" in result.stderr
        assert "'hello, again'" in outputs(result)
        assert result.returncode == 0

    def test_error_traceback_hides_harness_frames(self, session):
        result = session("_double()\n")

        assert "TypeError" in result.stderr
        assert "__modrepl__evaluate" not in result.stderr

    def test_syntax_error_reported(self, session):
        result = session("1 +* 2\n3\n")

        assert "SyntaxError" in result.stderr
        assert "3" in outputs(result)

    def test_failed_input_restores_bindings(self, session):
        """Bindings made by an input that then fails are rolled back."""
        result = session("y = 1\ny = 2; z = 3; 1 / 0\ny\n'z' in globals()\n")

        assert outputs(result)[2:4] == ["1", "False"]

    def test_multiline_definition(self, session):
        """Compound statements continue until a blank line."""
        result = session("def add(a, b):\n    return a + b\n\nadd(2, 3)\n")

        assert "5" in outputs(result)

    def test_system_exit_ends_session(self, session):
        result = session("raise SystemExit(3)\nprint('unreachable')\n")

        assert result.returncode == 3
        assert "unreachable" not in result.stdout


class TestCommands:
    """Tests for meta-commands and helpers."""

    def test_list_symbols_helper(self, session):
        result = session("list_symbols()\n")

        assert result.stdout.count("available top-level symbols:") == 2

    def test_symbols_command(self, session):
        result = session(":symbols\n")

        assert result.stdout.count("available top-level symbols:") == 2

    def test_quit_command(self, session):
        result = session(":quit\nprint('after quit')\n")

        assert "after quit" not in result.stdout
        assert result.returncode == 0

    def test_reload_disabled(self, session):
        result = session(":reload\n1\n")

        assert "reload is disabled" in result.stderr
        assert "1" in outputs(result)

    def test_reload_spawns_command(self, session):
        """:reload runs the original invocation and exits with its code."""
        argv = [sys.executable, "-c", "print('child session'); raise SystemExit(4)"]
        result = session(":reload\nprint('old session')\n", reload_argv=argv)

        assert "child session" in result.stdout
        assert "old session" not in result.stdout
        assert result.returncode == 4

    def test_reload_helper(self, session):
        argv = [sys.executable, "-c", "print('child session')"]
        result = session("reload()\n", reload_argv=argv)

        assert "child session" in result.stdout
        assert result.returncode == 0


class TestHistory:
    """Tests for history persistence."""

    @pytest.fixture(autouse=True)
    def _needs_readline(self):
        pytest.importorskip("readline")

    def test_history_file_created_and_appended(self, session, tmp_path):
        history = tmp_path / "history"

        session("1 + 1\n")
        first = history.read_text()
        session("2 + 2\n")
        second = history.read_text()

        assert "1 + 1" in first
        assert second.startswith(first)
        assert "2 + 2" in second

    def test_history_env_override(self, session, tmp_path):
        custom = tmp_path / "nested" / "custom_history"
        result = session("3 + 3\n", env={"MODREPL_HISTFILE": str(custom)})

        assert f"history: {custom}" in result.stdout
        assert "3 + 3" in custom.read_text()

    @pytest.mark.parametrize("line_editor", ["readline", "prompt_toolkit", "auto"])
    def test_history_setup_failure_is_not_fatal(self, session, tmp_path, line_editor):
        """An unusable history path is reported at startup, for every line editor."""
        result = session(
            "1 + 1\n",
            env={"MODREPL_HISTFILE": str(tmp_path)},
            line_editor=line_editor,
        )

        assert "Error setting up REPL history" in result.stderr
        assert "2" in outputs(result)
        assert result.returncode == 0
