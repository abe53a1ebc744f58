"""Interactive session code appended to every generated harness.

The text below runs in the same global namespace as the user's module, after
the module body has executed. Every name it binds carries the ``__modrepl__``
prefix, and the builtins it calls are bound under prefixed aliases so that a
module defining its own ``print`` or ``open`` does not break the session.

No classes are defined here: inside a class body Python would mangle the
``__modrepl__*`` references.

The synthesizer defines ``__modrepl__all_symbols`` (list of names) and
``__modrepl__options`` (dict of HarnessOptions fields) before this text.
"""

from __future__ import annotations

import textwrap

SESSION_BOOTSTRAP = textwrap.dedent('''
    import builtins as __modrepl__builtins
    import codeop as __modrepl__codeop
    import os as __modrepl__os
    import subprocess as __modrepl__subprocess
    import sys as __modrepl__sys
    import traceback as __modrepl__traceback
    from builtins import (
        compile as __modrepl__compile,
        eval as __modrepl__eval,
        exec as __modrepl__exec,
        globals as __modrepl__globals,
        input as __modrepl__input,
        issubclass as __modrepl__issubclass,
        len as __modrepl__len,
        open as __modrepl__open,
        print as __modrepl__print,
    )

    __modrepl__QUIT_COMMANDS = (":q", ":quit", ":exit")

    # Mutable session state shared by the helpers below
    __modrepl__session = {"flush": None}


    def __modrepl__noop(*args):
        return None


    def __modrepl__load_exports(namespace):
        """Return the module's exported mapping: __all__ first, then captured symbols.

        The symbol list is consulted too because a module may rebind __all__
        after earlier names were already counted as exported.
        """
        exported = {}
        for names in (namespace.get("__all__", ()), __modrepl__all_symbols):
            for name in names:
                if name in namespace and name not in exported:
                    exported[name] = namespace[name]
        return exported


    def __modrepl__list_available_symbols():
        """Print the module's top-level symbols."""
        __modrepl__print("available top-level symbols:")
        __modrepl__print("\\n".join(__modrepl__all_symbols))


    def __modrepl__history_path():
        override = __modrepl__os.environ.get(__modrepl__options["history_env"])
        if override:
            return __modrepl__os.path.expanduser(override)
        return __modrepl__os.path.expanduser(__modrepl__options["history_default"])


    def __modrepl__input_complete(source):
        if source.strip().startswith(":"):
            return True
        try:
            return __modrepl__codeop.compile_command(source, "<modrepl>", "single") is not None
        except (SyntaxError, ValueError, OverflowError):
            # let the evaluator report it
            return True


    def __modrepl__readline_history(path):
        """Attach readline history; returns (record, flush)."""
        import readline

        readline.read_history_file(path)
        state = {"flushed": readline.get_current_history_length()}
        # input() only goes through readline on a terminal
        interactive = __modrepl__sys.stdin.isatty()

        def record(line):
            if not interactive and line.strip():
                readline.add_history(line)

        def flush():
            length = readline.get_current_history_length()
            if length > state["flushed"]:
                readline.append_history_file(length - state["flushed"], path)
                state["flushed"] = length

        return record, flush


    def __modrepl__plain_reader(record):
        def read():
            lines = []
            while True:
                prompt = __modrepl__options["continuation_prompt"] if lines else __modrepl__options["prompt"]
                try:
                    line = __modrepl__input(prompt)
                except KeyboardInterrupt:
                    __modrepl__print("\\nKeyboardInterrupt")
                    lines = []
                    continue
                record(line)
                lines.append(line)
                source = "\\n".join(lines)
                if __modrepl__input_complete(source):
                    return source

        return read


    def __modrepl__prompt_toolkit_reader(path):
        from prompt_toolkit import PromptSession
        from prompt_toolkit.history import FileHistory
        from prompt_toolkit.key_binding import KeyBindings

        key_bindings = KeyBindings()

        @key_bindings.add("enter")
        def _(event):
            buffer = event.current_buffer
            if buffer.cursor_position != __modrepl__len(buffer.text):
                buffer.insert_text("\\n")
            elif __modrepl__input_complete(buffer.text):
                buffer.validate_and_handle()
            else:
                buffer.insert_text("\\n")

        @key_bindings.add("escape", "enter")
        def _(event):
            event.current_buffer.insert_text("\\n")

        session = PromptSession(
            __modrepl__options["prompt"],
            multiline=True,
            key_bindings=key_bindings,
            history=FileHistory(path),
            prompt_continuation=__modrepl__options["continuation_prompt"],
        )

        def read():
            while True:
                try:
                    return session.prompt()
                except KeyboardInterrupt:
                    continue

        return read


    def __modrepl__use_prompt_toolkit():
        editor = __modrepl__options["line_editor"]
        if editor == "readline":
            return False
        if not (__modrepl__sys.stdin.isatty() and __modrepl__sys.stdout.isatty()):
            return False
        try:
            import prompt_toolkit
        except ImportError:
            if editor == "prompt_toolkit":
                __modrepl__print(
                    "prompt_toolkit is not installed, falling back to readline",
                    file=__modrepl__sys.stderr,
                )
            return False
        return True


    def __modrepl__attach_history(path):
        """Return (read, flush) for the selected line editor."""
        directory = __modrepl__os.path.dirname(path)
        if directory:
            __modrepl__os.makedirs(directory, exist_ok=True)
        # creates the file; FileHistory would only fail on the first write
        with __modrepl__open(path, "a", encoding="utf-8"):
            pass
        if __modrepl__use_prompt_toolkit():
            return __modrepl__prompt_toolkit_reader(path), __modrepl__noop
        record, flush = __modrepl__readline_history(path)
        return __modrepl__plain_reader(record), flush


    def __modrepl__flush_history():
        flush = __modrepl__session["flush"]
        if flush is None:
            return
        try:
            flush()
        except OSError as exc:
            __modrepl__print(f"Error saving REPL history: {exc}", file=__modrepl__sys.stderr)


    def __modrepl__report_error():
        exc_type, exc, tb = __modrepl__sys.exc_info()
        if __modrepl__issubclass(exc_type, SyntaxError):
            lines = __modrepl__traceback.format_exception_only(exc_type, exc)
        else:
            # drop the evaluator's own frame
            lines = __modrepl__traceback.format_exception(exc_type, exc, tb.tb_next)
        __modrepl__sys.stderr.write("".join(lines))
        __modrepl__sys.stderr.flush()


    def __modrepl__evaluate(source, context):
        """Run one input against the context and report the outcome."""
        if not source.strip():
            return
        snapshot = context.copy()
        try:
            try:
                code = __modrepl__compile(source, "<modrepl>", "eval")
                is_expression = True
            except SyntaxError:
                code = __modrepl__compile(source, "<modrepl>", "exec")
                is_expression = False
            if is_expression:
                __modrepl__sys.displayhook(__modrepl__eval(code, context))
            else:
                __modrepl__exec(code, context)
        except SystemExit:
            raise
        except BaseException:
            context.clear()
            context.update(snapshot)
            __modrepl__report_error()
        __modrepl__sys.stdout.flush()


    def __modrepl__reload():
        """Restart the session from the current state of the source file."""
        argv = __modrepl__options["reload_argv"]
        if not argv:
            __modrepl__print("reload is disabled for this session", file=__modrepl__sys.stderr)
            return
        __modrepl__flush_history()
        __modrepl__print("reloading...")
        __modrepl__sys.stdout.flush()
        try:
            result = __modrepl__subprocess.run(argv)
        except OSError as exc:
            __modrepl__print(f"reload failed: {exc}", file=__modrepl__sys.stderr)
            return
        raise SystemExit(result.returncode)


    def __modrepl__build_context(namespace):
        """Ambient console globals overlaid with the module's exports."""
        context = {
            "__name__": "__console__",
            "__doc__": None,
            "__builtins__": __modrepl__builtins,
        }
        context.update(__modrepl__load_exports(namespace))
        context.setdefault("list_symbols", __modrepl__list_available_symbols)
        if __modrepl__options["reload_argv"]:
            context.setdefault("reload", __modrepl__reload)
        return context


    def __modrepl__run(context, read):
        while True:
            try:
                source = read()
            except EOFError:
                __modrepl__print()
                return
            command = source.strip()
            if command in __modrepl__QUIT_COMMANDS:
                return
            if command == ":symbols":
                __modrepl__list_available_symbols()
                continue
            if command == ":reload":
                __modrepl__reload()
                continue
            __modrepl__evaluate(source, context)


    def __modrepl__main(namespace):
        context = __modrepl__build_context(namespace)
        if __modrepl__options["source_path"]:
            __modrepl__print(f"modrepl: {__modrepl__options['source_path']}")
        path = __modrepl__history_path()
        try:
            read, flush = __modrepl__attach_history(path)
        except Exception as exc:
            __modrepl__print(f"Error setting up REPL history: {exc}", file=__modrepl__sys.stderr)
            read = __modrepl__plain_reader(__modrepl__noop)
        else:
            __modrepl__session["flush"] = flush
            __modrepl__print(f"history: {path}")
        __modrepl__list_available_symbols()
        try:
            __modrepl__run(context, read)
        finally:
            __modrepl__flush_history()


    __modrepl__main(__modrepl__globals())
''').lstrip("\n")


__all__ = ["SESSION_BOOTSTRAP"]
