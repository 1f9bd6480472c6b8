"""
Minotaur command layer: register, resolve, and dispatch hierarchical commands.

What this module provides
- Tool: the façade command authors use
  • command(path, handler, ...) / @tool.command(path): register commands.
  • flag(path, name, ...) / global_flag(name, ...): register typed flags.
  • run(argv): resolve argv, short-circuit help, validate, dispatch.
  • get_flag(name) / get_global_flag(name): read the resolved values.
  • help(path) / render_help(path): contextual help (terminal / plain text).
- source(pattern): runtime inclusion directive; runs other files in the
  caller's global namespace so commands can be split across files. The
  bundler inlines the same directives when flattening a tool.

Quick start
    from minotaur import Tool

    tool = Tool("svc")

    @tool.command("serve")
    def serve(*arguments):
        '''Run the server.'''
        print(tool.get_flag("port"))

    tool.flag("serve", "port", "p", default="8000", descr="port to bind")
    tool.global_flag("verbose", "v", type="bool", descr="chatty output")

    if __name__ == "__main__":
        tool.run()

Runtime modes
- shell=True (default): faults and help are printed; help exits with 0 and
  faults exit with 1 after printing the help of the command being resolved.
- shell=False: faults are raised and help returns None, which suits tests and
  embedding.
"""
from .faults import (
    CommandException,
    CoreInclusionWarning,
    FaultCode,
    UnknownCommandError,
    getdoc,
    trigger,
)
from .helper import helpdoc, render_help
from .registry import GLOBAL, EntryType, Registry
from .resolver import Invocation, Policy, Resolver
from .utils import Unset, coalesce, expand, iscore, normalize, ordinal, rename

# minotaur:core:begin
import copy
import difflib
import functools
import inspect
import os
import shlex
import sys
from collections.abc import Iterable

from rich.console import Console


class Tool(metaclass=EntryType):
    """
    A command-line tool: one registry, one resolver, one dispatch per run.

    Parameters
    - prog: program name (defaults to __prog__ in __main__, then argv[0]).
    - policy: missing string value policy (Policy.EMPTY or Policy.STRICT).
    - shell: print-and-exit (True) or raise-and-return (False).
    - fancy / colorful: panel chrome and palette for help and faults.
    """
    __introspectable__ = (
        "prog",
        "policy",
        "shell",
        "fancy",
        "colorful",
    )

    def __init__(self, prog=Unset, /, *, policy=Policy.EMPTY, shell=True, fancy=False, colorful=False):
        main = __import__("__main__")
        prog = coalesce(prog, getattr(main, "__prog__", os.path.basename(sys.argv[0]) or "tool"))
        if not isinstance(prog, str) or not prog.strip():
            raise TypeError(f"{type(self).__typename__} 'prog' must be a non-empty string")
        self._prog = prog.strip()
        self._policy = policy
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._registry = Registry(report=functools.partial(self.trigger, help=False))
        self._resolver = Resolver(self._registry, policy, prog=self._prog)
        self._invocation = None

    @property
    def registry(self):
        return self._registry

    @property
    def invocation(self):
        """The Invocation of the last run()/resolve(), or None."""
        return self._invocation

    def command(self, path=(), handler=Unset, /, descr=Unset, long=Unset, example=""):
        """
        Register a command, directly or as a decorator.

        Forms
        - tool.command("serve start", handler, descr="...")
        - tool.command("serve", None, descr="...")   # help-only group
        - @tool.command("serve start")

        When descr/long are not given, the handler's docstring provides them:
        the first paragraph is the short description and the rest the long one.
        example is an explicit usage line; "{prog}" is replaced by the program
        name when rendered.

        Returns the handler (decorator-friendly).
        """
        normalize(path)  # fail early on malformed paths, even in decorator form

        @rename("command")
        def wrapper(handler, /):
            if handler is not None and not callable(handler):
                raise TypeError("@command() must be applied to a callable")
            doc = inspect.getdoc(handler) if handler is not None else None
            head, _, tail = (doc or "").partition("\n\n")
            self._registry.register_command(
                path, handler, coalesce(descr, " ".join(head.split())), coalesce(long, tail), example
            )
            return handler

        return wrapper(handler) if handler is not Unset else wrapper

    def flag(self, path, name, short="", /, default="", descr="", type="string", required=False):
        """
        Register a flag for path (or GLOBAL). See Registry.register_flag for
        the warnings raised by malformed or conflicting registrations.
        """
        return self._registry.register_flag(
            path, name, short, default=default, descr=descr, type=type, required=required
        )

    def global_flag(self, name, short="", /, default="", descr="", type="string", required=False):
        """Register a flag visible from every command."""
        return self.flag(GLOBAL, name, short, default, descr, type, required)

    def get_flag(self, name, default=None, /):
        """Value of name as seen by the resolved command (local, inherited, then global)."""
        if self._invocation is None:
            return default
        return self._invocation.get_flag(name, default)

    def get_global_flag(self, name, default=None, /):
        """Value of the global definition of name, ignoring local shadowing."""
        if self._invocation is None:
            return default
        return self._invocation.get_global_flag(name, default)

    def trigger(self, fault, /, *, help=True, **options):
        """
        Surface a fault with this tool's runtime options.

        In shell mode an exception is preceded by the help of the command being
        resolved (the "path" option of the fault), printed on stderr.
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        fault = copy.replace(
            fault, **options, prog=self._prog, shell=self._shell, fancy=self._fancy, colorful=self._colorful
        )
        if help and self._shell and isinstance(fault, CommandException):
            self.help(fault.options.get("path", ()), stderr=True)
        trigger(fault)

    def help(self, path=(), /, *, stderr=False):
        """Print the help of path on the terminal."""
        console = Console(stderr=stderr)
        console.print(helpdoc(
            self._registry,
            path,
            prog=self._prog,
            colorful=self._colorful,
            fancy=self._fancy,
            width=console.width,
            report=functools.partial(self.trigger, help=False),
        ))

    def render_help(self, path=(), /, *, width=100):
        """Return the help of path as plain text."""
        return render_help(
            self._registry,
            path,
            prog=self._prog,
            width=width,
            report=functools.partial(self.trigger, help=False),
        )

    def resolve(self, argv=Unset, /):
        """
        Resolve argv without dispatching. Faults are raised as-is; the result
        is also stored as the current invocation.
        """
        self._invocation = self._resolver.resolve(_tokenize(argv))
        return self._invocation

    def run(self, argv=Unset, /):
        """
        Resolve argv and dispatch to exactly one handler.

        - argv: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.
        - Help requests print help (exit 0 in shell mode, return None otherwise).
        - Faults print help and the fault then exit 1 (shell) or are raised.
        - A command without a handler prints its help when no positional
          arguments remain; leftover arguments are an unknown command.

        Returns whatever the handler returns.
        """
        tokens = _tokenize(argv)

        root = self._registry.get(())
        if not tokens and (root is None or root.handler is None):
            self._invocation = Invocation()
            self.help()
            return self._exit(0)

        try:
            self._invocation = invocation = self._resolver.resolve(tokens)
        except CommandException as fault:
            return self.trigger(fault)

        if invocation.help:
            self.help(invocation.path)
            return self._exit(0)

        command = self._registry.get(invocation.path)
        if command is None or command.handler is None:
            if not invocation.arguments:
                self.help(invocation.path)
                return self._exit(0)
            return self.trigger(self._unknown(invocation, tokens))

        return command.handler(*invocation.arguments)

    def _exit(self, status):
        if self._shell:
            sys.exit(status)
        return None

    def _unknown(self, invocation, tokens):
        path = invocation.path
        input = invocation.arguments[0]
        try:
            position = tokens.index(input, len(path)) + 1
        except ValueError:
            position = len(path) + 1
        names = [child.path[-1] for child in self._registry.children(path)]
        suggestions = difflib.get_close_matches(input, names, 5)
        typeof = "subcommand" if path else "command"
        route = " ".join((self._prog, *path))
        try:
            hint = "did you mean %r? you can also run '%s --help' to see available %ss" % (
                suggestions[0], route, typeof
            )
        except IndexError:
            hint = "run '%s --help' to see available %ss" % (route, typeof)
        return UnknownCommandError(
            "unknown %s %r at %s position" % (typeof, input, ordinal(position)),
            title="unknown %s" % typeof,
            code=FaultCode.UNKNOWN_COMMAND,
            input=input,
            index=position,
            path=path,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_COMMAND),
        )


def _tokenize(argv):
    """
    Normalize argv into a list of tokens.

    - Unset: sys.argv[1:].
    - str: shell-like string, split with shlex.split.
    - Iterable[str]: used as-is (items are not trimmed; empty strings are kept).
    """
    if argv is Unset:
        return sys.argv[1:]
    if isinstance(argv, str):
        return shlex.split(argv)
    if isinstance(argv, Iterable):
        tokens = list(argv)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("run() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("run() argument must be a string or an iterable of strings")


def source(pattern, /):
    """
    Run the file(s) named by pattern in the caller's global namespace.

    Resolution
    - relative paths and "{here}" resolve against the directory of the
      calling file (its __file__), or the working directory without one.
    - glob patterns run every match in sorted order; no match is an error.

    Behavior
    - files run through exec() against the caller's globals, so whatever
      they define (commands, flags, functions, variables) is shared with
      the caller, as with a shell's source builtin.
    - each file runs at most once per namespace (repeats are skipped, which
      also makes inclusion cycles terminate).
    - __file__ points at the sourced file while it runs.
    - the framework's own modules are skipped with CoreInclusionWarning.

    Raises
    - FileNotFoundError: nothing matches pattern.
    - TypeError: pattern is not a string.
    """
    if not isinstance(pattern, str):
        raise TypeError("source() argument must be a string")

    frame = inspect.currentframe().f_back
    try:
        namespace = frame.f_globals
    finally:
        del frame

    origin = os.path.abspath(namespace.get("__file__") or os.path.join(os.getcwd(), "-"))
    base = os.path.dirname(origin)
    if (sourced := namespace.get("__sourced__")) is None:
        sourced = namespace["__sourced__"] = {os.path.realpath(origin)}

    for path in expand(pattern, base):
        if iscore(path):
            trigger(CoreInclusionWarning(
                "%r is part of the framework and is already loaded; it was not sourced" % pattern,
                title="framework inclusion skipped",
                code=FaultCode.CORE_INCLUSION,
                hint="remove the source() line; import from the package instead",
                docs=getdoc(FaultCode.CORE_INCLUSION),
            ))
            continue
        if path in sourced:
            continue
        sourced.add(path)

        with open(path, encoding="utf-8") as file:
            code = compile(file.read(), path, "exec")

        previous = namespace.get("__file__", Unset)
        namespace["__file__"] = path
        try:
            exec(code, namespace)
        finally:
            if previous is Unset:
                namespace.pop("__file__", None)
            else:
                namespace["__file__"] = previous
# minotaur:core:end


__all__ = (
    # Public API surface for consumers of minotaur.commands.
    "Tool",
    "source",
)
