"""
Minotaur faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain (routing, flags, validation, operands, bundling).
- CommandException / CommandWarning: base types that carry message + options and
  render themselves with rich (header, one-sentence body, a single hint).
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Integration
- The resolver raises CommandException subclasses; the tool enriches them with
  its runtime options and calls trigger(fault).
- Registration problems are warnings: the registry reports them and continues.
- In non-shell mode exceptions are raised and warnings go through warnings.warn;
  in shell mode both are rendered on stderr (exceptions then exit with status 1).

Host hooks (looked up in __main__)
- __prog__: program name shown in headers.
- __styles__: palette overrides.
- __codes__: mapping FaultCode -> label, to remap the printed codes.
- __docs__: mapping FaultCode -> documentation string.
"""
# minotaur:core:begin
import copy
import inspect
import os
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the framework (stable identifiers).

    grouping
    - routing (1110x): UNKNOWN_COMMAND, UNKNOWN_HELP_TARGET
    - flags (1111x): MALFORMED_TOKEN, UNKNOWN_FLAG, INVALID_BOOLEAN,
      MISSING_VALUE, MALFORMED_GROUP
    - validation (1112x): MISSING_REQUIRED
    - operands (1113x): MISSING_OPERAND, UNEXPECTED_OPERAND
    - bundling (1114x): UNREADABLE_FILE, UNRESOLVABLE_DEPENDENCY,
      UNWRITABLE_OUTPUT, MISSING_CORE_MARKER
    - warnings (12xxx): registration (1210x/1211x), help (1212x), bundling (1214x)
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND              = 11101
    UNKNOWN_HELP_TARGET          = 11102

    # --- flag errors (11xxx) ---
    MALFORMED_TOKEN              = 11111
    UNKNOWN_FLAG                 = 11112
    INVALID_BOOLEAN              = 11113
    MISSING_VALUE                = 11114
    MALFORMED_GROUP              = 11115

    # --- validation errors (11xxx) ---
    MISSING_REQUIRED             = 11121

    # --- operand errors (11xxx) ---
    MISSING_OPERAND              = 11131
    UNEXPECTED_OPERAND           = 11132

    # --- bundling errors (11xxx) ---
    UNREADABLE_FILE              = 11141
    UNRESOLVABLE_DEPENDENCY      = 11142
    UNWRITABLE_OUTPUT            = 11143
    MISSING_CORE_MARKER          = 11144

    # --- warnings (12xxx) ---
    COMMAND_OVERWRITE            = 12101
    RESERVED_NAME                = 12102
    MALFORMED_FLAG               = 12111
    DUPLICATE_SHORT_ALIAS        = 12112
    FLAG_OVERWRITE               = 12113
    UNKNOWN_HELP_TARGET_FALLBACK = 12121
    CORE_INCLUSION               = 12141
    MISSING_INVOCATION           = 12142
    QUALIFIED_IMPORT             = 12143

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette):
    """
    Build the rich renderable shared by errors and warnings.

    Layout: "[ prog — code | Title ]", the message, then " → hint". In fancy
    mode the message and hint are wrapped in a panel titled by the header.
    """
    main = __import__("__main__")
    options = fault.options
    colorful = options.get("colorful", False)
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    prog = getattr(main, "__prog__", options.get("prog") or os.path.basename(sys.argv[0]))
    code = options.get("code")
    kind = "warning" if isinstance(fault, Warning) else "error"

    header = Text.assemble(
        "[ ",
        text(prog, styler("prog-name")),
        " — ",
        text(code.normalize() if code is not None else "?", styler("code")),
        " | ",
        text(options.get("title", kind).title(), styler(f"{kind}-title")),
        " ]"
    )
    message = text(fault.message, styler(f"{kind}-message"))
    renders = [message]
    if hint := options.get("hint"):
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

    if options.get("fancy", False):
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class CommandException(Exception):
    """
    Base class of every fatal, user-facing fault.

    message is a one-sentence description; options carry the context used for
    rendering and recovery (title, code, hint, path, suggestions, ...).
    """

    def __init__(self, message="", /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownCommandError(CommandException): ...
class MalformedTokenError(CommandException): ...
class UnknownFlagError(CommandException): ...
class InvalidBooleanError(CommandException): ...
class MissingValueError(CommandException): ...
class MalformedGroupError(CommandException): ...
class MissingRequiredFlagError(CommandException): ...
class MissingOperandError(CommandException): ...
class UnexpectedOperandError(CommandException): ...


class BundleError(CommandException):
    """Base class of the faults that abort a bundling run."""


class UnreadableFileError(BundleError): ...
class UnresolvableDependencyError(BundleError): ...
class UnwritableOutputError(BundleError): ...
class MissingCoreMarkerError(BundleError): ...


class CommandWarning(ABC, Warning):
    """
    Base class of every non-fatal fault (registration problems, help
    fallbacks, bundling notices). Same shape as CommandException.
    """

    def __init__(self, message="", /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        })

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class CommandOverwriteWarning(CommandWarning): ...
class ReservedNameWarning(CommandWarning): ...
class MalformedFlagWarning(CommandWarning): ...
class DuplicateShortAliasWarning(CommandWarning): ...
class FlagOverwriteWarning(CommandWarning): ...
class UnknownHelpTargetWarning(CommandWarning): ...
class CoreInclusionWarning(CommandWarning): ...
class MissingInvocationWarning(CommandWarning): ...
class QualifiedImportWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace before triggering.
    - in shell mode, rendering happens via the rich stderr console; otherwise
      exceptions are raised and warnings are issued with warnings.warn.

    typical options
    - prog, shell, fancy, colorful, title, code, hint, docs, path, and any other
      context the reporter may want to show (input, index, suggestions, ...).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings; when
    not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None
# minotaur:core:end


__all__ = (
    "CommandException",
    "UnknownCommandError",
    "MalformedTokenError",
    "UnknownFlagError",
    "InvalidBooleanError",
    "MissingValueError",
    "MalformedGroupError",
    "MissingRequiredFlagError",
    "MissingOperandError",
    "UnexpectedOperandError",
    "BundleError",
    "UnreadableFileError",
    "UnresolvableDependencyError",
    "UnwritableOutputError",
    "MissingCoreMarkerError",
    "CommandWarning",
    "CommandOverwriteWarning",
    "ReservedNameWarning",
    "MalformedFlagWarning",
    "DuplicateShortAliasWarning",
    "FlagOverwriteWarning",
    "UnknownHelpTargetWarning",
    "CoreInclusionWarning",
    "MissingInvocationWarning",
    "QualifiedImportWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
