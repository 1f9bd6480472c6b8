"""
Minotaur registry: command nodes, flag definitions, and their lookup rules.

What this module provides
- Command: one registered command path with its handler and help metadata.
- Flag: one typed flag definition ("string" or "bool") bound to a scope.
- Registry: the flat stores the resolver and the help renderer read from
  • commands keyed by normalized path (children are a derived prefix view),
  • flags keyed by (scope, name), where scope is a path or GLOBAL,
  • one flat short-alias table (alias -> long name, first registration wins).
- GLOBAL: the scope sentinel for flags visible from every command.

Lookup rules
- A command sees, by name, its own flags, then the flags of its ancestors
  (nearest first), then the global flags. The first definition found wins,
  so a local definition shadows an inherited or global one for that command
  only.
- Registration never raises on user-level mistakes; it reports a warning
  through the report callable and skips or overwrites (see register_flag).
"""
from .faults import (
    CommandOverwriteWarning,
    DuplicateShortAliasWarning,
    FaultCode,
    FlagOverwriteWarning,
    MalformedFlagWarning,
    ReservedNameWarning,
    getdoc,
    trigger,
)
from .utils import denormalize, mirror, normalize, rename

# minotaur:core:begin
import copy
import functools
import operator
import re
from typing import final


class EntryType(type):
    """
    Metaclass giving registry entries a readable, introspectable shape.

    - __typename__ is derived from the class name (camel-case split with hyphens).
    - Every name listed in __introspectable__ becomes a read-only property
      mirroring the private "_name" field.
    - __repr__/__rich_repr__ show the introspectable fields.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


@final
class GlobalScope:
    """Scope sentinel for flags registered for every command."""

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __repr__(self):
        return "GLOBAL"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'GlobalScope' is not an acceptable base type")


GLOBAL = GlobalScope()


class Command(metaclass=EntryType):
    """
    A registered command: path, handler and help metadata.

    handler is an opaque callable (or None for a help-only group); it is
    called with the resolved positional arguments.
    """
    __introspectable__ = (
        "path",
        "handler",
        "descr",
        "long",
        "example",
    )

    def __init__(self, path, handler=None, /, descr="", long="", example=""):
        if handler is not None and not callable(handler):
            raise TypeError(f"{type(self).__typename__} handler must be callable or None")
        for label, value in (("descr", descr), ("long", long), ("example", example)):
            if not isinstance(value, str):
                raise TypeError(f"{type(self).__typename__} {label!r} must be a string")
        self._path = normalize(path)
        self._handler = handler
        self._descr = descr.strip()
        self._long = long.strip()
        self._example = example.strip()

    @property
    def name(self):
        """The user-facing spelling of the path ("" for the root)."""
        return denormalize(self._path)


_TYPES = {
    "string": "string",
    "str": "string",
    str: "string",
    "bool": "bool",
    "boolean": "bool",
    bool: "bool",
}

_BOOLEANS = {
    True: "true",
    False: "false",
    None: "false",
    "": "false",
    "true": "true",
    "false": "false",
}

_NAME = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]*")
_SHORT = re.compile(r"[A-Za-z0-9]")


class Flag(metaclass=EntryType):
    """
    A typed flag definition.

    Values (including defaults) are strings: bool flags hold "true"/"false",
    string flags hold their text. The constructor validates every field and
    raises ValueError/TypeError; the registry turns those into warnings.
    """
    __introspectable__ = (
        "name",
        "short",
        "default",
        "descr",
        "type",
        "required",
        "scope",
    )

    def __init__(self, name, short="", /, default="", descr="", type="string", required=False, scope=GLOBAL):
        if not isinstance(name, str) or not _NAME.fullmatch(name):
            raise ValueError(f"invalid flag name {name!r}")
        if short is None:
            short = ""
        if not isinstance(short, str) or short and not _SHORT.fullmatch(short):
            raise ValueError(f"invalid short alias {short!r} for flag '--{name}'")
        try:
            self._type = _TYPES[type]
        except (KeyError, TypeError):
            raise ValueError(f"invalid type {type!r} for flag '--{name}' (expected 'string' or 'bool')") from None

        if self._type == "bool":
            try:
                default = _BOOLEANS[default.lower() if isinstance(default, str) else default]
            except (KeyError, TypeError):
                raise ValueError(f"invalid default {default!r} for boolean flag '--{name}'") from None
        elif default is None:
            default = ""
        elif not isinstance(default, str | int | float) or isinstance(default, bool):
            raise ValueError(f"invalid default {default!r} for string flag '--{name}'")

        if not isinstance(descr, str):
            raise TypeError(f"{self.__typename__} 'descr' must be a string")

        self._name = name
        self._short = short
        self._default = str(default)
        self._descr = descr.strip()
        self._required = bool(required)
        self._scope = scope if scope is GLOBAL else normalize(scope)

    @property
    def boolean(self):
        return self._type == "bool"

    @property
    def switches(self):
        """The display form used by help and messages ("-p, --port" or "--host")."""
        return f"-{self._short}, --{self._name}" if self._short else f"--{self._name}"

    def __replace__(self, **overrides):
        fields = {name: getattr(self, name) for name in type(self).__introspectable__} | overrides
        name, short = fields.pop("name"), fields.pop("short")
        return type(self)(name, short, **fields)


class Registry:
    """
    Command and flag registry.

    Parameters
    - report: callable receiving CommandWarning instances for registration
      problems (defaults to faults.trigger, i.e. warnings.warn outside a shell).

    Registration
    - register_command(path, handler, descr, long, example)
    - register_flag(scope, name, short, default, descr, type, required)

    Queries
    - get(path) / path in registry
    - children(path): direct children, derived by prefix search and sorted.
    - flags(scope): the definitions registered at exactly that scope.
    - reachable(path): name -> definition visible from path.
    - alias(short): long name bound to a short alias.
    """

    def __init__(self, *, report=trigger):
        if not callable(report):
            raise TypeError("registry 'report' must be callable")
        self._commands = {}
        self._flags = {}
        self._aliases = {}
        self._report = report

    def __contains__(self, path):
        try:
            return normalize(path) in self._commands
        except (TypeError, ValueError):
            return False

    def __iter__(self):
        return iter(sorted(self._commands))

    def __len__(self):
        return len(self._commands)

    def get(self, path, /):
        return self._commands.get(normalize(path))

    def register_command(self, path, handler=None, /, descr="", long="", example=""):
        """
        Register (or overwrite) the command at path.

        - The top-level "help" command is reserved for the help verb: it is
          reported with ReservedNameWarning and skipped.
        - Re-registering a path overwrites it and reports CommandOverwriteWarning.

        Returns the new Command, or None when the registration was skipped.
        Malformed paths raise ValueError (programming error).
        """
        command = Command(path, handler, descr, long, example)

        if command.path == ("help",):
            self._report(ReservedNameWarning(
                "command 'help' is reserved for the help verb and was not registered",
                title="reserved command name",
                code=FaultCode.RESERVED_NAME,
                hint="pick another name; 'help <command>' already renders help",
                docs=getdoc(FaultCode.RESERVED_NAME),
            ))
            return None

        if command.path in self._commands:
            self._report(CommandOverwriteWarning(
                "command %r is already registered and was overwritten" % (command.name or "<root>"),
                title="command overwritten",
                code=FaultCode.COMMAND_OVERWRITE,
                hint="remove the duplicated registration to silence this warning",
                path=command.path,
                docs=getdoc(FaultCode.COMMAND_OVERWRITE),
            ))

        self._commands[command.path] = command
        return command

    def register_flag(self, scope, name, short="", /, default="", descr="", type="string", required=False):
        """
        Register a flag at scope (a command path or GLOBAL).

        Problems are reported, never raised:
        - malformed name, alias, type or default: MalformedFlagWarning, skipped.
        - the "help" flag: ReservedNameWarning, skipped.
        - the "h" alias: ReservedNameWarning, flag kept without the alias.
        - an alias bound to another long name: DuplicateShortAliasWarning,
          flag kept without the alias (first registration wins).
        - same (scope, name) again: FlagOverwriteWarning, replaced.

        Returns the stored Flag, or None when the registration was skipped.
        Malformed scopes raise ValueError (programming error), like paths.
        """
        if scope is not GLOBAL:
            scope = normalize(scope)
        try:
            flag = Flag(name, short, default=default, descr=descr, type=type, required=required, scope=scope)
        except ValueError as error:
            self._report(MalformedFlagWarning(
                "%s; the flag was not registered" % error,
                title="malformed flag",
                code=FaultCode.MALFORMED_FLAG,
                hint="flags need a name like 'dry-run', an optional one-character alias and a type "
                     "of 'string' or 'bool' (boolean defaults are 'true' or 'false')",
                docs=getdoc(FaultCode.MALFORMED_FLAG),
            ))
            return None

        if flag.name == "help":
            self._report(ReservedNameWarning(
                "flag '--help' is reserved for the built-in help and was not registered",
                title="reserved flag name",
                code=FaultCode.RESERVED_NAME,
                hint="pick another name; '--help' and '-h' already render help",
                docs=getdoc(FaultCode.RESERVED_NAME),
            ))
            return None

        if flag.short == "h":
            self._report(ReservedNameWarning(
                "alias '-h' is reserved for the built-in help; '--%s' was registered without it" % flag.name,
                title="reserved flag alias",
                code=FaultCode.RESERVED_NAME,
                hint="pick another one-character alias for '--%s'" % flag.name,
                docs=getdoc(FaultCode.RESERVED_NAME),
            ))
            flag = copy.replace(flag, short="")
        elif flag.short and self._aliases.setdefault(flag.short, flag.name) != flag.name:
            self._report(DuplicateShortAliasWarning(
                "alias '-%s' is already bound to '--%s'; '--%s' was registered without it" % (
                    flag.short, self._aliases[flag.short], flag.name
                ),
                title="duplicated short alias",
                code=FaultCode.DUPLICATE_SHORT_ALIAS,
                hint="short aliases are shared by every command; pick another one for '--%s'" % flag.name,
                docs=getdoc(FaultCode.DUPLICATE_SHORT_ALIAS),
            ))
            flag = copy.replace(flag, short="")

        flags = self._flags.setdefault(flag.scope, {})
        previous = flags.get(flag.name)
        if previous is not None:
            self._report(FlagOverwriteWarning(
                "flag '--%s' is already registered %s and was replaced" % (
                    flag.name, "globally" if flag.scope is GLOBAL else "for %r" % (denormalize(flag.scope) or "<root>")
                ),
                title="flag replaced",
                code=FaultCode.FLAG_OVERWRITE,
                hint="remove the duplicated registration to silence this warning",
                docs=getdoc(FaultCode.FLAG_OVERWRITE),
            ))
        flags[flag.name] = flag
        # a replaced alias stays bound only while another flag still carries it
        if previous is not None and previous.short and previous.short != flag.short:
            if not any(other.short == previous.short for scope in self._flags.values() for other in scope.values()):
                self._aliases.pop(previous.short, None)
        return flag

    def children(self, path=(), /):
        """Direct children of path (one segment longer, same prefix), sorted by path."""
        path = normalize(path)
        return [
            command for key, command in sorted(self._commands.items())
            if len(key) == len(path) + 1 and key[:len(path)] == path
        ]

    def flags(self, scope, /):
        """Definitions registered at exactly scope, by name."""
        return dict(self._flags.get(scope if scope is GLOBAL else normalize(scope), {}))

    def inherited(self, path, /):
        """Definitions inherited from the ancestors of path (nearest first wins), by name."""
        path = normalize(path)
        flags = {}
        for length in range(len(path)):
            flags.update(self._flags.get(path[:length], {}))
        return flags

    def reachable(self, path, /):
        """
        Every definition visible from path, by name.

        Precedence: the command's own flags, then inherited ones, then global.
        """
        path = normalize(path)
        return self.flags(GLOBAL) | self.inherited(path) | self._flags.get(path, {})

    def alias(self, short, /):
        """Long name bound to short, or None."""
        return self._aliases.get(short)

    @property
    def aliases(self):
        return dict(self._aliases)
# minotaur:core:end


__all__ = (
    "Command",
    "Flag",
    "Registry",
    "GLOBAL",
)
