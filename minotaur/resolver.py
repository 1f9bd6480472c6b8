"""
Minotaur resolution engine: argv -> (command path, flag values, positionals).

phases (one synchronous pass, never re-entered)
- help verb: a first token of literally "help" walks the remaining tokens as
  command path segments (each must extend a registered path) and stops.
- matching: greedy longest-prefix over registered command paths; a token that
  looks like a flag ('-' prefixed, including '--') ends matching.
- help flags: '--help' or '-h' anywhere before '--' short-circuits to help for
  the matched command, before any flag is parsed.
- scanning: long flags (--name, --name=value), short flags and groups (-v,
  -abc, -abc=value), '--' terminator, positionals in original order. A bare
  '-' is a positional and a string flag value.
- defaulting: every reachable definition that was not set gets its default.
- validation: all reachable required flags must be non-empty; every missing
  one is reported in a single error.

faults
- every fault is raised (never printed here) and carries the command path
  being resolved as the "path" option so the caller can print contextual help.
- messages lead with the ordinal position of the offending token.
"""
from .faults import (
    FaultCode,
    InvalidBooleanError,
    MalformedGroupError,
    MalformedTokenError,
    MissingRequiredFlagError,
    MissingValueError,
    UnknownCommandError,
    UnknownFlagError,
    getdoc,
)
from .registry import GLOBAL
from .utils import Unset, coalesce, denormalize, ordinal

# minotaur:core:begin
import difflib
import os
import sys
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple


class Policy(Enum):
    """
    What a string flag receives when no value follows it.

    - EMPTY: the value is the empty string and scanning continues.
    - STRICT: MissingValueError.
    """
    EMPTY = "empty"
    STRICT = "strict"


class Invocation(NamedTuple):
    """
    The outcome of one resolution.

    - path: resolved command path (() is the root).
    - flags: name -> value for every definition reachable from path.
    - globals: name -> value for every global definition; a global that is
      shadowed for path keeps its own default here.
    - arguments: positional arguments in original order.
    - help: True when the tokens asked for help on path.
    """
    path: tuple[str, ...] = ()
    flags: MappingProxyType = MappingProxyType({})
    globals: MappingProxyType = MappingProxyType({})
    arguments: tuple[str, ...] = ()
    help: bool = False

    def get_flag(self, name, default=None, /):
        return self.flags.get(name, default)

    def get_global_flag(self, name, default=None, /):
        return self.globals.get(name, default)


class Resolver:
    """
    Resolve token lists against a registry.

    Parameters
    - registry: the Registry to read commands and flags from.
    - policy: missing string value policy (Policy.EMPTY by default).
    - prog: program name used in hints (defaults to basename of argv[0]).
    """

    def __init__(self, registry, /, policy=Policy.EMPTY, *, prog=Unset):
        if not isinstance(policy, Policy):
            raise TypeError("resolver 'policy' must be a Policy")
        self._registry = registry
        self._policy = policy
        self._prog = coalesce(prog, os.path.basename(sys.argv[0]))

    @property
    def policy(self):
        return self._policy

    def _route(self, path):
        return " ".join((self._prog, *path))

    def _context(self, path):
        return "command %r" % denormalize(path) if path else "%r" % self._prog

    def resolve(self, tokens, /):
        """
        Resolve tokens (argv without the program name) into an Invocation.

        Raises a CommandException subclass on the first terminating problem.
        """
        tokens = list(tokens)

        if tokens and tokens[0] == "help":
            return Invocation(self._walk(tokens), help=True)

        path, start = self._match(tokens)

        try:
            end = tokens.index("--", start)
        except ValueError:
            end = len(tokens)
        if any(token in ("--help", "-h") for token in tokens[start:end]):
            return Invocation(path, help=True)

        reachable = self._registry.reachable(path)
        values, arguments = self._scan(path, reachable, tokens, start)
        flags, globals = self._default(reachable, values)
        self._validate(path, reachable, flags)
        return Invocation(path, MappingProxyType(flags), MappingProxyType(globals), tuple(arguments))

    def _walk(self, tokens):
        # tokens[0] is the "help" verb itself
        path = ()
        for index, segment in enumerate(tokens[1:], start=2):
            if (candidate := (*path, segment)) in self._registry:
                path = candidate
                continue

            names = [child.path[-1] for child in self._registry.children(path)]
            suggestions = difflib.get_close_matches(segment, names, 5)
            route = " ".join(("help", *path))
            try:
                hint = "did you mean %r? you can also run '%s %s' to see available commands" % (
                    suggestions[0], self._prog, route
                )
            except IndexError:
                hint = "run '%s %s' to see available commands" % (self._prog, route)
            raise UnknownCommandError(
                "unknown help target %r at %s position" % (segment, ordinal(index)),
                title="unknown help target",
                code=FaultCode.UNKNOWN_HELP_TARGET,
                input=segment,
                index=index,
                path=path,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_HELP_TARGET),
            )
        return path

    def _match(self, tokens):
        path = ()
        for index, token in enumerate(tokens):
            if token.startswith("-"):
                return path, index
            if (candidate := (*path, token)) not in self._registry:
                return path, index
            path = candidate
        return path, len(tokens)

    def _scan(self, path, reachable, tokens, start):
        values = {}
        arguments = []
        index = start

        while index < len(tokens):
            token = tokens[index]
            index += 1
            position = index  # 1-based position of token

            if token == "--":
                arguments.extend(tokens[index:])
                break

            if token == "-" or not token.startswith("-"):
                arguments.append(token)
                continue

            if token.startswith("--"):
                name, separator, value = token[2:].partition("=")
                if not _valid(name):
                    raise self._malformed(path, token, position)
                pending = [(self._long(path, reachable, name, position), value if separator else None)]
            else:
                chars, separator, value = token[1:].partition("=")
                if not chars or not all(map(str.isalnum, chars)):
                    raise self._malformed(path, token, position)
                pending = []
                for offset, char in enumerate(chars, start=1):
                    flag = self._short(path, reachable, char, token, position)
                    if offset < len(chars) and not flag.boolean:
                        raise MalformedGroupError(
                            "string flag '%s' must be last in its group %r at %s position" % (
                                flag.switches, token, ordinal(position)
                            ),
                            title="malformed flag group",
                            code=FaultCode.MALFORMED_GROUP,
                            input=token,
                            index=position,
                            path=path,
                            hint="move '-%s' to the end of the group or pass it on its own (for example: -%s <value>)" % (
                                char, char
                            ),
                            docs=getdoc(FaultCode.MALFORMED_GROUP),
                        )
                    pending.append((flag, value if separator and offset == len(chars) else None))

            for flag, inline in pending:
                if flag.boolean:
                    value = self._boolean(path, flag, inline, token, position)
                elif inline is not None:
                    value = inline
                elif index < len(tokens) and (tokens[index] == "-" or not tokens[index].startswith("-")):
                    value = tokens[index]
                    index += 1
                elif self._policy is Policy.STRICT:
                    raise MissingValueError(
                        "flag '--%s' at %s position requires a value" % (flag.name, ordinal(position)),
                        title="missing flag value",
                        code=FaultCode.MISSING_VALUE,
                        input=token,
                        index=position,
                        path=path,
                        hint="pass a value after a space or an '=' (for example: --%s=<value>)" % flag.name,
                        docs=getdoc(FaultCode.MISSING_VALUE),
                    )
                else:
                    value = ""
                values[flag.name] = (flag, value)  # last one wins

        return values, arguments

    def _malformed(self, path, token, position):
        return MalformedTokenError(
            "bad form of flag %r at %s position" % (token, ordinal(position)),
            title="malformed flag",
            code=FaultCode.MALFORMED_TOKEN,
            input=token,
            index=position,
            path=path,
            hint="flags are spelled --name, --name=value, -n or -abc; "
                 "use '--' to pass the rest as positional arguments",
            docs=getdoc(FaultCode.MALFORMED_TOKEN),
        )

    def _unknown(self, path, reachable, spelled, name, position):
        suggestions = ["--" + match for match in difflib.get_close_matches(name, reachable.keys(), 5)]
        try:
            hint = "did you mean %r? you can also run '%s --help' to see all flags" % (
                suggestions[0], self._route(path)
            )
        except IndexError:
            hint = "run '%s --help' to see all available flags" % self._route(path)
        return UnknownFlagError(
            "unknown flag %r at %s position for %s" % (spelled, ordinal(position), self._context(path)),
            title="unknown flag",
            code=FaultCode.UNKNOWN_FLAG,
            input=spelled,
            index=position,
            path=path,
            suggestions=suggestions,
            hint=hint,
            docs=getdoc(FaultCode.UNKNOWN_FLAG),
        )

    def _long(self, path, reachable, name, position):
        try:
            return reachable[name]
        except KeyError:
            raise self._unknown(path, reachable, "--" + name, name, position) from None

    def _short(self, path, reachable, char, token, position):
        name = self._registry.alias(char)
        try:
            return reachable[name]
        except KeyError:
            raise self._unknown(path, reachable, "-" + char, name or char, position) from None

    def _boolean(self, path, flag, inline, token, position):
        if inline is None:
            return "true"
        if inline.lower() in ("true", "false"):
            return inline.lower()
        raise InvalidBooleanError(
            "boolean flag '--%s' at %s position got %r" % (flag.name, ordinal(position), inline),
            title="invalid boolean",
            code=FaultCode.INVALID_BOOLEAN,
            input=token,
            index=position,
            path=path,
            hint="use '--%s', '--%s=true' or '--%s=false'" % (flag.name, flag.name, flag.name),
            docs=getdoc(FaultCode.INVALID_BOOLEAN),
        )

    def _default(self, reachable, values):
        flags = {
            name: values[name][1] if name in values else flag.default
            for name, flag in reachable.items()
        }
        globals = {}
        for name, flag in self._registry.flags(GLOBAL).items():
            owner, value = values.get(name, (None, None))
            globals[name] = value if owner is flag else flag.default
        return flags, globals

    def _validate(self, path, reachable, flags):
        missing = sorted(name for name, flag in reachable.items() if flag.required and not flags[name])
        if not missing:
            return
        spelled = ", ".join(repr(reachable[name].switches.split(", ")[-1]) for name in missing)
        raise MissingRequiredFlagError(
            "missing required %s %s for %s" % (
                "flag" if len(missing) == 1 else "flags", spelled, self._context(path)
            ),
            title="missing required flag",
            code=FaultCode.MISSING_REQUIRED,
            missing=missing,
            path=path,
            hint="pass %s (for example: %s --%s <value>)" % (
                "it" if len(missing) == 1 else "them", self._route(path), missing[0]
            ),
            docs=getdoc(FaultCode.MISSING_REQUIRED),
        )


def _valid(name):
    return bool(name) and name[0].isalnum() and all(char.isalnum() or char in "-_" for char in name)
# minotaur:core:end


__all__ = (
    "Policy",
    "Invocation",
    "Resolver",
)
