"""
Minotaur utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the registry, resolver, help renderer and
  bundler so that they agree on sentinels, paths and phrasing.

Overview
- UnsetType / Unset
  • Singleton sentinel for “value not provided”, distinct from None.
- coalesce(value, default=None)
  • Replace Unset with a concrete default, preserve None/0/""/[].
- rename(callable, name) / @rename("name")
  • Stable __name__/__qualname__ for generated callables.
- mirror("attr")
  • Read-only property over a private backing field (self._attr).
- ordinal(number)
  • 1-based position labels used by every parsing message (“second position”).
- normalize(path) / denormalize(path)
  • Command path spelling: "serve start", "serve.start", ("serve", "start")
    all become ("serve", "start"); the empty path is the root command.
- expand(pattern, base)
  • Resolve an inclusion target (relative, "{here}", glob) against the
    including file's directory.
- iscore(path)
  • Whether a file is one of the framework's own modules.

Quick examples
    >>> normalize("serve.start")
    ('serve', 'start')
    >>> denormalize(("serve", "start"))
    'serve start'
    >>> ordinal(3)
    'third'
"""
# minotaur:core:begin
import builtins
import errno
import functools
import glob
import os
import re
from collections.abc import Iterable, Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and a singleton per process.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0, "" or [] are returned as-is; only Unset is
    replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    - Function form: rename(callable, name) -> callable
    - Decorator form: rename(name) -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _immortalize(object):
    """
    Recursively copy container values so callers cannot mutate internal state.

    Tuples stay tuples (command paths are tuples and compared as such), other
    sequences become lists, mappings become dicts and sets become sets.
    """
    if isinstance(object, tuple):
        return tuple(map(_immortalize, object))
    elif isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    else:
        return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private attribute "_{name}".

    Container values are copied on every read (see _immortalize).
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, 113th, ...)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


_SEGMENT = re.compile(r"[a-z0-9][a-z0-9_-]*")


def normalize(path, /):
    """
    Normalize a command path spelling into a tuple of segments.

    Accepted forms
    - "" or () for the root command.
    - "serve start" or "serve.start" (whitespace or dots separate segments).
    - any iterable of segment strings, e.g. ("serve", "start").

    Segments are lowercase and hyphen/underscore-safe ([a-z0-9][a-z0-9_-]*).

    Raises
    - TypeError: when path is neither a string nor an iterable of strings.
    - ValueError: when a segment is malformed.
    """
    if isinstance(path, str):
        segments = path.replace(".", " ").split()
    elif isinstance(path, Iterable):
        segments = list(path)
        if not all(isinstance(segment, str) for segment in segments):
            raise TypeError("command path segments must be strings")
    else:
        raise TypeError("command path must be a string or an iterable of strings")

    for segment in segments:
        if not _SEGMENT.fullmatch(segment):
            raise ValueError(f"invalid command path segment {segment!r}")
    return tuple(segments)


def denormalize(path, /):
    """Return the user-facing spelling of a normalized path ("" for the root)."""
    return " ".join(path)


def expand(pattern, base, /):
    """
    Resolve an inclusion target into a sorted list of absolute file paths.

    rules
    - "{here}" is replaced by base (the including file's own directory).
    - "~" is expanded; relative paths are joined onto base.
    - glob patterns ('*', '?', '[...]') expand in sorted order; zero matches
      is an error, like a missing plain path.

    raises
    - FileNotFoundError: nothing exists at the resolved location.
    """
    path = os.path.expanduser(pattern.replace("{here}", base))
    path = os.path.normpath(os.path.join(base, path))

    if any(char in path for char in "*?["):
        if not (matches := sorted(filter(os.path.isfile, glob.glob(path)))):
            raise FileNotFoundError(errno.ENOENT, "no file matches pattern", pattern)
        return [os.path.realpath(match) for match in matches]

    if not os.path.exists(path):
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
    return [os.path.realpath(path)]


def iscore(path, /):
    """
    True when path is one of the framework's own modules.

    Always False once the core has been bundled into a script (the bundle is
    not a package).
    """
    if not __package__:
        return False
    return os.path.dirname(os.path.realpath(path)) == os.path.dirname(os.path.realpath(__file__))


Unset = UnsetType()
# minotaur:core:end


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
    "normalize",
    "denormalize",
    "expand",
    "iscore",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
