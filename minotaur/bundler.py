"""
Minotaur bundler: flatten a multi-file tool into one self-contained script.

Pipeline (one batch run, nothing shared between runs)
- graph: starting at the main script, every top-level directive
      source("<path>")
  names more files (relative to the including file, "{here}" and globs
  allowed, exactly like the runtime source()). Files are visited depth-first
  with mark-before-recurse and appended after their dependencies (post-order),
  which yields a dependency-first order and terminates on cycles.
- emission, in order:
  1. a header (python3 shebang, or the main script's own with keep_shebang)
     followed by every "from __future__" import found, deduplicated;
  2. the framework core: the marked region of each core module;
  3. every file in order, with its shebang, source() directives, framework
     imports and __future__ imports removed;
  4. the main script's run statement (its last `if __name__ == "__main__":`
     block, else its last top-level `...run(...)` line), moved to the very
     end; without one a warning comment is written instead.
- writing: the artifact is assembled in memory, written to a temporary file
  next to the destination, made executable and renamed over the destination.

Failures raise BundleError subclasses before anything is written.
"""
import contextlib
import os
import re
import stat
import tempfile

from .faults import (
    CoreInclusionWarning,
    FaultCode,
    MissingCoreMarkerError,
    MissingInvocationWarning,
    QualifiedImportWarning,
    UnreadableFileError,
    UnresolvableDependencyError,
    UnwritableOutputError,
    getdoc,
    trigger,
)
from .utils import Unset, coalesce, expand, iscore

CORE = ("utils", "faults", "registry", "helper", "resolver", "commands")
BEGIN = "# minotaur:core:begin"
END = "# minotaur:core:end"
SHEBANG = "#!/usr/bin/env python3"

_DIRECTIVE = re.compile(r"""^source\(\s*(?P<quote>['"])(?P<target>.+?)(?P=quote)\s*\)\s*(?:#.*)?$""")
_FUTURE = re.compile(r"^from\s+__future__\s+import\s")
_FROM_IMPORT = re.compile(r"^from\s+minotaur(?:\.\w+)*\s+import\s")
_IMPORT = re.compile(r"^import\s+minotaur\b")
_GUARD = re.compile(r"""^if\s+__name__\s*==\s*(['"])__main__\1\s*:""")
_RUN = re.compile(r"^(?:[A-Za-z_]\w*\.)*run\(.*\)\s*(?:#.*)?$")


class Bundler:
    """
    One bundling run.

    Parameters
    - main: path of the main script.
    - output: destination (defaults to "<stem>.bundle<suffix>" in the
      working directory).
    - keep_shebang: reuse the main script's shebang as the header.
    - report: receives CommandWarning instances (defaults to faults.trigger).
    """

    def __init__(self, main, output=Unset, /, *, keep_shebang=False, report=trigger):
        if not isinstance(main, str | os.PathLike):
            raise TypeError("bundler 'main' must be a path")
        stem, suffix = os.path.splitext(os.path.basename(main))
        self._main = os.path.realpath(main)
        self._output = os.path.abspath(coalesce(output, stem + ".bundle" + suffix))
        self._keep_shebang = bool(keep_shebang)
        self._report = report
        self._sources = {}
        self._graph = {}
        self._order = []

    @property
    def main(self):
        return self._main

    @property
    def output(self):
        return self._output

    @property
    def graph(self):
        """Adjacency by absolute path (file -> files it includes) of the last run."""
        return {path: list(dependencies) for path, dependencies in self._graph.items()}

    @property
    def order(self):
        """Dependency-first file order of the last run (the main script is last)."""
        return list(self._order)

    def bundle(self):
        """Build, write and return the path of the artifact."""
        self._sources.clear()
        self._graph.clear()
        self._order.clear()

        self._read(self._main)
        self._visit(self._main)
        self._write(self.render())
        return self._output

    def render(self):
        """Assemble the artifact text for the current graph."""
        header, futures, bodies, invocation = None, [], [], None

        for path in self._order:
            lines = self._sources[path]
            if path == self._main:
                if lines and lines[0].startswith("#!") and self._keep_shebang:
                    header = lines[0]
                lines, invocation = _capture(lines)
            body, hoisted = self._clean(path, lines)
            futures.extend(line for line in hoisted if line not in futures)
            if body:
                bodies.append("\n".join(body))

        if invocation is None:
            self._report(MissingInvocationWarning(
                "no run statement found in %r; the bundle can only be imported" % self._main,
                title="missing run statement",
                code=FaultCode.MISSING_INVOCATION,
                hint="end the main script with 'tool.run()' or an 'if __name__ == \"__main__\":' block",
                docs=getdoc(FaultCode.MISSING_INVOCATION),
            ))
            invocation = "# minotaur: no run statement found in %s; this bundle is library-only" % (
                os.path.basename(self._main)
            )

        sections = ["\n".join([header or SHEBANG, *futures]), self.core(), *bodies, invocation]
        return "\n\n".join(sections) + "\n"

    def core(self):
        """The framework core block: every core module's marked region, markers included."""
        directory = os.path.dirname(os.path.abspath(__file__))
        regions = []
        for name in CORE:
            path = os.path.join(directory, name + ".py")
            lines = [line.rstrip() for line in self._read(path)]
            try:
                begin = lines.index(BEGIN)
                end = lines.index(END, begin)
            except ValueError:
                raise MissingCoreMarkerError(
                    "framework module %r has no complete %r / %r region" % (path, BEGIN, END),
                    title="missing core markers",
                    code=FaultCode.MISSING_CORE_MARKER,
                    file=path,
                    hint="reinstall the package; its core modules must keep their region markers",
                    docs=getdoc(FaultCode.MISSING_CORE_MARKER),
                ) from None
            regions.append("\n".join(self._sources[path][begin + 1:end]).strip("\n"))
        return "\n".join([BEGIN, "\n\n\n".join(regions), END])

    def _read(self, path, referrer=None):
        try:
            return self._sources[path]
        except KeyError:
            pass
        try:
            with open(path, encoding="utf-8") as file:
                self._sources[path] = lines = file.read().splitlines()
        except (OSError, UnicodeDecodeError) as error:
            reason = error.strerror if isinstance(error, OSError) and error.strerror else str(error)
            raise UnreadableFileError(
                "cannot read %r%s: %s" % (path, " (included from %r)" % referrer if referrer else "", reason),
                title="unreadable file",
                code=FaultCode.UNREADABLE_FILE,
                file=path,
                referrer=referrer,
                hint="check that the file exists, is a regular file, and is readable utf-8 text",
                docs=getdoc(FaultCode.UNREADABLE_FILE),
            ) from None
        return lines

    def _visit(self, path):
        if path in self._graph:
            return
        self._graph[path] = dependencies = []  # mark before recursing

        base = os.path.dirname(path)
        for number, line in enumerate(self._sources[path], start=1):
            if not (match := _DIRECTIVE.match(line)):
                continue
            try:
                targets = expand(match["target"], base)
            except FileNotFoundError:
                raise UnresolvableDependencyError(
                    "cannot resolve %r included from %r at line %d" % (match["target"], path, number),
                    title="unresolvable dependency",
                    code=FaultCode.UNRESOLVABLE_DEPENDENCY,
                    target=match["target"],
                    referrer=path,
                    line=number,
                    hint="paths are relative to the including file; '{here}' names its directory",
                    docs=getdoc(FaultCode.UNRESOLVABLE_DEPENDENCY),
                ) from None

            for target in targets:
                if iscore(target):
                    self._report(CoreInclusionWarning(
                        "%r (line %d of %r) is part of the framework core, which is always bundled first; "
                        "the directive was skipped" % (match["target"], number, path),
                        title="framework inclusion skipped",
                        code=FaultCode.CORE_INCLUSION,
                        hint="remove the source() line; import from the package instead",
                        docs=getdoc(FaultCode.CORE_INCLUSION),
                    ))
                    continue
                dependencies.append(target)
                self._read(target, path)
                self._visit(target)

        self._order.append(path)

    def _clean(self, path, lines):
        """Return (body lines, hoisted __future__ imports) for one file."""
        body, futures = [], []
        closer = None
        warned = False

        for number, line in enumerate(lines, start=1):
            if closer is not None:
                # inside a multi-line framework import
                if closer == ")" and ")" in line or closer == "\\" and not line.rstrip().endswith("\\"):
                    closer = None
                continue
            if number == 1 and line.startswith("#!"):
                continue
            if _DIRECTIVE.match(line):
                continue
            if _FUTURE.match(line):
                futures.append(line.strip())
                continue
            if _FROM_IMPORT.match(line) or _IMPORT.match(line):
                if "(" in line and ")" not in line:
                    closer = ")"
                elif line.rstrip().endswith("\\"):
                    closer = "\\"
                if _IMPORT.match(line) and not warned:
                    warned = True
                    self._report(QualifiedImportWarning(
                        "%r imports the package itself at line %d; qualified names are not available "
                        "in a bundle" % (path, number),
                        title="qualified framework import",
                        code=FaultCode.QUALIFIED_IMPORT,
                        hint="use 'from minotaur import ...' so names resolve against the bundled core",
                        docs=getdoc(FaultCode.QUALIFIED_IMPORT),
                    ))
                continue
            body.append(line)

        while body and not body[0].strip():
            body.pop(0)
        while body and not body[-1].strip():
            body.pop()
        return body, futures

    def _write(self, text):
        temporary = None
        try:
            with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=os.path.dirname(self._output),
                    prefix=".minotaur-",
                    suffix=".tmp",
                    delete=False,
            ) as file:
                temporary = file.name
                file.write(text)
            os.chmod(temporary, stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
            os.replace(temporary, self._output)
        except OSError as error:
            if temporary is not None:
                with contextlib.suppress(OSError):
                    os.remove(temporary)
            raise UnwritableOutputError(
                "cannot write %r: %s" % (self._output, error.strerror or error),
                title="unwritable output",
                code=FaultCode.UNWRITABLE_OUTPUT,
                file=self._output,
                hint="pick another destination with --output",
                docs=getdoc(FaultCode.UNWRITABLE_OUTPUT),
            ) from None


def _capture(lines):
    """Split the run statement off the main script: (remaining lines, statement or None)."""
    guards = [index for index, line in enumerate(lines) if _GUARD.match(line)]
    if guards:
        start = end = guards[-1]
        end += 1
        while end < len(lines) and (not lines[end].strip() or lines[end][:1] in (" ", "\t")):
            end += 1
        block = lines[start:end]
        while block and not block[-1].strip():
            block.pop()
        return lines[:start] + lines[end:], "\n".join(block)

    for index in reversed(range(len(lines))):
        if _RUN.match(lines[index]):
            return lines[:index] + lines[index + 1:], lines[index].rstrip()
    return lines, None


def bundle(main, output=Unset, /, *, keep_shebang=False, report=trigger):
    """Bundle main into output and return the output path (see Bundler)."""
    return Bundler(main, output, keep_shebang=keep_shebang, report=report).bundle()


__all__ = (
    "Bundler",
    "bundle",
)
