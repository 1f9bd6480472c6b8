"""
Minotaur help renderer.

helpdoc(registry, path, ...) builds a rich renderable for one command path:
- usage: the registered example ("{prog}" is substituted) or a synthesized
  "prog path [flags]" line, plus "prog path [command]" when children exist.
- short description, then long description.
- "flags": the command's own definitions.
- "inherited flags": definitions of ancestors not shadowed by the command.
- "global flags": global definitions not shadowed, plus the built-in help flag.
  Every group is sorted by flag name; rows show the long/short form, a
  "<string>" metavar for string flags, the description, the default (booleans
  as enabled/disabled) and a required marker.
- a "commands" (root) or "subcommands" table of direct children with their
  short descriptions, sorted by name.

An unknown path falls back to root help and reports UnknownHelpTargetWarning.

render_help(...) exports the same renderable as plain text.

Palette keys (override through __styles__ in __main__)
- usage-label, program-name, usage-section, description-section, long-section
- group-label, flag-name, metavar, argument-description, default, required
- children-title, children-table, children, children-description, name-column
- panel-title
"""
from .faults import FaultCode, UnknownHelpTargetWarning, getdoc, trigger
from .registry import GLOBAL
from .utils import denormalize, normalize

# minotaur:core:begin
import io
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

HELP_DESCR = "show this help message and exit"


def helpdoc(registry, path=(), /, *, prog, colorful=False, fancy=False, width=80, report=trigger):
    """
    Build the help renderable for path.

    Parameters
    - registry: Registry to read from.
    - path: command path in any spelling accepted by normalize().
    - prog: program name shown in usage lines and hints.
    - colorful / fancy: palette on/off, panel chrome on/off.
    - width: target width used for wrapping descriptions and sizing the table.
    - report: receives UnknownHelpTargetWarning when path is malformed or
      not registered.
    """
    try:
        path = normalize(path)
    except (TypeError, ValueError):
        unknown = str(path)
    else:
        unknown = denormalize(path) if path and path not in registry else None
    if unknown is not None:
        report(UnknownHelpTargetWarning(
            "no command %r is registered; showing the top-level help instead" % unknown,
            title="unknown help target",
            code=FaultCode.UNKNOWN_HELP_TARGET_FALLBACK,
            hint="run '%s --help' to see available commands" % prog,
            docs=getdoc(FaultCode.UNKNOWN_HELP_TARGET_FALLBACK),
        ))
        path = ()

    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",  # CYAN → signature info color
        "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
        "usage-section": "bold #36C5F0",  # SKY-BLUE → softer than cyan
        "description-section": "italic #A3A3A3",  # Neutral gray
        "long-section": "#737373",  # Dim gray

        # === Flag groups ===
        "group-label": "bold #FFFFFF",  # Pure white headers
        "flag-name": "bold #22C55E",  # GREEN for flags
        "metavar": "bold #FFD600",  # AMBER for values
        "argument-description": "#9CA3AF",  # Muted gray
        "default": "italic #9CA3AF",
        "required": "bold #EF4444",  # RED marker

        # === Children table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",  # Slate border
        "children": "bold #36C5F0",  # Sky-blue subcommands
        "children-description": "#9CA3AF",
        "name-column": "",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    command = registry.get(path)
    children = registry.children(path)
    route = " ".join((prog, *path))
    width = width - 4 * fancy  # panel gutters

    renders = []

    # Usage: explicit example wins, otherwise synthesized from the path.
    usage = Text()
    usage.append("usage", styler("usage-label")).append(": ")
    offset = len(usage)
    if command and command.example:
        lines = command.example.replace("{prog}", prog).splitlines()
        usage.append(text(lines[0], styler("usage-section")))
        for line in lines[1:]:
            usage.append("\n").append(" " * offset).append(text(line, styler("usage-section")))
    else:
        usage.append(text(route, styler("program-name"))).append(" ").append(text("[flags]", styler("usage-section")))
        if children:
            usage.append("\n").append(" " * offset)
            usage.append(text(route, styler("program-name"))).append(" ").append(text("[command]", styler("usage-section")))
    renders.append(usage.append("\n"))

    if command and command.descr:
        renders.append(text(command.descr, styler("description-section")).append("\n"))

    if command and command.long:
        renders.append(text(command.long, styler("long-section")).append("\n"))

    # Flag groups: own, inherited, global (shadowed names dropped).
    own = registry.flags(path)
    inherited = {name: flag for name, flag in registry.inherited(path).items() if name not in own}
    globals = {
        name: flag for name, flag in registry.flags(GLOBAL).items()
        if name not in own and name not in inherited
    }
    groups = [
        ("flags", [own[name] for name in sorted(own)]),
        ("inherited flags", [inherited[name] for name in sorted(inherited)]),
        ("global flags", [None] + [globals[name] for name in sorted(globals)]),  # None is the built-in help
    ]

    def names(flag):
        if flag is None:
            return Text.assemble(text("-h", styler("flag-name")), ", ", text("--help", styler("flag-name")))
        if flag.short:
            head = Text.assemble(text(f"-{flag.short}", styler("flag-name")), ", ")
        else:
            head = Text("    ")
        head.append(text(f"--{flag.name}", styler("flag-name")))
        if not flag.boolean:
            head.append(" ").append(text("<string>", styler("metavar")))
        return head

    def describe(flag):
        if flag is None:
            return text(HELP_DESCR, styler("argument-description"))
        descr = Text()
        if flag.descr:
            descr.append(text(flag.descr, styler("argument-description")))
        if flag.boolean:
            default = "enabled" if flag.default == "true" else "disabled"
        elif flag.default:
            default = '"%s"' % flag.default
        else:
            default = None
        if default:
            descr.append(" " * bool(descr)).append(text(f"(default: {default})", styler("default")))
        if flag.required:
            descr.append(" " * bool(descr)).append(text("(required)", styler("required")))
        return descr

    padding = 2  # leading spaces before the names column
    rows = [(names(flag), describe(flag)) for _, flags in groups for flag in flags]
    indent = min(max((len(name) for name, _ in rows), default=0) + padding + 3, 32)

    console = Console(width=max(width, indent + 20))
    sections = Text()
    for label, flags in groups:
        if not flags:
            continue
        if sections:
            sections.append("\n")
        sections.append(text(label, styler("group-label"))).append(":\n")
        for flag in flags:
            section = Text(" " * padding).append(names(flag))
            if descr := describe(flag):
                # hanging indent; names wider than the column push the description down
                if len(section) >= indent - 1:
                    section.append("\n").append(" " * indent)
                else:
                    section.append(" " * (indent - len(section)))
                wrapped = descr.wrap(console, console.width - indent)
                section.append(wrapped[0])
                for line in wrapped[1:]:
                    section.append("\n").append(" " * indent).append(line)
            sections.append(section).append("\n")
    renders.append(sections)

    # Children (commands/subcommands) table
    if children:
        typeof = "subcommands" if path else "commands"
        table = Table(
            "name", "help",
            title=text(typeof, styler("children-title")),
            width=int(width * (2 / 3)),
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        for child in children:
            if child.descr:
                help = text(child.descr, styler("children-description"))
            else:
                help = Text.assemble(
                    text("no description", styler("children-description")),
                    " — ",
                    text(f"run '{prog} {child.name} --help' for details", styler("usage-label")),
                )
            table.add_row(text(child.path[-1], styler("children")), help, style=styler("name-column"))
        renders.append(table)

    if isinstance(renders[-1], Text):
        renders[-1].rstrip()  # trim trailing newline on the last chunk

    renderable = Group(*renders)
    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{route} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )
    return renderable


def render_help(registry, path=(), /, *, prog, colorful=False, fancy=False, width=100, report=trigger):
    """
    Render help for path as plain text (no terminal control codes).

    Both help routes ('help <path>' and '<path> --help') go through helpdoc,
    so this is also what a terminal shows, minus colors.
    """
    console = Console(file=io.StringIO(), width=width, color_system=None, force_terminal=False, highlight=False)
    console.print(helpdoc(registry, path, prog=prog, colorful=colorful, fancy=fancy, width=width, report=report))
    return console.file.getvalue()
# minotaur:core:end


__all__ = (
    "helpdoc",
    "render_help",
)
