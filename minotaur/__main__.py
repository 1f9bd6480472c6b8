"""
The minotaur command-line tool.

    minotaur bundle <main-script> [--output <file>] [--keep-shebang]

Exit status is 0 on success and 1 on any fault.
"""
import functools

from rich.console import Console

from .bundler import Bundler
from .commands import Tool
from .faults import BundleError, FaultCode, MissingOperandError, UnexpectedOperandError, getdoc
from .utils import Unset

tool = Tool("minotaur")

tool.command((), None, descr="Build and ship hierarchical command-line tools.")


@tool.command("bundle", example="{prog} bundle <main-script> [--output <file>] [--keep-shebang]")
def bundle(*operands):
    """
    Flatten a multi-file tool into one self-contained script.

    Files pulled in with source("...") are inlined in dependency order after
    the framework core, and the main script's run statement is moved to the
    end. The result is marked executable.
    """
    if not operands:
        return tool.trigger(MissingOperandError(
            "missing the main script operand",
            title="missing operand",
            code=FaultCode.MISSING_OPERAND,
            path=("bundle",),
            hint="pass the tool's main script (for example: minotaur bundle tool.py)",
            docs=getdoc(FaultCode.MISSING_OPERAND),
        ))
    if len(operands) > 1:
        return tool.trigger(UnexpectedOperandError(
            "unexpected extra operand %r after the main script" % operands[1],
            title="unexpected operand",
            code=FaultCode.UNEXPECTED_OPERAND,
            input=operands[1],
            path=("bundle",),
            hint="bundle takes exactly one main script; use --output to name the result",
            docs=getdoc(FaultCode.UNEXPECTED_OPERAND),
        ))

    bundler = Bundler(
        operands[0],
        tool.get_flag("output") or Unset,
        keep_shebang=tool.get_flag("keep-shebang") == "true",
        report=functools.partial(tool.trigger, help=False),
    )
    try:
        output = bundler.bundle()
    except BundleError as fault:
        return tool.trigger(fault, help=False)
    Console().print("bundled %d %s into %s" % (
        len(bundler.order), "file" if len(bundler.order) == 1 else "files", output
    ), highlight=False)
    return output


tool.flag("bundle", "output", "o", descr="where to write the bundle (default: <stem>.bundle<suffix>)")
tool.flag("bundle", "keep-shebang", "k", type="bool", descr="reuse the main script's shebang line")


def main(argv=Unset, /):
    return tool.run(argv)


if __name__ == "__main__":
    main()
