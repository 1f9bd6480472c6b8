"""
Tool behavioral tests (registration, dispatch, help, faults, source()).

Scope
- Registration through the decorator and direct forms, docstring help text.
- Dispatch to exactly one handler with its positional arguments.
- Help routes and exit statuses in shell mode.
- Raise-and-return behavior outside shell mode.
- Runtime source(): relative/{here}/glob targets, once-only, cycles.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Tool, source) and capture terminal output.
"""

from __future__ import annotations

import contextlib
import io
import os
import runpy
import tempfile
import textwrap
import unittest
from unittest import TestCase

import minotaur
from minotaur import Policy, Tool
from minotaur.faults import (
    CommandOverwriteWarning,
    CoreInclusionWarning,
    MissingValueError,
    UnknownCommandError,
    UnknownFlagError,
    UnknownHelpTargetWarning,
)


def build(**options):
    tool = Tool("svc", **{"shell": False} | options)

    @tool.command("serve")
    def serve(*arguments):
        """
        Run the server.

        Binds the port and serves requests
        until interrupted.
        """
        return ("serve", arguments)

    @tool.command("serve start")
    def start(*arguments):
        return ("start", arguments, tool.get_flag("env"), tool.get_flag("port"))

    tool.command("db", None, descr="Database maintenance.")
    tool.command("db migrate", lambda *arguments: ("migrate", arguments), descr="Apply migrations.")

    tool.flag("serve", "port", "p", default="8000", descr="port to bind")
    tool.flag("serve start", "env", "e", descr="environment name", required=True)
    tool.global_flag("verbose", "v", type="bool", descr="chatty output")
    tool.global_flag("output", "o", default="text")
    tool.flag("db", "output", default="table")
    return tool


class TestRegistration(TestCase):

    def testDocstringProvidesDescriptions(self):
        tool = build()
        command = tool.registry.get("serve")
        self.assertEqual(command.descr, "Run the server.")
        self.assertEqual(command.long, "Binds the port and serves requests\nuntil interrupted.")
        self.assertEqual(tool.registry.get("serve start").descr, "")

    def testExplicitDescriptionsWin(self):
        tool = Tool("svc", shell=False)

        def work():
            """Docstring text."""

        self.assertIs(tool.command("work", work, descr="Explicit."), work)
        self.assertEqual(tool.registry.get("work").descr, "Explicit.")

    def testDecoratorRejectsNonCallables(self):
        tool = Tool("svc", shell=False)
        with self.assertRaises(TypeError):
            tool.command("work")("not callable")
        with self.assertRaises(ValueError):
            tool.command("Not Valid")

    def testWarningsOutsideShell(self):
        tool = build()
        with self.assertWarns(CommandOverwriteWarning):
            tool.command("serve", None)

    def testProgIsRequired(self):
        with self.assertRaises(TypeError):
            Tool("   ")
        self.assertEqual(repr(Tool("svc", shell=False)).split("(")[0], "tool")


class TestDispatch(TestCase):

    def setUp(self):
        self.tool = build()

    def testHandlerReceivesPositionals(self):
        self.assertEqual(self.tool.run(["serve", "a", "--port", "9000", "b"]), ("serve", ("a", "b")))
        self.assertEqual(self.tool.get_flag("port"), "9000")

    def testShellLikeString(self):
        result = self.tool.run("serve start --env 'prod eu' -p 1 worker")
        self.assertEqual(result, ("start", ("worker",), "prod eu", "1"))
        self.assertEqual(self.tool.invocation.path, ("serve", "start"))

    def testFlagsBeforeResolution(self):
        tool = build()
        self.assertIsNone(tool.get_flag("port"))
        self.assertEqual(tool.get_global_flag("output", "none"), "none")

    def testGlobalShadowing(self):
        self.tool.run(["db", "migrate", "--output", "json"])
        self.assertEqual(self.tool.get_flag("output"), "json")
        self.assertEqual(self.tool.get_global_flag("output"), "text")

    def testGroupWithoutHandler(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            self.assertIsNone(self.tool.run(["db"]))
        self.assertIn("usage: svc db [flags]", stdout.getvalue())
        self.assertIn("migrate", stdout.getvalue())

        with self.assertRaises(UnknownCommandError) as context:
            self.tool.run(["db", "migrat"])
        fault = context.exception
        self.assertEqual(str(fault), "unknown subcommand 'migrat' at second position")
        self.assertEqual(fault.options["suggestions"], ["migrate"])
        self.assertEqual(fault.options["prog"], "svc")

    def testUnknownTopLevelCommand(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.tool.run(["srve"])
        self.assertEqual(str(context.exception), "unknown command 'srve' at first position")
        self.assertTrue(context.exception.options["hint"].startswith("did you mean 'serve'?"))

    def testEmptyArgvShowsHelpWithoutRoot(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            self.assertIsNone(self.tool.run([]))
        self.assertIn("usage: svc [flags]", stdout.getvalue())

    def testEmptyArgvRunsRootHandler(self):
        self.tool.command((), lambda *arguments: "root")
        self.assertEqual(self.tool.run([]), "root")

    def testFaultsAreRaisedOutsideShell(self):
        with self.assertRaises(UnknownFlagError):
            self.tool.run(["serve", "--nope"])

    def testStrictPolicy(self):
        tool = build(policy=Policy.STRICT)
        with self.assertRaises(MissingValueError):
            tool.run(["serve", "--port"])

    def testInvalidArgv(self):
        with self.assertRaises(TypeError):
            self.tool.run(42)
        with self.assertRaises(TypeError):
            self.tool.run(["serve", 1])

    def testHelpRoutesRenderTheSameText(self):
        outputs = []
        for argv in (["help", "serve"], ["serve", "--help"], ["serve", "-h", "--nope"]):
            stdout = io.StringIO()
            with contextlib.redirect_stdout(stdout):
                self.assertIsNone(self.tool.run(argv))
            outputs.append(stdout.getvalue())
        self.assertEqual(outputs[0], outputs[1])
        self.assertEqual(outputs[1], outputs[2])
        self.assertIn("Run the server.", outputs[0])

    def testRenderHelp(self):
        text = self.tool.render_help("serve start")
        self.assertIn("usage: svc serve start [flags]", text)
        self.assertIn("(required)", text)

    def testMalformedHelpTargetWarns(self):
        with self.assertWarns(UnknownHelpTargetWarning):
            text = self.tool.render_help("Serve")
        self.assertIn("usage: svc [flags]", text)


class TestShellMode(TestCase):

    def setUp(self):
        self.tool = build(shell=True)

    def run_captured(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as context:
                self.tool.run(argv)
        return context.exception.code, stdout.getvalue(), stderr.getvalue()

    def testHelpExitsWithZero(self):
        code, stdout, _ = self.run_captured(["serve", "--help"])
        self.assertEqual(code, 0)
        self.assertIn("usage: svc serve [flags]", stdout)

    def testFaultPrintsHelpAndExitsWithOne(self):
        code, stdout, stderr = self.run_captured(["serve", "start", "--background"])
        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("usage: svc serve start [flags]", stderr)
        self.assertIn("svc — 11112 | Unknown Flag", stderr)
        self.assertIn("unknown flag '--background' at third position", stderr)

    def testMissingRequiredFlag(self):
        code, _, stderr = self.run_captured(["serve", "start"])
        self.assertEqual(code, 1)
        self.assertIn("11121", stderr)
        self.assertIn("missing required flag '--env'", stderr)

    def testHandlerResultIsReturned(self):
        self.assertEqual(self.tool.run(["serve"]), ("serve", ()))

    def testRegistrationWarningsArePrinted(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            self.tool.flag("db", "color", "v")
        self.assertIn("12112", stderr.getvalue())
        self.assertNotIn("usage:", stderr.getvalue())


class TestSource(TestCase):
    """source() runs other files in the caller's namespace."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.base = os.path.realpath(self.directory.name)
        os.mkdir(os.path.join(self.base, "commands"))

    def tearDown(self):
        self.directory.cleanup()

    def write(self, name, text):
        path = os.path.join(self.base, name)
        with open(path, "w", encoding="utf-8") as file:
            file.write(textwrap.dedent(text).lstrip())
        return path

    def testGlobsRunOnceInOrder(self):
        main = self.write("main.py", """
            from minotaur import Tool, source

            loaded = []
            tool = Tool("svc", shell=False)

            source("{here}/commands/*.py")
            source("commands/greet.py")

            result = tool.run(["greet", "world"])
        """)
        self.write("commands/greet.py", """
            loaded.append("greet")

            @tool.command("greet")
            def greet(name):
                return "hello " + name
        """)
        self.write("commands/extra.py", """
            source("greet.py")
            loaded.append("extra")
            seen = __file__
        """)

        namespace = runpy.run_path(main)
        self.assertEqual(namespace["loaded"], ["greet", "extra"])
        self.assertEqual(namespace["result"], "hello world")
        self.assertEqual(namespace["seen"], os.path.join(self.base, "commands", "extra.py"))
        self.assertEqual(namespace["__file__"], main)

    def testCyclesTerminate(self):
        main = self.write("main.py", """
            from minotaur import source

            count = globals().get("count", 0) + 1
            source("commands/back.py")
        """)
        self.write("commands/back.py", """
            source("../main.py")
            back = True
        """)
        namespace = runpy.run_path(main)
        self.assertEqual(namespace["count"], 1)
        self.assertTrue(namespace["back"])

    def testMissingTargetRaises(self):
        main = self.write("main.py", """
            from minotaur import source

            source("commands/missing.py")
        """)
        with self.assertRaises(FileNotFoundError):
            runpy.run_path(main)

    def testCoreModulesAreSkipped(self):
        main = self.write("main.py", """
            from minotaur import source

            source(target)
        """)
        target = os.path.join(os.path.dirname(minotaur.__file__), "utils.py")
        with self.assertWarns(CoreInclusionWarning):
            namespace = runpy.run_path(main, init_globals={"target": target})
        self.assertNotIn("coalesce", namespace)

    def testPatternMustBeAString(self):
        with self.assertRaises(TypeError):
            minotaur.source(42)


if __name__ == "__main__":
    unittest.main()
