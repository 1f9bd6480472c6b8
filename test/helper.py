"""
Help renderer tests (plain-text output of render_help).

Scope
- Usage lines (explicit example or synthesized), descriptions.
- Flag groups: own, inherited, global (shadowed names dropped), sorted.
- Defaults, boolean enabled/disabled, required markers, hanging indent.
- Children table titles and the fallback for missing descriptions.
- Unknown targets fall back to the top-level help with a warning.

Conventions
- Test method names follow CamelCase per project convention.
- Output is matched line by line with multiline regexes.
"""

from __future__ import annotations

import re
import unittest
from unittest import TestCase

from minotaur import GLOBAL, Registry
from minotaur.faults import UnknownHelpTargetWarning
from minotaur.helper import render_help


def handler(*arguments):
    return arguments


class TestHelpRendering(TestCase):

    def setUp(self):
        self.reports = []
        registry = self.registry = Registry(report=self.reports.append)
        registry.register_command((), None, "Service manager.")
        registry.register_command(
            "serve", handler, "Run the server.", "Binds the port and serves requests until interrupted."
        )
        registry.register_command("serve start", handler, "Start the server in the background.")
        registry.register_command("serve stop", handler)
        registry.register_command("deploy", handler, "Ship a release.", example="{prog} deploy <target> --tag <tag>")
        registry.register_flag("serve", "port", "p", default="8000", descr="port to bind")
        registry.register_flag("serve", "host", default="127.0.0.1", descr="interface to bind")
        registry.register_flag("serve start", "env", "e", descr="environment name", required=True)
        registry.register_flag("serve start", "background", "b", type="bool", descr="run detached")
        registry.register_flag("serve start", "host", descr="override the interface")
        registry.register_flag("deploy", "notes", descr="word " * 30)
        registry.register_flag(GLOBAL, "verbose", "v", type="bool", default=True, descr="chatty output")
        registry.register_flag(GLOBAL, "port", descr="unused global port")
        self.assertEqual(self.reports, [])

    def render(self, path=(), **options):
        return render_help(self.registry, path, prog="svc", report=self.reports.append, **{"width": 200} | options)

    def assertLine(self, pattern, text):
        self.assertRegex(text, re.compile(r"^" + pattern + r"\s*$", re.M))

    def testSynthesizedUsage(self):
        text = self.render("serve")
        self.assertTrue(text.startswith("usage: svc serve [flags]"))
        self.assertLine(r"       svc serve \[command\]", text)
        self.assertLine(r"Run the server\.", text)
        self.assertLine(r"Binds the port and serves requests until interrupted\.", text)

    def testLeafUsageHasNoCommandLine(self):
        text = self.render("serve start")
        self.assertLine(r"usage: svc serve start \[flags\]", text)
        self.assertNotIn("[command]", text)

    def testExampleUsage(self):
        text = self.render("deploy")
        self.assertLine(r"usage: svc deploy <target> --tag <tag>", text)
        self.assertNotIn("[flags]", text)

    def testOwnAndGlobalGroups(self):
        text = self.render("serve")
        self.assertLine(r'      --host <string>\s+interface to bind \(default: "127\.0\.0\.1"\)', text)
        self.assertLine(r'  -p, --port <string>\s+port to bind \(default: "8000"\)', text)
        self.assertLine(r"  -h, --help\s+show this help message and exit", text)
        self.assertLine(r"  -v, --verbose\s+chatty output \(default: enabled\)", text)
        # the global port is shadowed for serve
        self.assertNotIn("unused global port", text)
        self.assertNotIn("inherited flags:", text)

        own = re.search(r"^flags:\s*$", text, re.M).start()
        globals = re.search(r"^global flags:\s*$", text, re.M).start()
        self.assertLess(own, globals)
        self.assertLess(text.index("--host"), text.index("--port"))
        self.assertLess(text.index("--help"), text.index("--verbose"))

    def testInheritedGroup(self):
        text = self.render("serve start")
        self.assertLine(r"  -b, --background\s+run detached \(default: disabled\)", text)
        self.assertLine(r"  -e, --env <string>\s+environment name \(required\)", text)
        self.assertLine(r"      --host <string>\s+override the interface", text)
        self.assertLine(r"inherited flags:", text)
        self.assertLine(r'  -p, --port <string>\s+port to bind \(default: "8000"\)', text)
        self.assertNotIn("interface to bind", text)
        self.assertNotIn("unused global port", text)
        self.assertLess(text.index("inherited flags:"), text.index("global flags:"))

    def testRootShowsCommandsTable(self):
        text = self.render()
        self.assertLine(r"usage: svc \[flags\]", text)
        self.assertLine(r"       svc \[command\]", text)
        self.assertLine(r"Service manager\.", text)
        self.assertLine(r"      --port <string>\s+unused global port", text)
        self.assertLine(r"\s*commands", text)
        self.assertRegex(text, r"│ deploy\s+│ Ship a release\.\s+│")
        self.assertRegex(text, r"│ serve\s+│ Run the server\.\s+│")
        self.assertLess(text.index("│ deploy"), text.index("│ serve"))
        self.assertNotIn("│ start", text)
        self.assertNotRegex(text, re.compile(r"^flags:", re.M))

    def testSubcommandsTable(self):
        text = self.render("serve")
        self.assertLine(r"\s*subcommands", text)
        self.assertRegex(text, r"│ start\s+│ Start the server in the background\.\s+│")
        self.assertIn("no description — run 'svc serve stop --help' for details", text)

    def testLongDescriptionsWrapWithHangingIndent(self):
        text = self.render("deploy", width=60)
        lines = [line for line in text.splitlines() if "word" in line]
        self.assertGreater(len(lines), 1)
        self.assertTrue(lines[0].startswith("      --notes <string>"))
        column = lines[0].index("word")
        for line in lines[1:]:
            self.assertEqual(len(line) - len(line.lstrip()), column)

    def testUnknownTargetFallsBackToRoot(self):
        root = self.render()
        text = self.render("nope")
        self.assertEqual(text, root)
        self.assertEqual(len(self.reports), 1)
        self.assertIsInstance(self.reports[0], UnknownHelpTargetWarning)
        # malformed targets take the same route instead of raising
        self.assertEqual(self.render("Serve"), root)
        self.assertEqual(self.render(("serve", 1)), root)
        self.assertEqual(len(self.reports), 3)
        self.assertIsInstance(self.reports[1], UnknownHelpTargetWarning)
        self.assertIn("'Serve'", str(self.reports[1]))
        self.assertIsInstance(self.reports[2], UnknownHelpTargetWarning)

    def testColorsDoNotChangeText(self):
        self.assertEqual(self.render("serve", colorful=True), self.render("serve"))

    def testFancyPanel(self):
        text = self.render("serve", fancy=True)
        self.assertIn("╭", text)
        self.assertIn("SVC SERVE HELP", text)


if __name__ == "__main__":
    unittest.main()
