"""
Tests for the shared utilities.

Scope
- Unset sentinel and coalesce().
- ordinal() phrasing used by every parsing message.
- Command path normalization and its errors.
- mirror() copies and expand() inclusion target resolution.

Conventions
- Test method names follow CamelCase per project convention.
"""
import os
import tempfile
import unittest
from unittest import TestCase

import minotaur
from minotaur.utils import (
    Unset,
    UnsetType,
    coalesce,
    denormalize,
    expand,
    iscore,
    mirror,
    normalize,
    ordinal,
    rename,
)


class TestUnset(TestCase):
    """The Unset sentinel and coalesce()."""

    def testSingleton(self):
        self.assertIs(Unset, UnsetType())

    def testFalseyAndPrintable(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})

    def testCoalescePreservesFalseyValues(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce("", "fallback"), "")
        self.assertEqual(coalesce(0, 1), 0)


class TestHelpers(TestCase):
    """rename(), mirror() and ordinal()."""

    def testRenameFunctionAndDecoratorForms(self):
        def work():
            pass

        self.assertEqual(rename(work, "job").__name__, "job")

        @rename("task")
        def other():
            pass

        self.assertEqual(other.__qualname__, "task")

    def testMirrorReturnsCopies(self):
        class Holder:
            items = mirror("items")
            path = mirror("path")

            def __init__(self):
                self._items = [1, 2]
                self._path = ("serve", "start")

        holder = Holder()
        holder.items.append(3)
        self.assertEqual(holder.items, [1, 2])
        self.assertEqual(holder.path, ("serve", "start"))
        self.assertIsInstance(holder.path, tuple)

    def testOrdinalWordsAndSuffixes(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(103), "103rd")
        self.assertEqual(ordinal(113), "113th")


class TestPaths(TestCase):
    """normalize() / denormalize()."""

    def testSpellings(self):
        self.assertEqual(normalize(""), ())
        self.assertEqual(normalize(()), ())
        self.assertEqual(normalize("serve"), ("serve",))
        self.assertEqual(normalize("serve start"), ("serve", "start"))
        self.assertEqual(normalize("serve.start"), ("serve", "start"))
        self.assertEqual(normalize(["serve", "start"]), ("serve", "start"))
        self.assertEqual(normalize("dry-run db_sync"), ("dry-run", "db_sync"))

    def testMalformedSegmentsRaise(self):
        for path in ("Serve", "-serve", "serve/start", ("serve start",), ("",)):
            with self.subTest(path=path), self.assertRaises(ValueError):
                normalize(path)

    def testWrongTypesRaise(self):
        with self.assertRaises(TypeError):
            normalize(42)
        with self.assertRaises(TypeError):
            normalize(["serve", 1])

    def testDenormalize(self):
        self.assertEqual(denormalize(("serve", "start")), "serve start")
        self.assertEqual(denormalize(()), "")


class TestExpand(TestCase):
    """expand() resolves inclusion targets against the including file's directory."""

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.base = os.path.realpath(self.directory.name)
        os.mkdir(os.path.join(self.base, "libs"))
        for name in ("libs/b.py", "libs/a.py", "main.py"):
            with open(os.path.join(self.base, name), "w") as file:
                file.write("# %s\n" % name)

    def tearDown(self):
        self.directory.cleanup()

    def testRelativeAndHere(self):
        expected = [os.path.join(self.base, "libs", "a.py")]
        self.assertEqual(expand("libs/a.py", self.base), expected)
        self.assertEqual(expand("{here}/libs/a.py", self.base), expected)
        self.assertEqual(expand("./libs/../libs/a.py", self.base), expected)

    def testGlobIsSorted(self):
        self.assertEqual(expand("libs/*.py", self.base), [
            os.path.join(self.base, "libs", "a.py"),
            os.path.join(self.base, "libs", "b.py"),
        ])

    def testMissingTargetsRaise(self):
        with self.assertRaises(FileNotFoundError):
            expand("libs/missing.py", self.base)
        with self.assertRaises(FileNotFoundError):
            expand("libs/*.sh", self.base)

    def testIscore(self):
        self.assertTrue(iscore(os.path.join(os.path.dirname(minotaur.__file__), "utils.py")))
        self.assertFalse(iscore(os.path.join(self.base, "main.py")))


if __name__ == "__main__":
    unittest.main()
