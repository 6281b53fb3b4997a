"""
Faults module tests (codes, options, rendering, triggering).

Scope
- Validate that every fault kind has a distinct, stable code.
- Validate option access, message defaults and __replace__ copies.
- Validate rich rendering and the __main__ hooks (__codes__, __docs__, __prog__).
- Validate trigger() in raising and shell modes.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import io
import sys
import unittest
from unittest import TestCase, mock

from rich.console import Console

from helmsman import faults
from helmsman.faults import (
    FaultCode,
    CommandException,
    DuplicateCommandError,
    InvalidNameError,
    RequiredFlagError,
    InvalidFlagValueError,
    UnknownFlagError,
    CommandNotFoundError,
    UnsupportedShellError,
    InvalidArgsError,
    trigger,
    getdoc,
)

KINDS = (
    DuplicateCommandError,
    InvalidNameError,
    RequiredFlagError,
    InvalidFlagValueError,
    UnknownFlagError,
    CommandNotFoundError,
    UnsupportedShellError,
    InvalidArgsError,
)


def render(renderable):
    console = Console(file=io.StringIO(), width=120)
    console.print(renderable)
    return console.file.getvalue()


class TestFaultKinds(TestCase):
    """Identity of each fault kind."""

    def testCodesAreDistinct(self):
        codes = [kind.code for kind in KINDS]
        self.assertEqual(len(set(codes)), len(KINDS))
        self.assertTrue(all(isinstance(code, FaultCode) for code in codes))

    def testEveryKindIsACommandException(self):
        for kind in KINDS:
            self.assertTrue(issubclass(kind, CommandException))

    def testMessageDefaultsToTitle(self):
        self.assertEqual(str(UnknownFlagError()), "unknown flag")


class TestFaultOptions(TestCase):
    """Context options and copies."""

    def testOptionsAreAttributes(self):
        fault = InvalidFlagValueError("bad value", flag="port", value="abc")
        self.assertEqual(fault.flag, "port")
        self.assertEqual(fault.value, "abc")
        self.assertEqual(str(fault), "bad value")
        with self.assertRaises(AttributeError):
            fault.shell

    def testOptionsAreReadOnly(self):
        fault = UnknownFlagError("x", flag="x")
        with self.assertRaises(TypeError):
            fault.options["flag"] = "y"

    def testReplaceMergesOptionsAndKeepsCause(self):
        cause = ValueError("root")
        fault = InvalidArgsError("bad args", command="x")
        fault.__cause__ = cause
        copy = fault.__replace__(prog="tool")
        self.assertIsInstance(copy, InvalidArgsError)
        self.assertEqual(copy.command, "x")
        self.assertEqual(copy.prog, "tool")
        self.assertIs(copy.__cause__, cause)
        self.assertNotIn("prog", fault.options)


class TestFaultRendering(TestCase):
    """Rich rendering and host hooks."""

    def testRenderIncludesCodeTitleMessageAndHint(self):
        text = render(UnknownFlagError("unknown flag --nope", flag="nope", prog="tool"))
        self.assertIn(str(FaultCode.UNKNOWN_FLAG.value), text)
        self.assertIn("Unknown Flag", text)
        self.assertIn("unknown flag --nope", text)
        self.assertIn("tool", text)
        self.assertIn(UnknownFlagError.hint, text)

    def testHintOptionOverridesClassHint(self):
        text = render(RequiredFlagError("missing", hint="pass --token"))
        self.assertIn("pass --token", text)

    def testFancyRenderUsesAPanel(self):
        text = render(CommandNotFoundError("nope", fancy=True))
        self.assertIn("╭", text)

    def testHostCodes(self):
        main = sys.modules["__main__"]
        with mock.patch.object(main, "__codes__", {FaultCode.UNKNOWN_FLAG: "E-FLAG"}, create=True):
            self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "E-FLAG")
            self.assertEqual(FaultCode.REQUIRED_FLAG.normalize(), "21121")

    def testHostDocs(self):
        main = sys.modules["__main__"]
        with mock.patch.object(main, "__docs__", {FaultCode.INVALID_ARGS: "see the manual"}, create=True):
            self.assertEqual(getdoc(FaultCode.INVALID_ARGS), "see the manual")
            self.assertIsNone(getdoc(FaultCode.UNKNOWN_FLAG))

    def testHostDocsAreRendered(self):
        main = sys.modules["__main__"]
        with mock.patch.object(main, "__docs__", {FaultCode.UNKNOWN_FLAG: "see docs/flags"}, create=True):
            self.assertIn("see docs/flags", render(UnknownFlagError("unknown flag --x", flag="x")))
            self.assertNotIn("see docs/flags", render(InvalidArgsError("bad args")))
            self.assertIn("see faq", render(UnknownFlagError("unknown flag --x", docs="see faq")))

    def testBaseFaultRendersWithoutCode(self):
        self.assertIn("plain failure", render(CommandException("plain failure")))

    def testGetdocRejectsNonCodes(self):
        with self.assertRaises(TypeError):
            getdoc(21121)


class TestTrigger(TestCase):
    """Raising versus shell mode."""

    def testRaisesOutsideShellMode(self):
        with self.assertRaises(UnsupportedShellError) as context:
            trigger(UnsupportedShellError("unsupported shell 'tcsh'", dialect="tcsh"), prog="tool")
        self.assertEqual(context.exception.prog, "tool")

    def testShellModePrintsAndExits(self):
        sink = io.StringIO()
        with mock.patch.object(faults, "console", Console(file=sink, width=120)):
            with self.assertRaises(SystemExit) as context:
                trigger(CommandNotFoundError("command 'deploy' not found", command="deploy"), shell=True)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("command 'deploy' not found", sink.getvalue())

    def testRejectsObjectsWithoutHooks(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


if __name__ == "__main__":
    unittest.main()
