"""
Application behavioral tests (registration, dispatch, help, completion).

Scope
- Validate dispatch to callbacks with parsed Invocation objects.
- Validate help rendering for listings, commands, groups and --help.
- Validate the builtin "help" and "completion" commands.
- Validate one-time finalization and registration faults.
- Validate shell mode (print and exit) versus raising mode.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured through the application's console (StringIO sink).
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase

from rich.text import Text

from helmsman import Application, Command, Flag, FlagType, group
from helmsman.faults import (
    CommandNotFoundError,
    DuplicateCommandError,
    InvalidArgsError,
    UnknownFlagError,
    UnsupportedShellError,
)


class ApplicationTestCase(TestCase):

    def setUp(self):
        self.output = io.StringIO()
        self.calls = []
        self.app = Application(
            "tool",
            "Demo tool.",
            [Flag("debug", "D", FlagType.BOOL, descr="Debug mode.")],
            output=self.output,
        )
        db = self.app.group("db", aliases=["d"], descr="Database tools.")
        migrate = db.group("migrate", aliases=["m"], descr="Run migrations.")

        @migrate.command(flags=[Flag("steps", "s", FlagType.INT, env="TOOL_STEPS", descr="Steps.")], example="tool db m up -s 2")
        def up(invocation):
            """Apply migrations."""
            self.calls.append(invocation)
            return "up"

        @self.app.command(aliases=["s"], maxargs=1, flags=[Flag("port", "p", FlagType.INT, default="8000")])
        def serve(invocation):
            """Start the server."""
            self.calls.append(invocation)
            return invocation.int("port")

        self.up = up
        self.serve = serve

    @property
    def text(self):
        return self.output.getvalue()


class TestDispatch(ApplicationTestCase):
    """Resolution, parsing and callback execution."""

    def testRunsResolvedCallback(self):
        result = self.app.run(["d", "m", "up", "-s", "3", "--debug", "extra"])
        self.assertEqual(result, "up")
        invocation, = self.calls
        self.assertIs(invocation.command, self.up)
        self.assertEqual(invocation.args, ("extra",))
        self.assertEqual(invocation.int("steps"), 3)
        self.assertIs(invocation.bool("debug"), True)
        self.assertIs(invocation.console, self.app.console)

    def testRunSplitsStrings(self):
        self.assertEqual(self.app.run("serve --port 9000"), 9000)

    def testDefaultsApply(self):
        self.assertEqual(self.app.run(["s"]), 8000)

    def testRunRejectsNonStringTokens(self):
        with self.assertRaises(TypeError):
            self.app.run(["serve", 1])
        with self.assertRaises(TypeError):
            self.app.run(42)

    def testFaultsAreRaisedOutsideShellMode(self):
        with self.assertRaises(CommandNotFoundError):
            self.app.run(["deploy"])
        with self.assertRaises(UnknownFlagError):
            self.app.run(["serve", "--nope"])
        with self.assertRaises(InvalidArgsError):
            self.app.run(["serve", "a", "b"])

    def testRaisedFaultCarriesRuntimeOptions(self):
        with self.assertRaises(UnknownFlagError) as context:
            self.app.run(["serve", "--nope"])
        self.assertEqual(context.exception.prog, "tool")
        self.assertEqual(context.exception.flag, "nope")

    def testRaisedFaultHasNoImplicitContext(self):
        with self.assertRaises(UnknownFlagError) as context:
            self.app.run(["serve", "--nope"])
        self.assertIsNone(context.exception.__cause__)
        self.assertTrue(context.exception.__suppress_context__)

    def testRaisedFaultKeepsValidatorCause(self):
        def pairs(args):
            if len(args) % 2:
                raise ValueError("expected pairs")

        self.app.command(lambda invocation: None, name="pair", validator=pairs)
        with self.assertRaises(InvalidArgsError) as context:
            self.app.run(["pair", "a"])
        self.assertIsInstance(context.exception.__cause__, ValueError)

    def testAllowUnknown(self):
        self.app.allow_unknown = True
        self.app.run(["serve", "--nope", "x"])
        self.assertEqual(self.calls[0]["nope"], "x")

    def testShellModeExits(self):
        self.app.shell = True
        with self.assertRaises(SystemExit) as context:
            self.app.run(["deploy"])
        self.assertEqual(context.exception.code, 1)


class TestHelp(ApplicationTestCase):
    """Listings and per-command help."""

    def testNoTokensListsCommands(self):
        self.assertIsNone(self.app.run([]))
        self.assertIn("Welcome to tool!", self.text)
        for name in ("db", "serve", "help", "completion", "--debug"):
            self.assertIn(name, self.text)

    def testLeadingHelpFlagListsCommands(self):
        self.app.run(["--help"])
        self.assertIn("Welcome to tool!", self.text)

    def testHelpFlagShortCircuits(self):
        self.assertIsNone(self.app.run(["db", "migrate", "up", "--steps", "x", "-h"]))
        self.assertEqual(self.calls, [])
        self.assertIn("db migrate up", self.text)
        self.assertIn("--steps", self.text)
        self.assertIn("[env: TOOL_STEPS]", self.text)
        self.assertIn("Global Flags:", self.text)
        self.assertIn("tool db m up -s 2", self.text)

    def testHelpAfterSeparatorIsPositional(self):
        self.app.run(["serve", "--", "-h"])
        self.assertEqual(self.calls[0].args, ("-h",))

    def testGroupWithoutCallbackRendersHelp(self):
        self.app.run(["db"])
        self.assertIn("Usage: tool db <command> [flags]", self.text)
        self.assertIn("migrate", self.text)
        self.assertIn("Aliases: d", self.text)

    def testBuiltinHelpCommand(self):
        self.app.run(["help", "db", "m"])
        self.assertIn("db migrate", self.text)
        self.assertIn("Run migrations.", self.text)

    def testBuiltinHelpForUnknownCommand(self):
        with self.assertRaises(CommandNotFoundError):
            self.app.run(["help", "deploy"])

    def testRichDescriptionsRender(self):
        app = Application("tool", globals=[Flag("trace", "T", FlagType.BOOL, descr=Text("Trace calls."))], output=self.output)
        app.command(lambda invocation: None, name="ping", flags=[Flag("count", "c", FlagType.INT, descr=Text("Packets."))])
        app.run([])
        self.assertIn("Trace calls.", self.text)
        app.run(["ping", "--help"])
        self.assertIn("Packets.", self.text)

    def testFancyHelpUsesAPanel(self):
        self.app.fancy = True
        self.app.run(["serve", "--help"])
        self.assertIn("╭", self.text)


class TestCompletion(ApplicationTestCase):
    """Builtin completion command and the completion() method."""

    def testCompletionCommandWritesScript(self):
        self.app.run(["completion", "bash"])
        self.assertIn("complete -F _tool_completions tool", self.text)

    def testCompletionMethodIncludesBuiltins(self):
        script = self.app.completion("zsh")
        for name in ("help", "completion", "db", "migrate", "serve", "--debug"):
            self.assertIn(name, script)

    def testCompletionMethodWritesToFile(self):
        sink = io.StringIO()
        script = self.app.completion("fish", file=sink)
        self.assertEqual(sink.getvalue(), script)

    def testUnsupportedShell(self):
        with self.assertRaises(UnsupportedShellError):
            self.app.run(["completion", "tcsh"])

    def testCompletionAcceptsOneShell(self):
        with self.assertRaises(InvalidArgsError):
            self.app.run(["completion", "bash", "zsh"])


class TestRegistration(ApplicationTestCase):
    """Top-level registration and finalization."""

    def testFinalizeIsIdempotent(self):
        self.app.finalize()
        self.app.finalize()
        names = [command.name for command in self.app.commands]
        self.assertEqual(names, ["db", "serve", "help", "completion"])

    def testAddAfterFinalizeRaises(self):
        self.app.finalize()
        with self.assertRaises(RuntimeError):
            self.app.group("late")

    def testDuplicateTopLevelNameRejected(self):
        with self.assertRaises(DuplicateCommandError):
            self.app.group("s")

    def testNestedCommandRejected(self):
        child = self.app.commands[0].group("child")
        with self.assertRaises(TypeError):
            self.app.add(child)

    def testAddDetachedCommand(self):
        cache = group("cache")
        self.assertIs(self.app.add(cache), cache)
        self.assertIn(cache, self.app.commands)

    def testUserHelpCommandIsKept(self):
        custom = self.app.add(Command(lambda invocation: "custom", name="help"))
        self.app.finalize()
        self.assertEqual(self.app.run(["help"]), "custom")
        self.assertEqual([command for command in self.app.commands if command.name == "help"], [custom])

    def testInvalidName(self):
        with self.assertRaises(ValueError):
            Application(" ")


if __name__ == "__main__":
    unittest.main()
