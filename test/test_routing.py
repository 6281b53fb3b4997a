"""
Routing tests (subcommand descent, aliases, help short-circuit).

Scope
- Validate that resolution follows names and aliases to the deepest command.
- Validate that descent stops at flags and at unmatched tokens.
- Validate CommandNotFoundError for unknown top-level commands.
- Validate help detection before the "--" separator only.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from helmsman import Command, resolve, wants_help
from helmsman.faults import CommandNotFoundError


def noop(invocation):
    pass


class TestResolve(TestCase):
    """Descent through a db > migrate(m) > up/down tree."""

    def setUp(self):
        self.db = Command(noop, name="db", aliases=["d"])
        self.migrate = Command(noop, self.db, "migrate", aliases=["m"])
        self.up = Command(noop, self.migrate, "up")
        self.down = Command(noop, self.migrate, "down")
        self.serve = Command(noop, name="serve")
        self.commands = [self.db, self.serve]

    def testResolvesDeepestCommand(self):
        route = resolve(self.commands, ["db", "migrate", "up", "--steps", "2"])
        self.assertIs(route.command, self.up)
        self.assertEqual(route.tokens, ("--steps", "2"))
        self.assertFalse(route.helping)

    def testAliasesResolveToTheSameCommand(self):
        for tokens in (["d", "m", "down"], ["db", "m", "down"], ["d", "migrate", "down"]):
            self.assertIs(resolve(self.commands, tokens).command, self.down)

    def testTopLevelCommandOnly(self):
        route = resolve(self.commands, ["serve", "8080"])
        self.assertIs(route.command, self.serve)
        self.assertEqual(route.tokens, ("8080",))

    def testUnmatchedTokenStaysPositional(self):
        route = resolve(self.commands, ["db", "migrate", "sideways", "up"])
        self.assertIs(route.command, self.migrate)
        self.assertEqual(route.tokens, ("sideways", "up"))

    def testFlagStopsDescent(self):
        route = resolve(self.commands, ["db", "-v", "migrate"])
        self.assertIs(route.command, self.db)
        self.assertEqual(route.tokens, ("-v", "migrate"))

    def testUnknownTopLevelCommandRaises(self):
        with self.assertRaises(CommandNotFoundError) as context:
            resolve(self.commands, ["deploy"])
        self.assertEqual(context.exception.command, "deploy")

    def testEmptyTokensRaise(self):
        with self.assertRaises(CommandNotFoundError):
            resolve(self.commands, [])

    def testHelpRequested(self):
        route = resolve(self.commands, ["db", "migrate", "--help"])
        self.assertIs(route.command, self.migrate)
        self.assertTrue(route.helping)

    def testHelpAfterSeparatorIsData(self):
        route = resolve(self.commands, ["serve", "--", "-h"])
        self.assertFalse(route.helping)


class TestWantsHelp(TestCase):
    """Help token detection."""

    def testLongAndShortForms(self):
        self.assertTrue(wants_help(["--help"]))
        self.assertTrue(wants_help(["x", "-h"]))

    def testNoHelp(self):
        self.assertFalse(wants_help([]))
        self.assertFalse(wants_help(["--helpful", "-hh"]))

    def testSeparatorStopsTheScan(self):
        self.assertFalse(wants_help(["a", "--", "--help"]))


if __name__ == "__main__":
    unittest.main()
