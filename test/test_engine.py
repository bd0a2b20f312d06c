"""
Matching engine behavioral tests (outcomes, diagnostics, subcommands, redaction).

Scope
- Validate Value/EarlyExit/Failure outcomes for switches, options and positionals.
- Validate diagnostic aggregation: every problem of a pass is reported, in
  encounter order, with at most one diagnostic per field.
- Validate the help flag priority, the "help" keyword, subcommand recursion
  and subcommand paths.
- Validate counting and early-exit switches.
- Validate redact() output.

Conventions
- Test method names follow CamelCase per project convention.
- Assertions use diagnostic kinds and field names, never rendered text, unless
  the rendering itself is under test.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from rich.text import Text

from argosy import (
    Arguments,
    CommandSchema,
    EarlyExit,
    Failure,
    FaultCode,
    Option,
    Positional,
    Selection,
    Subcommand,
    Switch,
    Value,
    integer,
    match,
    redact,
)


def climb_schema(**options):
    return CommandSchema("climb", [
        Switch("-j", "--jump", descr="whether or not to jump"),
        Option("--height", converter=integer, descr="how high to go", **options),
    ])


def tree_schema():
    one = CommandSchema("one", [Option("--value", arity="optional")], descr="The first one.")
    two = CommandSchema("two", [Switch("--fooey")], descr="The second one.")
    return CommandSchema("top", [
        Option("--level", converter=integer, arity="optional"),
        Subcommand([one, two]),
    ])


class TestScenarios(TestCase):
    """Behavioral tests for the reference jump/height scenarios."""

    def testOptionValue(self):
        outcome = match(climb_schema(), ["--height", "5"])
        self.assertIsInstance(outcome, Value)
        self.assertEqual(outcome.result, Arguments(jump=False, height=5))

    def testMissingRequired(self):
        outcome = match(climb_schema(), [])
        self.assertIsInstance(outcome, Failure)
        self.assertEqual(outcome.kinds(), [FaultCode.MISSING_REQUIRED_VALUE])
        self.assertEqual(outcome.diagnostics[0].field_name, "height")

    def testSwitchAndOption(self):
        outcome = match(climb_schema(), ["-j", "--height", "5"])
        self.assertEqual(outcome.result.jump, True)
        self.assertEqual(outcome.result.height, 5)

    def testInlineValue(self):
        self.assertEqual(match(climb_schema(), ["--height=7"]).result.height, 7)

    def testLazyDefault(self):
        calls = []

        def supplier():
            calls.append(1)
            return 5

        schema = CommandSchema("climb", [Option("--height", converter=integer, default_factory=supplier)])
        self.assertEqual(match(schema, []).result.height, 5)
        self.assertEqual(calls, [1])
        self.assertEqual(match(schema, ["--height", "9"]).result.height, 9)
        self.assertEqual(calls, [1])

    def testInvalidValue(self):
        outcome = match(climb_schema(), ["--height", "abc"])
        self.assertIsInstance(outcome, Failure)
        self.assertEqual(outcome.kinds(), [FaultCode.INVALID_VALUE])
        diagnostic = outcome.diagnostics[0]
        self.assertEqual(diagnostic.field_name, "height")
        self.assertEqual(diagnostic.token, "abc")
        self.assertEqual(diagnostic.options["value"], "abc")
        self.assertEqual(
            diagnostic.message,
            "error parsing option '--height' with value 'abc': expected an integer, got 'abc'",
        )

    def testPositionalOverflow(self):
        schema = CommandSchema("copy", [Positional("first")])
        outcome = match(schema, ["a", "b"])
        self.assertIsInstance(outcome, Failure)
        self.assertEqual(outcome.kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT])
        self.assertEqual(outcome.diagnostics[0].token, "b")

    def testOverflowIsReportedPerToken(self):
        schema = CommandSchema("copy", [Positional("first")])
        outcome = match(schema, ["a", "b", "c"])
        self.assertEqual([diagnostic.token for diagnostic in outcome.diagnostics], ["b", "c"])


class TestDefaults(TestCase):
    """Behavioral tests for empty input against optional fields."""

    def testEverythingAtDefault(self):
        schema = CommandSchema("tool", [
            Switch("--verbose"),
            Option("--name", arity="optional"),
            Option("--tag", arity="repeated"),
            Option("--retries", converter=integer, default=3),
            Positional("target", arity="optional", default="."),
        ])
        outcome = match(schema, [])
        self.assertEqual(outcome.result, Arguments(verbose=False, name=None, tag=[], retries=3, target="."))

    def testFactoryReceivesEveryDest(self):
        schema = CommandSchema("tool", [Positional("first"), Switch("--dry-run")], factory=dict)
        self.assertEqual(match(schema, ["a"]).result, {"first": "a", "dry_run": False})

    def testDefaultsNotRunOnFailure(self):
        calls = []
        schema = CommandSchema("tool", [
            Option("--name", default_factory=lambda: calls.append(1)),
            Positional("first"),
        ])
        self.assertIsInstance(match(schema, []), Failure)
        self.assertEqual(calls, [])


class TestAggregation(TestCase):
    """Behavioral tests for diagnostic aggregation."""

    def testRepeatedAccumulatesInOrder(self):
        schema = CommandSchema("tool", [Option("--tag", arity="repeated")])
        self.assertEqual(match(schema, ["--tag", "b", "--tag=a", "--tag", "c"]).result.tag, ["b", "a", "c"])

    def testRepeatedPositional(self):
        schema = CommandSchema("cat", [Positional("files", arity="repeated")])
        self.assertEqual(match(schema, ["a", "b", "c"]).result.files, ["a", "b", "c"])

    def testDuplicateReportedOnce(self):
        outcome = match(climb_schema(), ["--height", "1", "--height", "2", "--height", "3"])
        self.assertEqual(outcome.kinds(), [FaultCode.DUPLICATE_OPTION])
        self.assertEqual(outcome.diagnostics[0].field_name, "height")

    def testDuplicateValueIsStillConsumed(self):
        schema = CommandSchema("tool", [Option("--name"), Positional("first", arity="optional")])
        outcome = match(schema, ["--name", "a", "--name", "b"])
        self.assertEqual(outcome.kinds(), [FaultCode.DUPLICATE_OPTION])

    def testSwitchIsIdempotent(self):
        outcome = match(climb_schema(), ["-j", "--jump", "-j", "--height", "1"])
        self.assertIsInstance(outcome, Value)
        self.assertTrue(outcome.result.jump)

    def testMissingValue(self):
        outcome = match(climb_schema(), ["--height"])
        self.assertEqual(outcome.kinds(), [FaultCode.MISSING_VALUE])
        self.assertEqual(outcome.diagnostics[0].field_name, "height")

    def testEveryProblemReported(self):
        outcome = match(climb_schema(), ["--nope", "-z", "-jk", "--height", "x", "extra"])
        self.assertEqual(outcome.kinds(), [
            FaultCode.UNRECOGNIZED_ARGUMENT,
            FaultCode.UNRECOGNIZED_ARGUMENT,
            FaultCode.UNRECOGNIZED_ARGUMENT,
            FaultCode.UNRECOGNIZED_ARGUMENT,
            FaultCode.INVALID_VALUE,
        ])
        self.assertEqual(
            [diagnostic.token for diagnostic in outcome.diagnostics],
            ["--nope", "-z", "-jk", "extra", "x"],
        )

    def testSwitchWithInlineValue(self):
        outcome = match(climb_schema(), ["--jump=yes", "--height", "1"])
        self.assertEqual(outcome.kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT])

    def testMissingRequiredPositional(self):
        outcome = match(CommandSchema("copy", [Positional("source"), Positional("target")]), ["a"])
        self.assertEqual(outcome.kinds(), [FaultCode.MISSING_REQUIRED_VALUE])
        self.assertEqual(outcome.diagnostics[0].field_name, "target")
        self.assertEqual(outcome.diagnostics[0].message, "required positional argument 'target' not provided")

    def testSingleInvalidValuePerField(self):
        schema = CommandSchema("tool", [Option("--n", converter=integer, arity="repeated")])
        outcome = match(schema, ["--n", "x", "--n", "y", "--n", "1"])
        self.assertEqual(outcome.kinds(), [FaultCode.INVALID_VALUE])
        self.assertEqual(outcome.diagnostics[0].token, "x")

    def testOptionValueMayLookLikeAFlag(self):
        schema = CommandSchema("tool", [Option("--offset", converter=integer)])
        self.assertEqual(match(schema, ["--offset", "-5"]).result.offset, -5)

    def testEndOfOptions(self):
        schema = CommandSchema("tool", [Switch("--jump"), Positional("files", arity="repeated")])
        outcome = match(schema, ["--", "--jump", "-h"])
        self.assertEqual(outcome.result, Arguments(jump=False, files=["--jump", "-h"]))

    def testRejectsNonSchema(self):
        with self.assertRaises(TypeError):
            match("climb", [])


class TestHelp(TestCase):
    """Behavioral tests for the help flag priority."""

    def testHelpWinsOverDiagnostics(self):
        outcome = match(climb_schema(), ["--bogus", "--height", "abc", "extra", "--help"])
        self.assertIsInstance(outcome, EarlyExit)
        self.assertTrue(outcome.success)
        self.assertTrue(outcome.text.startswith("Usage: climb [-j] --height <height>"))

    def testShortHelp(self):
        self.assertIsInstance(match(climb_schema(), ["-h"]), EarlyExit)

    def testHelpIsNeverAnOptionValue(self):
        self.assertIsInstance(match(climb_schema(), ["--height", "--help"]), EarlyExit)

    def testHelpAfterMarkerIsBare(self):
        schema = CommandSchema("tool", [Positional("first")])
        self.assertEqual(match(schema, ["--", "--help"]).result.first, "--help")

    def testInlineHelpIsUnrecognized(self):
        outcome = match(climb_schema(), ["--help=me", "--height", "1"])
        self.assertEqual(outcome.kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT])

    def testCommandName(self):
        outcome = match(climb_schema(), ["--help"], command_name="rock climb")
        self.assertTrue(outcome.text.startswith("Usage: rock climb "))

    def testRenderedIsStyled(self):
        outcome = match(climb_schema(), ["--help"])
        self.assertEqual(outcome.rendered.plain, outcome.text)


class TestHelpKeyword(TestCase):
    """Behavioral tests for the bare "help" word."""

    def testOwnHelp(self):
        outcome = match(tree_schema(), ["help"])
        self.assertIsInstance(outcome, EarlyExit)
        self.assertTrue(outcome.text.startswith("Usage: top [--level <level>] <command> [<args>]"))

    def testFollowingSubcommandSelectsHelp(self):
        outcome = match(tree_schema(), ["help", "one"])
        self.assertIsInstance(outcome, EarlyExit)
        self.assertTrue(outcome.text.startswith("Usage: top one [--value <value>]\n\nThe first one."))

    def testInsideSubcommand(self):
        outcome = match(tree_schema(), ["two", "help"])
        self.assertTrue(outcome.text.startswith("Usage: top two [--fooey]"))

    def testNestedSubcommands(self):
        leaf = CommandSchema("leaf", [Positional("name")], descr="The leaf.")
        root = CommandSchema("root", [Subcommand([CommandSchema("middle", [Subcommand([leaf])])])])
        outcome = match(root, ["help", "middle", "leaf"])
        self.assertTrue(outcome.text.startswith("Usage: root middle leaf <name>\n\nThe leaf."))

    def testRequiredFieldsIgnored(self):
        schema = CommandSchema("copy", [Positional("source"), Subcommand([CommandSchema("one")])])
        self.assertIsInstance(match(schema, ["help"]), EarlyExit)

    def testHelpFlagAfterKeyword(self):
        outcome = match(tree_schema(), ["help", "one", "--help"])
        self.assertTrue(outcome.text.startswith("Usage: top one"))

    def testTrailingArgumentsRejected(self):
        outcome = match(tree_schema(), ["help", "one", "extra"])
        self.assertIsInstance(outcome, Failure)
        self.assertEqual(outcome.kinds()[0], FaultCode.UNRECOGNIZED_ARGUMENT)
        self.assertEqual(outcome.diagnostics[0].token, "extra")

    def testTrailingFlagRejected(self):
        outcome = match(CommandSchema("tool", [Switch("--jump")]), ["help", "--jump"])
        self.assertEqual(outcome.kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT])
        self.assertEqual(outcome.diagnostics[0].token, "--jump")

    def testOptionValueIsNotKeyword(self):
        schema = CommandSchema("tool", [Option("--topic")])
        self.assertEqual(match(schema, ["--topic", "help"]).result.topic, "help")

    def testKeywordAfterMarkerIsBare(self):
        schema = CommandSchema("tool", [Positional("first")])
        self.assertEqual(match(schema, ["--", "help"]).result.first, "help")


class TestSwitches(TestCase):
    """Behavioral tests for counting and early-exit switches."""

    def testCountingSwitch(self):
        schema = CommandSchema("tool", [Switch("-v", "--verbose", count=True)])
        self.assertEqual(match(schema, ["-v", "--verbose", "-v"]).result.verbose, 3)
        self.assertEqual(match(schema, []).result.verbose, 0)

    def testCountingSwitchRedacted(self):
        schema = CommandSchema("tool", [Switch("-v", "--verbose", count=True)])
        self.assertEqual(redact(schema, ["-v", "-v"]), ["-v", "-v"])

    def testEarlyExitIgnoresRequiredFields(self):
        schema = CommandSchema("tool", [
            Positional("route"),
            Switch("--version", early_exit="tool 1.0.0"),
            Subcommand([CommandSchema("one")]),
        ])
        outcome = match(schema, ["--version"])
        self.assertIsInstance(outcome, EarlyExit)
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.text, "tool 1.0.0")

    def testEarlyExitWinsOverDiagnostics(self):
        schema = CommandSchema("tool", [Switch("--version", early_exit="tool 1.0.0")])
        self.assertIsInstance(match(schema, ["--bogus", "--version"]), EarlyExit)

    def testEarlyExitKeepsStyledText(self):
        rendered = Text("tool 1.0.0", "bold")
        outcome = match(CommandSchema("tool", [Switch("--version", early_exit=rendered)]), ["--version"])
        self.assertIs(outcome.rendered, rendered)
        self.assertEqual(outcome.text, "tool 1.0.0")

    def testEarlyExitWithInlineValue(self):
        schema = CommandSchema("tool", [Switch("--version", early_exit="tool 1.0.0")])
        self.assertEqual(match(schema, ["--version=2"]).kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT])


class TestSubcommands(TestCase):
    """Behavioral tests for subcommand recursion."""

    def testSelectedVariant(self):
        outcome = match(tree_schema(), ["two", "--fooey"])
        self.assertIsInstance(outcome, Value)
        selection = outcome.result.command
        self.assertIsInstance(selection, Selection)
        self.assertEqual(selection.name, "two")
        self.assertTrue(selection.value.fooey)
        self.assertIsNone(outcome.result.level)

    def testParentOptionsBeforeSubcommand(self):
        outcome = match(tree_schema(), ["--level", "2", "one", "--value", "x"])
        self.assertEqual(outcome.result.level, 2)
        self.assertEqual(outcome.result.command, Selection("one", Arguments(value="x")))

    def testParentOptionsAreNotVisibleInChild(self):
        outcome = match(tree_schema(), ["one", "--level"])
        self.assertEqual(outcome.kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT])
        self.assertEqual(outcome.diagnostics[0].subcommand_path, ("one",))

    def testUnknownSubcommand(self):
        outcome = match(tree_schema(), ["three", "--fooey", "whatever"])
        self.assertEqual(outcome.kinds(), [FaultCode.UNKNOWN_SUBCOMMAND])
        self.assertEqual(outcome.diagnostics[0].token, "three")
        self.assertEqual(outcome.diagnostics[0].message, "unrecognized subcommand 'three'")

    def testHelpAfterUnknownSubcommand(self):
        outcome = match(tree_schema(), ["three", "-h"])
        self.assertIsInstance(outcome, EarlyExit)
        self.assertTrue(outcome.text.startswith("Usage: top [--level <level>] <command> [<args>]"))

    def testMissingSubcommand(self):
        outcome = match(tree_schema(), [])
        self.assertEqual(outcome.kinds(), [FaultCode.MISSING_REQUIRED_VALUE])
        self.assertEqual(outcome.diagnostics[0].message, "one of the following subcommands must be present: one, two")

    def testOptionalSubcommand(self):
        schema = CommandSchema("top", [Subcommand([CommandSchema("one")], arity="optional")])
        self.assertIsNone(match(schema, []).result.command)

    def testSubcommandHelp(self):
        outcome = match(tree_schema(), ["two", "--help"])
        self.assertTrue(outcome.text.startswith("Usage: top two [--fooey]\n\nThe second one."))

    def testNestedPathAndUsage(self):
        outcome = match(tree_schema(), ["two", "--bad"])
        diagnostic = outcome.diagnostics[0]
        self.assertEqual(diagnostic.subcommand_path, ("two",))
        self.assertEqual(diagnostic.describe(), "two: unrecognized argument '--bad'")
        self.assertEqual(outcome.usage.plain, "Usage: top two [--fooey]")
        self.assertEqual(outcome.render(), "\n".join([
            "Usage: top two [--fooey]",
            "two: unrecognized argument '--bad'",
            "run 'top two --help' for more information",
        ]))

    def testErrorsAtEveryLevel(self):
        outcome = match(tree_schema(), ["--level", "x", "two", "--bad"])
        self.assertEqual(outcome.kinds(), [FaultCode.UNRECOGNIZED_ARGUMENT, FaultCode.INVALID_VALUE])
        self.assertEqual(
            [diagnostic.subcommand_path for diagnostic in outcome.diagnostics],
            [("two",), ()],
        )

    def testDeepNesting(self):
        leaf = CommandSchema("leaf", [Positional("name")])
        middle = CommandSchema("middle", [Subcommand([leaf])])
        root = CommandSchema("root", [Subcommand([middle])])
        outcome = match(root, ["middle", "leaf", "x"])
        self.assertEqual(outcome.result.command.value.command.value.name, "x")
        failure = match(root, ["middle", "leaf"])
        self.assertEqual(failure.diagnostics[0].subcommand_path, ("middle", "leaf"))

    def testPositionalsBeforeSubcommand(self):
        schema = CommandSchema("top", [Positional("target"), Subcommand([CommandSchema("one")])])
        outcome = match(schema, ["here", "one"])
        self.assertEqual(outcome.result.target, "here")
        self.assertEqual(outcome.result.command.name, "one")


class TestRedact(TestCase):
    """Behavioral tests for redact()."""

    def testValuesReplaced(self):
        schema = CommandSchema("climb", [
            Switch("-j", "--jump"),
            Option("--height", converter=integer),
            Positional("route"),
        ])
        self.assertEqual(
            redact(schema, ["-j", "--height=5", "north"]),
            ["-j", "--height", "height", "route"],
        )

    def testSubcommandNamesKept(self):
        self.assertEqual(redact(tree_schema(), ["two", "--fooey"]), ["two", "--fooey"])

    def testEndOfOptionsKept(self):
        schema = CommandSchema("cat", [Positional("files", arity="repeated")])
        self.assertEqual(redact(schema, ["--", "secret"]), ["--", "files"])

    def testFailureReturned(self):
        self.assertIsInstance(redact(climb_schema(), []), Failure)


class TestLogging(TestCase):
    """Behavioral tests for debug traces."""

    def testStateTransitionsLogged(self):
        with self.assertLogs("argosy.engine", level="DEBUG") as logs:
            match(tree_schema(), ["two", "--fooey"])
        self.assertTrue(any("dispatching to subcommand 'two'" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
