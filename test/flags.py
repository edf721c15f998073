"""
Flags module behavioral tests (definition, parsing, faults, defaults rendering).

Scope
- Validate definers (bool/int/float/string/duration/var) and name rules.
- Validate parse(): spaced/inline values, boolean toggles, terminators, stop rules.
- Validate friendly faults for unknown/malformed/missing/invalid input.
- Validate defaults() text and read-only accessors.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import datetime
import unittest
from unittest import TestCase

from helmsman import FlagSet, Flag, HelpRequested
from helmsman.faults import (
    FaultCode,
    MalformedFlagError,
    UnknownFlagError,
    MissingFlagValueError,
    InvalidFlagValueError,
)


class TestFlagDefinition(TestCase):
    """Behavioral tests for defining flags on a FlagSet."""

    def testDefinersReturnFlagSpecs(self):
        flags = FlagSet("tool")
        verbose = flags.bool("verbose", usage="talk more")
        self.assertIsInstance(verbose, Flag)
        self.assertTrue(verbose.boolean)
        self.assertEqual(verbose.usage, "talk more")
        self.assertIs(flags.lookup("verbose"), verbose)
        self.assertIsNone(flags.lookup("quiet"))

    def testDefaultsAreVisibleBeforeParse(self):
        flags = FlagSet()
        flags.int("n", 3)
        flags.string("o", "a.out")
        self.assertEqual(flags["n"], 3)
        self.assertEqual(flags["o"], "a.out")
        self.assertFalse(flags.parsed)

    def testRedefinitionRejected(self):
        flags = FlagSet("tool")
        flags.bool("v")
        with self.assertRaises(ValueError):
            flags.int("v")

    def testInvalidNamesRejected(self):
        flags = FlagSet()
        for name in ("", "-v", "a=b", "two words"):
            with self.subTest(name=name), self.assertRaises(ValueError):
                flags.bool(name)

    def testNonStringNameRejected(self):
        with self.assertRaises(TypeError):
            FlagSet().bool(3)

    def testDuplicateChoicesRejected(self):
        with self.assertRaises(ValueError):
            FlagSet().string("mode", choices=["fast", "fast"])

    def testBackquotedUsageNamesTheMetavar(self):
        flag = FlagSet().string("o", usage="write output to `file`")
        self.assertEqual(flag.metavar, "file")
        self.assertEqual(flag.usage, "write output to file")

    def testMetavarDerivedFromKind(self):
        flags = FlagSet()
        self.assertEqual(flags.int("n").metavar, "int")
        self.assertEqual(flags.string("s").metavar, "string")
        self.assertEqual(flags.duration("d").metavar, "duration")
        self.assertEqual(flags.bool("b").metavar, "")

    def testIterationIsSortedByName(self):
        flags = FlagSet()
        flags.bool("zeta")
        flags.bool("alpha")
        flags.bool("mid")
        self.assertEqual([flag.name for flag in flags], ["alpha", "mid", "zeta"])
        self.assertEqual(len(flags), 3)
        self.assertIn("mid", flags)
        self.assertNotIn("other", flags)


class TestFlagParsing(TestCase):
    """Behavioral tests for FlagSet.parse."""

    def setUp(self):
        self.flags = FlagSet("tool")
        self.flags.bool("verbose")
        self.flags.int("n", 1)
        self.flags.string("o", "a.out")

    def testStopsAtFirstNonFlag(self):
        remaining = self.flags.parse(["-verbose", "greet", "-n", "2"])
        self.assertEqual(remaining, ["greet", "-n", "2"])
        self.assertTrue(self.flags["verbose"])
        self.assertEqual(self.flags["n"], 1)
        self.assertEqual(self.flags.args, ("greet", "-n", "2"))
        self.assertTrue(self.flags.parsed)

    def testSpacedAndInlineValues(self):
        self.flags.parse(["-n", "5", "-o=bin/tool"])
        self.assertEqual(self.flags["n"], 5)
        self.assertEqual(self.flags["o"], "bin/tool")

    def testDoubleDashNamesAccepted(self):
        self.flags.parse(["--verbose", "--n=7"])
        self.assertTrue(self.flags["verbose"])
        self.assertEqual(self.flags["n"], 7)

    def testBooleanExplicitFalse(self):
        self.flags.parse(["-verbose=false"])
        self.assertFalse(self.flags["verbose"])
        self.flags.parse(["-verbose=1"])
        self.assertTrue(self.flags["verbose"])

    def testTerminatorIsConsumed(self):
        self.assertEqual(self.flags.parse(["-verbose", "--", "-n", "3"]), ["-n", "3"])
        self.assertEqual(self.flags["n"], 1)

    def testLoneDashIsPositional(self):
        self.assertEqual(self.flags.parse(["-", "-verbose"]), ["-", "-verbose"])
        self.assertFalse(self.flags["verbose"])

    def testLastRepeatedFlagWins(self):
        self.flags.parse(["-n", "2", "-n=9"])
        self.assertEqual(self.flags["n"], 9)

    def testParseResetsValuesToDefaults(self):
        self.flags.parse(["-verbose", "-n", "4"])
        self.flags.parse([])
        self.assertFalse(self.flags["verbose"])
        self.assertEqual(self.flags["n"], 1)
        self.assertEqual(self.flags.explicit, frozenset())

    def testExplicitTracksCommandLineNames(self):
        self.flags.parse(["-n", "4"])
        self.assertEqual(self.flags.explicit, frozenset({"n"}))

    def testIntegerBasePrefixes(self):
        self.flags.parse(["-n", "0x10"])
        self.assertEqual(self.flags["n"], 16)
        self.flags.parse(["-n", "010"])
        self.assertEqual(self.flags["n"], 10)

    def testFloatFlag(self):
        flags = FlagSet()
        ratio = flags.float("ratio", 0.5, "sampling ratio")
        self.assertEqual(ratio.metavar, "float")
        self.assertEqual(flags["ratio"], 0.5)
        flags.parse(["-ratio", "0.25"])
        self.assertEqual(flags["ratio"], 0.25)
        flags.parse(["-ratio=1e3"])
        self.assertEqual(flags["ratio"], 1000.0)
        with self.assertRaises(InvalidFlagValueError):
            flags.parse(["-ratio=half"])
        self.assertEqual(flags.defaults(), "  -ratio float\n        sampling ratio (default 0.5)")

    def testStringPromptRejected(self):
        with self.assertRaises(TypeError):
            self.flags.parse("-verbose")

    def testNamespaceIsReadOnly(self):
        self.flags.parse(["-n", "2"])
        namespace = self.flags.namespace()
        self.assertEqual(namespace["n"], 2)
        with self.assertRaises(TypeError):
            namespace["n"] = 3  # type: ignore[index]

    def testSetConvertsText(self):
        self.flags.set("n", "12")
        self.assertEqual(self.flags["n"], 12)
        with self.assertRaises(KeyError):
            self.flags.set("missing", "1")


class TestFlagFaults(TestCase):
    """Friendly faults raised while parsing."""

    def setUp(self):
        self.flags = FlagSet("tool")
        self.flags.bool("verbose")
        self.flags.int("n")

    def testUnknownFlagRaisesWithSuggestion(self):
        with self.assertRaises(UnknownFlagError) as context:
            self.flags.parse(["-verbos"])
        fault = context.exception
        self.assertEqual(fault.options["code"], FaultCode.UNKNOWN_FLAG)
        self.assertIn("verbose", fault.options["suggestions"])
        self.assertIn("'-verbos'", fault.message)
        self.assertIn("first position", fault.message)

    def testPositionHonorsOffset(self):
        with self.assertRaises(UnknownFlagError) as context:
            self.flags.parse(["-verbose", "-x"], offset=2)
        self.assertIn("third position", context.exception.message)

    def testAnchoredPositionIsTheDefaultOffset(self):
        self.flags._anchor(2)
        with self.assertRaises(UnknownFlagError) as context:
            self.flags.parse(["-x"])
        self.assertIn("second position", context.exception.message)
        with self.assertRaises(UnknownFlagError) as context:
            self.flags.parse(["-x"], offset=5)
        self.assertIn("fifth position", context.exception.message)

    def testMalformedFlagRaises(self):
        for token in ("---x", "-=x", "--=x"):
            with self.subTest(token=token), self.assertRaises(MalformedFlagError):
                self.flags.parse([token])

    def testMissingValueRaises(self):
        with self.assertRaises(MissingFlagValueError):
            self.flags.parse(["-n"])

    def testInvalidValueRaises(self):
        with self.assertRaises(InvalidFlagValueError):
            self.flags.parse(["-n", "many"])
        with self.assertRaises(InvalidFlagValueError):
            self.flags.parse(["-verbose=maybe"])

    def testInvalidChoiceRaises(self):
        flags = FlagSet()
        flags.string("mode", "fast", choices=("fast", "safe"))
        with self.assertRaises(InvalidFlagValueError) as context:
            flags.parse(["-mode=slow"])
        self.assertIn("must be one of", context.exception.options["hint"])

    def testHelpRequestedWhenUndefined(self):
        for token in ("-h", "-help", "--help"):
            with self.subTest(token=token), self.assertRaises(HelpRequested):
                self.flags.parse([token])

    def testDefinedHelpFlagIsOrdinary(self):
        flags = FlagSet()
        flags.bool("h")
        flags.parse(["-h"])
        self.assertTrue(flags["h"])


class TestDurations(TestCase):
    """Duration flags accept compact unit strings."""

    def testCompoundDuration(self):
        flags = FlagSet()
        flags.duration("timeout")
        flags.parse(["-timeout", "1h30m"])
        self.assertEqual(flags["timeout"], datetime.timedelta(hours=1, minutes=30))

    def testFractionalAndSmallUnits(self):
        flags = FlagSet()
        flags.duration("d")
        flags.parse(["-d=1.5s"])
        self.assertEqual(flags["d"], datetime.timedelta(seconds=1.5))
        flags.parse(["-d=250ms"])
        self.assertEqual(flags["d"], datetime.timedelta(milliseconds=250))

    def testNanosecondsRoundToMicroseconds(self):
        flags = FlagSet()
        flags.duration("d")
        flags.parse(["-d=1500ns"])
        self.assertEqual(flags["d"], datetime.timedelta(microseconds=2))
        flags.parse(["-d=1ms500000ns"])
        self.assertEqual(flags["d"], datetime.timedelta(microseconds=1500))

    def testNegativeCompoundDuration(self):
        flags = FlagSet()
        flags.duration("d")
        flags.parse(["-d=-1m30s"])
        self.assertEqual(flags["d"], -datetime.timedelta(seconds=90))

    def testBareZeroAndMissingUnit(self):
        flags = FlagSet()
        flags.duration("d", datetime.timedelta(seconds=3))
        flags.parse(["-d=0"])
        self.assertEqual(flags["d"], datetime.timedelta(0))
        with self.assertRaises(InvalidFlagValueError):
            flags.parse(["-d=10"])


class TestDefaultsRendering(TestCase):
    """defaults() lists every flag with its metavar, usage and non-zero default."""

    def testDefaultsText(self):
        flags = FlagSet()
        flags.string("o", "a.out", "write output to `file`")
        flags.bool("v", usage="verbose output")
        flags.duration("timeout", datetime.timedelta(minutes=2), "give up after `d`")
        self.assertEqual(flags.defaults(), "\n".join([
            "  -o file",
            '        write output to file (default "a.out")',
            "  -timeout d",
            "        give up after d (default 2m0s)",
            "  -v",
            "        verbose output",
        ]))

    def testEmptyFlagSetRendersNothing(self):
        self.assertEqual(FlagSet().defaults(), "")


if __name__ == "__main__":
    unittest.main()
