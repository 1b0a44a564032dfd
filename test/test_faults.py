"""
Fault taxonomy and rendering tests.

Scope
- Class hierarchy: every fault is a CommandException and a standard error kind.
- Options travel with the fault and survive __replace__.
- Rendering through rich: header with program, code and title, then message and hint.
"""
import io
import unittest
from unittest import TestCase

from rich.console import Console

from drover.commands import Command
from drover.faults import *


def _console():
    return Console(file=io.StringIO(), width=120, color_system=None)


class TestTaxonomy(TestCase):
    """Kinds, codes and options."""

    def testKinds(self):
        self.assertTrue(issubclass(InvalidFlagNameError, ConfigurationError))
        self.assertTrue(issubclass(ConfigurationError, ValueError))
        self.assertTrue(issubclass(UnknownFlagError, LookupError))
        self.assertTrue(issubclass(SuggestionError, UnknownCommandError))
        self.assertTrue(issubclass(MissingArgumentError, ArgumentError))
        self.assertTrue(issubclass(ArgumentError, CommandException))
        self.assertFalse(issubclass(ExitSignal, CommandException))

    def testCodesAreUnique(self):
        codes = [code.value for code in FaultCode]
        self.assertEqual(len(codes), len(set(codes)))

    def testDistinctCodesPerFault(self):
        self.assertEqual(UnknownFlagError.code, FaultCode.UNKNOWN_FLAG)
        self.assertEqual(MissingArgumentError.code, FaultCode.MISSING_ARGUMENT)
        self.assertEqual(SuggestionError.code, FaultCode.SUGGESTED_COMMAND)
        self.assertEqual(DeprecatedCommandWarning.code, FaultCode.DEPRECATED_COMMAND)

    def testOptions(self):
        fault = UnknownFlagError("unknown flag '-x'", input="x", index=3)
        self.assertEqual(fault.input, "x")
        self.assertEqual(fault.index, 3)
        self.assertIsNone(fault.command)
        self.assertEqual(str(fault), "unknown flag '-x'")
        with self.assertRaises(TypeError):
            fault.options["input"] = "y"

    def testReplaceMergesOptions(self):
        fault = UnknownFlagError("unknown flag '-x'", input="x")
        replaced = fault.__replace__(index=2)
        self.assertIsInstance(replaced, UnknownFlagError)
        self.assertEqual((replaced.input, replaced.index), ("x", 2))
        self.assertIsNone(fault.index)

    def testDecorate(self):
        self.assertEqual(decorate("v"), "-v")
        self.assertEqual(decorate("verbose"), "--verbose")
        self.assertEqual(decorate("x", False), "--x")
        self.assertEqual(decorate("x", True), "-x")

    def testExitSignalCode(self):
        self.assertEqual(ExitSignal().code, 0)
        self.assertEqual(ExitSignal(3).code, 3)

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.UNKNOWN_FLAG))
        with self.assertRaises(TypeError):
            getdoc(11111)


class TestRendering(TestCase):
    """rich rendering of faults."""

    def setUp(self):
        self.console = _console()
        self.root = Command(None, name="tool")

    def render(self, fault, **options):
        trigger(fault, self.console, **options)
        return self.console.file.getvalue()

    def testHeaderAndMessage(self):
        output = self.render(UnknownFlagError("unknown flag '--bogus'", command=self.root, hint="try --help"))
        self.assertIn("tool", output)
        self.assertIn(str(FaultCode.UNKNOWN_FLAG.value), output)
        self.assertIn("Unknown Flag", output)
        self.assertIn("unknown flag '--bogus'", output)
        self.assertIn("try --help", output)

    def testOverrides(self):
        output = self.render(InvalidValueError("bad"), title="custom title", hint="another hint")
        self.assertIn("Custom Title", output)
        self.assertIn("another hint", output)

    def testFancyPanel(self):
        output = self.render(MissingArgumentError("flag '-f' requires an argument"), fancy=True)
        self.assertIn("flag '-f' requires an argument", output)
        self.assertIn("Missing Argument", output)

    def testWarningsRender(self):
        output = self.render(DeprecatedFlagWarning("flag '--old' is deprecated"))
        self.assertIn("Deprecated Flag", output)
        self.assertIn(str(FaultCode.DEPRECATED_FLAG.value), output)

    def testTriggerRejectsPlainExceptions(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"), self.console)


if __name__ == "__main__":
    unittest.main()
