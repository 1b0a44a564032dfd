"""
Flag declaration and variable table tests.

Scope
- Flag validation (names, short names, no-argument defaults, hook actions).
- FlagSet uniqueness and chained builders.
- Vars.set assignment rules: defaults vs explicit values, accumulation, bindings,
  value faults and deprecation warnings.
"""
import types
import unittest
import warnings
from unittest import TestCase

from drover.faults import *
from drover.flags import *
from drover.values import Type


class TestFlagValidation(TestCase):
    """Declarations are validated on construction."""

    def testEmptyNameRaises(self):
        with self.assertRaises(InvalidFlagNameError):
            Flag("")

    def testDashedNameRaises(self):
        with self.assertRaises(InvalidFlagNameError):
            Flag("--verbose")

    def testConfigurationFaultsAreValueErrors(self):
        with self.assertRaises(ValueError):
            Flag("a=b")

    def testLongShortNameRaises(self):
        with self.assertRaises(InvalidShortNameError):
            Flag("verbose", short="vv")

    def testNoArgWithoutDefaultRaises(self):
        with self.assertRaises(MissingNoArgDefaultError):
            Flag("mode", noarg=True)

    def testHookWithoutActionRaises(self):
        with self.assertRaises(MissingHookActionError):
            Flag("ping", type=Type.HOOK)

    def testUnknownTypeRaises(self):
        with self.assertRaises(InvalidTypeError):
            Flag("size", type="size")

    def testContainerElementMustBeScalar(self):
        with self.assertRaises(InvalidTypeError):
            Flag("items", type=Type.SLICE, elem=Type.MAP)

    def testContainerDefaultMustBeText(self):
        with self.assertRaises(InvalidTypeError):
            Flag("tag", type=Type.SLICE, default=["a", "b"])
        with self.assertRaises(InvalidTypeError):
            FlagSet().map("env", "", default={"a": "1"})
        self.assertEqual(Flag("tag", type=Type.SLICE, default="a").default, "a")

    def testTypeDrivenNoArg(self):
        self.assertTrue(Flag("verbose", type=Type.BOOL).noarg)
        self.assertIs(Flag("verbose", type=Type.BOOL).noarg_default, True)
        self.assertEqual(Flag("level", type=Type.COUNT).noarg_default, "")
        self.assertFalse(Flag("name").noarg)

    def testExplicitNoArg(self):
        flag = Flag("color", "", Type.STRING, noarg=True, noarg_default="auto")
        self.assertTrue(flag.noarg)
        self.assertEqual(flag.noarg_default, "auto")

    def testMatchesBothAxes(self):
        flag = Flag("verbose", short="v", aliases=("loud", "V"))
        self.assertTrue(flag.matches("verbose"))
        self.assertTrue(flag.matches("loud"))
        self.assertFalse(flag.matches("v"))
        self.assertFalse(flag.matches("V"))
        self.assertTrue(flag.matches("v", short=True))
        self.assertTrue(flag.matches("V", short=True))
        self.assertFalse(flag.matches("loud", short=True))

    def testPlaceholder(self):
        self.assertEqual(Flag("jobs", type=Type.INT).placeholder, "int")
        self.assertEqual(Flag("tags", type=Type.SLICE, elem=Type.UINT8).placeholder, "uint8")
        self.assertEqual(Flag("env", type=Type.MAP, elem=Type.INT).placeholder, "string=int")
        self.assertEqual(Flag("verbose", type=Type.BOOL).placeholder, "")
        self.assertEqual(Flag("out", spec="FILE").placeholder, "FILE")

    def testDeclarationsAreReadOnly(self):
        flag = Flag("name")
        with self.assertRaises(AttributeError):
            flag.name = "other"

    def testRepr(self):
        self.assertTrue(repr(Flag("name")).startswith("flag(name='name', type="))


class TestFlagSet(TestCase):
    """Ordered flags with unique names."""

    def testBuildersChain(self):
        flags = FlagSet().bool("verbose", "say more", short="v").int("jobs", "workers", default=4).slice("tag")
        self.assertEqual([flag.name for flag in flags], ["verbose", "jobs", "tag"])
        self.assertEqual([flag.type for flag in flags], [Type.BOOL, Type.INT, Type.SLICE])
        self.assertEqual(flags[1].default, 4)

    def testDuplicateNameRaises(self):
        flags = FlagSet().string("name")
        with self.assertRaises(DuplicateFlagError):
            flags.int("name")

    def testDuplicateShortRaises(self):
        flags = FlagSet().string("name", short="n")
        with self.assertRaises(DuplicateFlagError):
            flags.int("number", short="n")

    def testHookBuilder(self):
        flags = FlagSet().hook("ping", "answer", print)
        self.assertIs(flags[0].type, Type.HOOK)
        self.assertIs(flags[0].default, print)

    def testMapBuilder(self):
        flag = FlagSet().map("env", key=Type.STRING, elem=Type.INT)[0]
        self.assertIs(flag.key, Type.STRING)
        self.assertIs(flag.elem, Type.INT)


class TestVars(TestCase):
    """Assignment rules of the variable table."""

    def testDefaultThenExplicitOverwrites(self):
        flag = Flag("jobs", type=Type.INT)
        vars = Vars()
        vars.set(flag, "4", False)
        self.assertFalse(vars["jobs"].was_set)
        vars.set(flag, "8", True)
        self.assertEqual(vars.value("jobs"), 8)
        self.assertTrue(vars["jobs"].was_set)

    def testDefaultNeverReplacesExplicit(self):
        flag = Flag("jobs", type=Type.INT)
        vars = Vars()
        vars.set(flag, "8", True)
        vars.set(flag, "4", False)
        self.assertEqual(vars.value("jobs"), 8)

    def testFirstExplicitDiscardsDefaultSlice(self):
        flag = Flag("tag", type=Type.SLICE)
        vars = Vars()
        vars.set(flag, "base", False)
        vars.set(flag, "a", True)
        vars.set(flag, "b", True)
        self.assertEqual(vars.value("tag"), ["a", "b"])

    def testEmptyDefaultKeepsZeroValue(self):
        vars = Vars()
        vars.set(Flag("jobs", type=Type.INT), "", False)
        self.assertEqual(vars.value("jobs"), 0)

    def testExplicitEmptyIsParsed(self):
        vars = Vars()
        with self.assertRaises(InvalidValueError):
            vars.set(Flag("jobs", type=Type.INT), "", True)
        vars.set(Flag("name"), "", True)
        self.assertEqual(vars.value("name"), "")
        self.assertTrue(vars["name"].was_set)

    def testInvalidValueCarriesFlagAndText(self):
        flag = Flag("jobs", type=Type.INT)
        with self.assertRaises(InvalidValueError) as caught:
            Vars().set(flag, "many", True)
        self.assertIs(caught.exception.flag, flag)
        self.assertEqual(caught.exception.text, "many")
        self.assertIn("'--jobs'", str(caught.exception))
        self.assertIsInstance(caught.exception.__cause__, ValueError)

    def testValueDefault(self):
        self.assertEqual(Vars().value("missing", 7), 7)

    def testBindingMirrorsValue(self):
        target = types.SimpleNamespace(jobs=0, jobs_set=False)
        flag = Flag("jobs", type=Type.INT, binds=[Binding(target, "jobs", "jobs_set")])
        vars = Vars()
        vars.set(flag, "4", False)
        self.assertEqual(target.jobs, 4)
        self.assertFalse(target.jobs_set)
        vars.set(flag, "8", True)
        self.assertEqual(target.jobs, 8)
        self.assertTrue(target.jobs_set)

    def testBindingIntoMapping(self):
        target = {}
        flag = Flag("tag", type=Type.SLICE, binds=[(target, "tags")])
        vars = Vars()
        vars.set(flag, "a", True)
        vars.set(flag, "b", True)
        self.assertEqual(target, {"tags": ["a", "b"]})

    def testHookRunsOnExplicitSet(self):
        seen = []
        flag = Flag("ping", type=Type.HOOK, default=seen.append)
        Vars().set(flag, "", True, "context")
        self.assertEqual(seen, ["context"])

    def testDeprecatedFlagWarns(self):
        flag = Flag("old", deprecated=True)
        with self.assertWarns(DeprecatedFlagWarning):
            Vars().set(flag, "x", True)

    def testDeprecatedDefaultDoesNotWarn(self):
        flag = Flag("old", deprecated=True)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            Vars().set(flag, "x", False)


if __name__ == "__main__":
    unittest.main()
