"""
Declarative adapter tests (flags derived from dataclass fields).

Scope
- Type inference from annotations, field tags and options.
- Values written back to the record, including "set:" companions.
- Faults for malformed tags and conflicting declarations.
"""
import datetime
import unittest
from dataclasses import dataclass, field
from unittest import TestCase

from drover.commands import Command
from drover.context import Context
from drover.faults import *
from drover.parsing import parse
from drover.reflect import *
from drover.values import Type


@dataclass
class Options:
    dry_run: bool = field(default=False, metadata={"drover": "only print actions,short:n"})
    jobs: int = field(default=4, metadata={"drover": "parallel jobs,short:j,set:jobs_set"})
    jobs_set: bool = field(default=False, metadata={"drover": "-"})
    tags: list[str] = field(default_factory=list, metadata={"drover": "labels,short:t,aliases:label|lbl"})
    timeout: datetime.timedelta = datetime.timedelta(seconds=30)
    level: int = field(default=0, metadata={"drover": "verbosity,type:count,short:v"})
    env: dict[str, int] = field(default_factory=dict)
    output: str | None = field(default=None, metadata={"drover": "output file,spec:FILE,key:out|output.path"})
    show: bool = field(default=False, metadata={"drover": "show help,hook:help"})


class TestFlagsFrom(TestCase):
    """Derivation and write-back."""

    def setUp(self):
        self.options = Options()
        self.flags = flags_from(self.options)
        self.root = Command(None, name="tool", flags=self.flags)

    def flag(self, name):
        return next(flag for flag in self.flags if flag.name == name)

    def testNamesInFieldOrder(self):
        self.assertEqual(
            [flag.name for flag in self.flags],
            ["dry-run", "jobs", "tags", "timeout", "level", "env", "output", "show"],
        )

    def testInferredTypes(self):
        self.assertIs(self.flag("dry-run").type, Type.BOOL)
        self.assertIs(self.flag("jobs").type, Type.INT)
        self.assertIs(self.flag("tags").type, Type.SLICE)
        self.assertIs(self.flag("timeout").type, Type.DURATION)
        self.assertIs(self.flag("level").type, Type.COUNT)
        self.assertIs(self.flag("env").type, Type.MAP)
        self.assertIs(self.flag("env").elem, Type.INT)
        self.assertIs(self.flag("output").type, Type.STRING)

    def testTagOptions(self):
        self.assertEqual(self.flag("jobs").usage, "parallel jobs")
        self.assertEqual(self.flag("jobs").short, "j")
        self.assertEqual(self.flag("tags").aliases, ("label", "lbl"))
        self.assertEqual(self.flag("output").placeholder, "FILE")
        self.assertEqual(self.flag("output").keys, ("out", "output.path"))
        self.assertIsNone(self.flag("output").default)

    def testHookField(self):
        show = self.flag("show")
        self.assertIs(show.type, Type.HOOK)
        self.assertEqual(show.special, "hook:help")
        self.assertIs(self.root.flag_special("hook:help"), show)
        self.assertIsNone(self.root.flag("help"))

    def testDefaultsAreWrittenBack(self):
        self.options.jobs = 0
        parse(Context(self.root), self.root, [])
        self.assertEqual(self.options.jobs, 4)
        self.assertFalse(self.options.jobs_set)
        self.assertEqual(self.options.timeout, datetime.timedelta(seconds=30))

    def testExplicitValuesAreWrittenBack(self):
        parse(Context(self.root), self.root, [
            "-n", "-j", "8", "-t", "a", "--lbl", "b", "--timeout", "1m0s", "-vv", "--env", "x=1",
            "--output", "out.txt",
        ])
        self.assertIs(self.options.dry_run, True)
        self.assertEqual(self.options.jobs, 8)
        self.assertTrue(self.options.jobs_set)
        self.assertEqual(self.options.tags, ["a", "b"])
        self.assertEqual(self.options.timeout, datetime.timedelta(minutes=1))
        self.assertEqual(self.options.level, 2)
        self.assertEqual(self.options.env, {"x": 1})
        self.assertEqual(self.options.output, "out.txt")

    def testCustomTagAndMapper(self):
        @dataclass
        class Record:
            max_depth: int = field(default=3, metadata={"cli": "depth limit,short:d"})

        flags = flags_from(Record(), tag="cli", mapper=str.upper)
        self.assertEqual(flags[0].name, "MAX_DEPTH")
        self.assertEqual(flags[0].short, "d")
        self.assertEqual(flags[0].default, 3)

    def testExplicitNameAndNoArg(self):
        @dataclass
        class Record:
            color: str = field(default="never", metadata={"drover": "colorize,name:colour,noarg:always"})

        flag, = flags_from(Record())
        self.assertEqual(flag.name, "colour")
        self.assertTrue(flag.noarg)
        self.assertEqual(flag.noarg_default, "always")

    def testSection(self):
        @dataclass
        class Record:
            jobs: int = field(default=1, metadata={"drover": "workers,section:2"})

        flag, = flags_from(Record())
        self.assertEqual(flag.section, 2)

    def testEscapedSeparators(self):
        @dataclass
        class Record:
            sep: str = field(default=",", metadata={"drover": r"join with a\, b,default:\,"})

        flag, = flags_from(Record())
        self.assertEqual(flag.usage, "join with a, b")
        self.assertEqual(flag.default, ",")


class TestFlagsFromFaults(TestCase):
    """Malformed declarations."""

    def testRequiresInstance(self):
        with self.assertRaises(TypeError):
            flags_from(Options)
        with self.assertRaises(TypeError):
            flags_from({"jobs": 1})

    def testUnknownOption(self):
        @dataclass
        class Record:
            jobs: int = field(default=1, metadata={"drover": "workers,bogus:1"})

        with self.assertRaises(InvalidTagOptionError):
            flags_from(Record())

    def testNonNumericSection(self):
        @dataclass
        class Record:
            jobs: int = field(default=1, metadata={"drover": "workers,section:first"})

        with self.assertRaises(InvalidTagOptionError):
            flags_from(Record())

    def testUnknownHook(self):
        @dataclass
        class Record:
            about: bool = field(default=False, metadata={"drover": "about,hook:about"})

        with self.assertRaises(InvalidTagOptionError):
            flags_from(Record())

    def testUnknownSetField(self):
        @dataclass
        class Record:
            jobs: int = field(default=1, metadata={"drover": "workers,set:missing"})

        with self.assertRaises(InvalidTagOptionError):
            flags_from(Record())

    def testDuplicateField(self):
        @dataclass
        class Record:
            first: int = field(default=0, metadata={"drover": ",set:marker"})
            second: int = field(default=0, metadata={"drover": ",set:marker"})
            marker: bool = field(default=False, metadata={"drover": "-"})

        with self.assertRaises(DuplicateFieldError):
            flags_from(Record())

    def testDuplicateFlag(self):
        @dataclass
        class Record:
            first: int = field(default=0, metadata={"drover": ",name:count"})
            second: int = field(default=0, metadata={"drover": ",name:count"})

        with self.assertRaises(DuplicateFlagError):
            flags_from(Record())

    def testUnsupportedAnnotation(self):
        @dataclass
        class Record:
            handler: object = None

        with self.assertRaises(InvalidTypeError):
            flags_from(Record())

    def testNameMapper(self):
        self.assertEqual(default_name_mapper("dry_run"), "dry-run")
        self.assertEqual(default_name_mapper("DryRun"), "dry-run")
        self.assertEqual(default_name_mapper("_private"), "private")


if __name__ == "__main__":
    unittest.main()
