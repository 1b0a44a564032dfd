"""
Utility tests (sentinel, coalesce, rename, mirror, split).
"""
import unittest
from unittest import TestCase

from drover.utils import *


class TestUnset(TestCase):
    """Sentinel behavior."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testSealed(self):
        with self.assertRaises(TypeError):
            type("Subclass", (UnsetType,), {})

    def testCoalesce(self):
        self.assertEqual(coalesce("push", "pull"), "push")
        self.assertEqual(coalesce(Unset, "pull"), "pull")
        self.assertIsNone(coalesce(None, "pull"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertIsNone(coalesce(Unset))


class TestHelpers(TestCase):
    """rename, mirror and split."""

    def testRename(self):
        @rename("renamed")
        def original():
            pass

        self.assertEqual(original.__name__, "renamed")
        self.assertEqual(original.__qualname__, "renamed")

    def testMirrorCopiesContainers(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = [1, 2]

        holder = Holder()
        holder.items.append(3)
        self.assertEqual(holder.items, [1, 2])
        with self.assertRaises(AttributeError):
            holder.items = []

    def testSplit(self):
        self.assertEqual(split("a,b", ","), ["a", "b"])
        self.assertEqual(split(r"a\,b,c", ","), ["a,b", "c"])
        self.assertEqual(split("a,,b", ","), ["a", "", "b"])
        self.assertEqual(split("", ","), [])
        self.assertEqual(split(r"a\|b|c", "|"), ["a|b", "c"])

    def testSplitRejectsLongSeparator(self):
        with self.assertRaises(TypeError):
            split("a::b", "::")


if __name__ == "__main__":
    unittest.main()
