#!/usr/bin/env python3
"""
Tests for line filtering, substitution and file sources.
"""

import os
import re
import shutil
import stat
import tempfile
import unittest
from pathlib import Path

from shellstream import Stream, PatternMatchesEmpty, ShellStreamConfig
from shellstream.streams import (
    grep, sed, sed_prefix, sed_suffix, sed_entire, inplace, inplace_entire,
    cut, match, ls, lstree, lsif, find, input_file, inhandle
)


class TestGrepSed(unittest.TestCase):
    """Test pattern based line operations."""

    def test_grep(self):
        """Test keeping lines that contain a match."""
        lines = Stream.select(["abc", "xyz", "b"])
        self.assertEqual(grep("b", lines).collect(), ["abc", "b"])
        self.assertEqual(grep(re.compile(r"^x"), lines).collect(), ["xyz"])

    def test_sed_replaces_all(self):
        """Test replacing every occurrence in every line."""
        lines = Stream.select(["foo", "bar"])
        self.assertEqual(sed("o", "0", lines).collect(), ["f00", "bar"])

    def test_sed_group_reference(self):
        """Test replacements referring to groups."""
        lines = Stream.select(["key=value"])
        self.assertEqual(sed(r"(\w+)=(\w+)", r"\2=\1", lines).collect(), ["value=key"])

    def test_sed_newline_splits_line(self):
        """Test a replacement containing a newline produces several lines."""
        lines = Stream.select(["a,b", "c"])
        self.assertEqual(sed(",", "\n", lines).collect(), ["a", "b", "c"])

    def test_sed_rejects_empty_match(self):
        """Test patterns matching the empty string are rejected before running."""
        ran = []
        lines = Stream.lift(lambda: ran.append(1) or "x")

        with self.assertRaises(PatternMatchesEmpty):
            sed("a*", "b", lines)
        with self.assertRaises(ValueError):
            sed("", "b", lines)
        self.assertEqual(ran, [])

    def test_sed_anchored_variants(self):
        """Test prefix, suffix and entire-line substitutions."""
        lines = Stream.select(["abab", "ab", "cab"])
        self.assertEqual(sed_prefix("ab", "X", lines).collect(), ["Xab", "X", "cab"])
        self.assertEqual(sed_suffix("ab", "X", lines).collect(), ["abX", "X", "cX"])
        self.assertEqual(sed_entire("ab", "X", lines).collect(), ["abab", "X", "cab"])

    def test_sed_callable_replacement(self):
        """Test a function as replacement."""
        lines = Stream.select(["a1b22"])
        doubled = sed(r"\d+", lambda m: str(int(m.group(0)) * 2), lines)
        self.assertEqual(doubled.collect(), ["a2b44"])

    def test_cut_and_match(self):
        """Test splitting and match extraction."""
        self.assertEqual(cut(",", "a,b,,c"), ["a", "b", "", "c"])
        self.assertEqual(match("[0-9]+", "a1b22"), ["1", "22"])
        self.assertEqual(match("z", "abc"), [])


class TestFiles(unittest.TestCase):
    """Test file sources, sinks and in-place editing."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.path = Path(self.temp_dir) / "data.txt"

    def tearDown(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_write_and_read_lines(self):
        """Test writing, appending and reading lines."""
        Stream.select(["one", "two"]).to_file(self.path)
        Stream.single("three").append_to(self.path)

        self.assertEqual(self.path.read_text(), "one\ntwo\nthree\n")
        self.assertEqual(input_file(self.path).collect(), ["one", "two", "three"])

    def test_file_is_reopened_per_run(self):
        """Test that every run reads the current file contents."""
        self.path.write_text("a\n")
        s = input_file(self.path)
        self.assertEqual(s.collect(), ["a"])

        self.path.write_text("b\nc")
        self.assertEqual(s.collect(), ["b", "c"])

    def test_inhandle(self):
        """Test reading lines from an open handle."""
        self.path.write_text("x\ny\n")
        with open(self.path) as handle:
            self.assertEqual(inhandle(handle).collect(), ["x", "y"])

    def test_inplace(self):
        """Test in-place substitution keeps the file mode."""
        self.path.write_text("foo\nbar\n")
        os.chmod(self.path, 0o640)

        inplace("o", "0", self.path)

        self.assertEqual(self.path.read_text(), "f00\nbar\n")
        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o640)
        leftovers = [p for p in os.listdir(self.temp_dir)
                     if p.startswith(ShellStreamConfig.get_instance().inplace_prefix)]
        self.assertEqual(leftovers, [])

    def test_inplace_entire(self):
        """Test in-place replacement of whole lines."""
        self.path.write_text("keep\nswap\n")
        inplace_entire("swap", "swapped", self.path)
        self.assertEqual(self.path.read_text(), "keep\nswapped\n")


class TestDirectories(unittest.TestCase):
    """Test directory listing and traversal."""

    def setUp(self):
        """Create a small tree."""
        self.root = Path(tempfile.mkdtemp())
        (self.root / "a" / "b").mkdir(parents=True)
        (self.root / "a" / "x.txt").write_text("x")
        (self.root / "a" / "b" / "y.py").write_text("y")
        (self.root / "z.txt").write_text("z")

    def tearDown(self):
        """Clean up test environment."""
        shutil.rmtree(self.root, ignore_errors=True)

    def test_ls(self):
        """Test listing immediate children only."""
        children = set(ls(self.root).collect())
        self.assertEqual(children, {self.root / "a", self.root / "z.txt"})

    def test_lstree(self):
        """Test listing every descendant, parents before their children."""
        paths = lstree(self.root).collect()
        expected = {
            self.root / "a",
            self.root / "a" / "b",
            self.root / "a" / "x.txt",
            self.root / "a" / "b" / "y.py",
            self.root / "z.txt",
        }
        self.assertEqual(set(paths), expected)
        self.assertEqual(len(paths), len(expected))
        self.assertLess(paths.index(self.root / "a"), paths.index(self.root / "a" / "b"))
        self.assertLess(paths.index(self.root / "a" / "b"),
                        paths.index(self.root / "a" / "b" / "y.py"))

    def test_lsif_prunes_descent(self):
        """Test a failing predicate keeps the directory but skips its contents."""
        paths = set(lsif(lambda p: p.name != "b", self.root).collect())
        self.assertIn(self.root / "a" / "b", paths)
        self.assertNotIn(self.root / "a" / "b" / "y.py", paths)

    def test_find(self):
        """Test recursive search by pattern."""
        self.assertEqual(find(r"\.py$", self.root).collect(), [self.root / "a" / "b" / "y.py"])
        self.assertEqual(find(r"nothing", self.root).collect(), [])

    def test_find_does_not_follow_symlinks(self):
        """Test symlinked directories are listed but not descended into."""
        os.symlink(self.root / "a", self.root / "link")
        paths = find(r"/link$", self.root).collect()
        self.assertEqual(paths, [self.root / "link"])

    def test_missing_directory_raises(self):
        """Test listing a directory that does not exist is an error."""
        with self.assertRaises(FileNotFoundError):
            ls(self.root / "missing").collect()
        with self.assertRaises(FileNotFoundError):
            lstree(self.root / "missing").collect()

    @unittest.skipIf(hasattr(os, "geteuid") and os.geteuid() == 0,
                     "root can read any directory")
    def test_unreadable_directory_is_empty(self):
        """Test an existing directory that cannot be read produces nothing."""
        locked = self.root / "locked"
        locked.mkdir()
        (locked / "hidden").write_text("h")
        os.chmod(locked, 0)
        try:
            self.assertEqual(ls(locked).collect(), [])
            self.assertIn(locked, lstree(self.root).collect())
        finally:
            os.chmod(locked, 0o755)

    def test_limit_on_tree(self):
        """Test early termination of a traversal."""
        self.assertEqual(len(lstree(self.root).limit(2).collect()), 2)


if __name__ == '__main__':
    unittest.main()
