"""
Streams backed by files, handles and directories.
"""

import os
import stat
import sys
from pathlib import Path
from typing import Callable, IO, Union

from shellstream.streams.stream import Stream, FileStream
from shellstream.streams.text import match

PathLike = Union[str, Path]


class DirectoryStream(Stream[Path]):
    """
    Stream the immediate children of a directory, excluding "." and "..".

    A directory that exists but cannot be read produces no elements; a missing
    one raises FileNotFoundError.
    """

    def __init__(self, path: PathLike):
        self.path = Path(path)

        def list_source(consumer):
            x = consumer.begin()
            try:
                entries = os.scandir(self.path)
            except PermissionError:
                return consumer.done(x)
            with entries:
                for entry in entries:
                    x = consumer.step(x, self.path / entry.name)
            return consumer.done(x)

        super().__init__(list_source)


def ls(path: PathLike) -> Stream[Path]:
    """Stream all immediate children of the given directory."""
    return DirectoryStream(path)


def _is_dir(path: Path) -> bool:
    return path.is_dir()


def lsif(predicate: Callable[[Path], bool], path: PathLike) -> Stream[Path]:
    """
    Stream all recursive descendants of the given directory.

    Directories failing ``predicate`` are produced but not descended into.
    """
    def descend(child: Path) -> Stream[Path]:
        if _is_dir(child) and predicate(child):
            return Stream.single(child) | lsif(predicate, child)
        return Stream.single(child)

    return ls(path).bind(descend)


def lstree(path: PathLike) -> Stream[Path]:
    """Stream all recursive descendants of the given directory."""
    return lsif(lambda _: True, path)


def _is_not_symlink(path: Path) -> bool:
    return not stat.S_ISLNK(os.lstat(path).st_mode)


def find(pattern, path: PathLike) -> Stream[Path]:
    """Search a directory recursively for all paths matching ``pattern``."""
    def keep(candidate: Path) -> Stream[Path]:
        return Stream.guard(bool(match(pattern, str(candidate)))).map(lambda _: candidate)

    return lsif(_is_not_symlink, path).bind(keep)


def input_file(path: PathLike) -> Stream[str]:
    """Read lines of text from a file."""
    return FileStream(path)


def inhandle(handle: IO[str]) -> Stream[str]:
    """Read lines of text from an open handle."""
    return Stream.from_handle(handle)


def stdin() -> Stream[str]:
    """Read lines of text from standard input."""
    return Stream.from_handle(sys.stdin)
