"""
Line filtering and substitution.

Patterns are regular expressions, given as strings or compiled ``re``
patterns. Filtering is expressed as a zero-or-one element sub-stream per line.
"""

import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Pattern, Union

from shellstream.config import config
from shellstream.errors import PatternMatchesEmpty
from shellstream.streams.stream import Stream, FileStream

PatternLike = Union[str, Pattern[str]]
Replacement = Union[str, Callable[['re.Match[str]'], str]]


def compile_pattern(pattern: PatternLike) -> Pattern[str]:
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


def match(pattern: PatternLike, text: str) -> List[str]:
    """All non-overlapping matches of ``pattern`` in ``text``."""
    return [m.group(0) for m in compile_pattern(pattern).finditer(text)]


def matches_empty(pattern: PatternLike) -> bool:
    """Whether ``pattern`` can match the empty string."""
    return compile_pattern(pattern).fullmatch('') is not None


def _expand(m: 're.Match[str]', replacement: Replacement) -> str:
    if callable(replacement):
        return replacement(m)
    return m.expand(replacement)


def _anchored(pattern: Pattern[str], prefix: str, suffix: str) -> Pattern[str]:
    return re.compile(prefix + '(?:' + pattern.pattern + ')' + suffix, pattern.flags)


def _lines(text: str) -> Stream[str]:
    return Stream.select(text.split('\n'))


def grep(pattern: PatternLike, stream: Stream[str]) -> Stream[str]:
    """Keep all lines that match the given pattern."""
    compiled = compile_pattern(pattern)

    def keep(line: str) -> Stream[str]:
        return Stream.guard(compiled.search(line) is not None).map(lambda _: line)

    return stream.bind(keep)


def sed(pattern: PatternLike, replacement: Replacement, stream: Stream[str]) -> Stream[str]:
    """
    Replace all occurrences of ``pattern`` in every line.

    A pattern matching the empty string would match everywhere; it is rejected
    before the stream runs. The check is a heuristic and cannot catch every
    such pattern.
    """
    compiled = compile_pattern(pattern)
    if matches_empty(compiled):
        raise PatternMatchesEmpty("sed: the given pattern matches the empty string")

    def substitute(line: str) -> Stream[str]:
        return _lines(compiled.sub(replacement, line))

    return stream.bind(substitute)


def sed_prefix(pattern: PatternLike, replacement: Replacement, stream: Stream[str]) -> Stream[str]:
    """Like sed, but the substitution must match the beginning of the line."""
    anchored = _anchored(compile_pattern(pattern), r'\A', '')

    def substitute(line: str) -> Stream[str]:
        m = anchored.match(line)
        if m is None:
            return Stream.single(line)
        return _lines(_expand(m, replacement) + line[m.end():])

    return stream.bind(substitute)


def sed_suffix(pattern: PatternLike, replacement: Replacement, stream: Stream[str]) -> Stream[str]:
    """Like sed, but the substitution must match the end of the line."""
    anchored = _anchored(compile_pattern(pattern), '', r'\Z')

    def substitute(line: str) -> Stream[str]:
        m = anchored.search(line)
        if m is None:
            return Stream.single(line)
        return _lines(line[:m.start()] + _expand(m, replacement))

    return stream.bind(substitute)


def sed_entire(pattern: PatternLike, replacement: Replacement, stream: Stream[str]) -> Stream[str]:
    """Like sed, but the substitution must match the entire line."""
    compiled = compile_pattern(pattern)

    def substitute(line: str) -> Stream[str]:
        m = compiled.fullmatch(line)
        if m is None:
            return Stream.single(line)
        return _lines(_expand(m, replacement))

    return stream.bind(substitute)


def _inplace_with(edit, pattern: PatternLike, replacement: Replacement,
                  path: Union[str, Path]) -> None:
    path = Path(path)
    edited = edit(pattern, replacement, FileStream(path))

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=config.inplace_prefix)
    try:
        with os.fdopen(fd, 'w', encoding=config.encoding) as handle:
            edited.to_handle(handle)
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def inplace(pattern: PatternLike, replacement: Replacement, path: Union[str, Path]) -> None:
    """Like sed, but operates in place on a file (analogous to ``sed -i``)."""
    _inplace_with(sed, pattern, replacement, path)


def inplace_prefix(pattern: PatternLike, replacement: Replacement, path: Union[str, Path]) -> None:
    _inplace_with(sed_prefix, pattern, replacement, path)


def inplace_suffix(pattern: PatternLike, replacement: Replacement, path: Union[str, Path]) -> None:
    _inplace_with(sed_suffix, pattern, replacement, path)


def inplace_entire(pattern: PatternLike, replacement: Replacement, path: Union[str, Path]) -> None:
    _inplace_with(sed_entire, pattern, replacement, path)


def cut(pattern: PatternLike, text: str) -> List[str]:
    """Split a line into chunks delimited by ``pattern``."""
    return compile_pattern(pattern).split(text)
