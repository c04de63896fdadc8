"""
Exception types raised by streams and subprocess drivers.
"""

from typing import List, Optional, Sequence


class ShellStreamError(Exception):
    """Base class for all errors raised by shellstream."""


class SpawnFailed(ShellStreamError):
    """The child process could not be started."""

    def __init__(self, command: str, arguments: Sequence[str], reason: str):
        self.command = command
        self.arguments: List[str] = list(arguments)
        self.reason = reason
        super().__init__(f"could not spawn {command!r}: {reason}")


class ProcessFailed(ShellStreamError):
    """A command exited with a non-zero exit code."""

    def __init__(self, command: str, arguments: Sequence[str], exit_code: int,
                 message: Optional[str] = None):
        self.command = command
        self.arguments: List[str] = list(arguments)
        self.exit_code = exit_code
        super().__init__(message or (
            f"command {command!r} with arguments {self.arguments!r} "
            f"failed with exit code {exit_code}"
        ))


class ShellFailed(ProcessFailed):
    """A shell command line exited with a non-zero exit code."""

    def __init__(self, command_line: str, exit_code: int):
        self.command_line = command_line
        super().__init__(
            command_line, [], exit_code,
            message=f"shell command {command_line!r} failed with exit code {exit_code}"
        )


class CacheCorrupted(ShellStreamError):
    """A cache file holds a line that is not a valid record."""

    def __init__(self, path: str, line_number: int, line: Optional[str] = None):
        self.path = path
        self.line_number = line_number
        self.line = line
        super().__init__(f"cache: invalid data stored in {path} (line {line_number})")


class UnencodableValue(ShellStreamError, TypeError):
    """A stream element has a type the cache cannot record."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"cache: cannot record a value of type {type(value).__name__}; "
            f"pass encode/decode functions for it"
        )


class PatternMatchesEmpty(ShellStreamError, ValueError):
    """A substitution pattern matches the empty string."""


class SingleValueError(ShellStreamError):
    """A stream expected to produce exactly one element produced another count."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"expected 1 line of input but there were {count} lines of input"
        )
