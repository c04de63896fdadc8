"""
Convenience wrappers for running programs and shell command lines.

``proc``-style functions run a program with arguments directly; ``shell``-style
functions hand a command line to the shell, which is more powerful but
vulnerable to code injection when the line is templated from untrusted input.
"""

import sys
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from shellstream.config import config
from shellstream.errors import ProcessFailed, ShellFailed
from shellstream.process.driver import (
    Command, stream, stream_with_err, system, system_strict, system_strict_with_err
)
from shellstream.streams.merge import OutputLine
from shellstream.streams.stream import Stream
from shellstream.tasks import BackgroundTask

T = TypeVar('T')


def proc(command: str, arguments: Sequence[str] = (),
         lines: Optional[Stream[str]] = None) -> int:
    """Run a program, feeding it ``lines``, and return its exit code."""
    return system(Command.proc(command, arguments), lines)


def shell(command_line: str, lines: Optional[Stream[str]] = None) -> int:
    """Run a command line through the shell and return its exit code."""
    return system(Command.shell(command_line), lines)


def procs(command: str, arguments: Sequence[str] = (),
          lines: Optional[Stream[str]] = None) -> None:
    """Like proc, but raises ProcessFailed for a non-zero exit code."""
    exit_code = proc(command, arguments, lines)
    if exit_code != 0:
        raise ProcessFailed(command, arguments, exit_code)


def shells(command_line: str, lines: Optional[Stream[str]] = None) -> None:
    """Like shell, but raises ShellFailed for a non-zero exit code."""
    exit_code = shell(command_line, lines)
    if exit_code != 0:
        raise ShellFailed(command_line, exit_code)


def proc_strict(command: str, arguments: Sequence[str] = (),
                lines: Optional[Stream[str]] = None) -> Tuple[int, str]:
    """Run a program, returning its exit code and whole stdout."""
    return system_strict(Command.proc(command, arguments), lines)


def shell_strict(command_line: str,
                 lines: Optional[Stream[str]] = None) -> Tuple[int, str]:
    """Run a command line, returning its exit code and whole stdout."""
    return system_strict(Command.shell(command_line), lines)


def proc_strict_with_err(command: str, arguments: Sequence[str] = (),
                         lines: Optional[Stream[str]] = None) -> Tuple[int, str, str]:
    """Run a program, returning its exit code, stdout and stderr."""
    return system_strict_with_err(Command.proc(command, arguments), lines)


def shell_strict_with_err(command_line: str,
                          lines: Optional[Stream[str]] = None) -> Tuple[int, str, str]:
    """Run a command line, returning its exit code, stdout and stderr."""
    return system_strict_with_err(Command.shell(command_line), lines)


def inproc(command: str, arguments: Sequence[str] = (),
           lines: Optional[Stream[str]] = None) -> Stream[str]:
    """Run a program, streaming its stdout as lines."""
    return stream(Command.proc(command, arguments), lines)


def inshell(command_line: str, lines: Optional[Stream[str]] = None) -> Stream[str]:
    """Run a command line through the shell, streaming its stdout as lines."""
    return stream(Command.shell(command_line), lines)


def inproc_with_err(command: str, arguments: Sequence[str] = (),
                    lines: Optional[Stream[str]] = None) -> Stream[OutputLine]:
    """Run a program, streaming stdout and stderr as tagged lines."""
    return stream_with_err(Command.proc(command, arguments), lines)


def inshell_with_err(command_line: str,
                     lines: Optional[Stream[str]] = None) -> Stream[OutputLine]:
    """Run a command line, streaming stdout and stderr as tagged lines."""
    return stream_with_err(Command.shell(command_line), lines)


def ssh_inshell(server: str, command_line: str,
                lines: Optional[Stream[str]] = None) -> Stream[str]:
    """Run a command line on ``server`` over ssh, streaming its stdout."""
    return inshell(f'{config.ssh_executable} {server} "{command_line}"', lines)


def echo(line: str) -> None:
    """Print exactly one line to stdout."""
    print(line)


def err(line: str) -> None:
    """Print exactly one line to stderr."""
    print(line, file=sys.stderr)


def parallel(actions: Sequence[Callable[[], T]]) -> Stream[T]:
    """
    Run actions concurrently, producing their results in list order.

    Every action runs on its own task. The first failure is re-raised when its
    result is reached; all tasks are awaited before the run returns.
    """
    def run(consumer):
        tasks: List[BackgroundTask] = [
            BackgroundTask(lambda task, action=action: action(), name=f"parallel-{i}").start()
            for i, action in enumerate(actions)
        ]
        try:
            x = consumer.begin()
            for task in tasks:
                x = consumer.step(x, task.result())
        finally:
            for task in tasks:
                task.cancel()
            for task in tasks:
                task.join()
        return consumer.done(x)

    return Stream(run)
