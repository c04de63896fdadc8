"""Child processes as producers and consumers of streams."""

from shellstream.process.guard import HandleGuard
from shellstream.process.driver import (
    Command,
    ProcessHandles,
    spawn,
    stream,
    stream_with_err,
    system,
    system_strict,
    system_strict_with_err,
)
from shellstream.process.commands import (
    proc,
    shell,
    procs,
    shells,
    proc_strict,
    shell_strict,
    proc_strict_with_err,
    shell_strict_with_err,
    inproc,
    inshell,
    inproc_with_err,
    inshell_with_err,
    ssh_inshell,
    echo,
    err,
    parallel,
)

__all__ = [
    "HandleGuard",
    "Command",
    "ProcessHandles",
    "spawn",
    "stream",
    "stream_with_err",
    "system",
    "system_strict",
    "system_strict_with_err",
    "proc",
    "shell",
    "procs",
    "shells",
    "proc_strict",
    "shell_strict",
    "proc_strict_with_err",
    "shell_strict_with_err",
    "inproc",
    "inshell",
    "inproc_with_err",
    "inshell_with_err",
    "ssh_inshell",
    "echo",
    "err",
    "parallel",
]
