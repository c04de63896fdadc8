"""
shellstream: lazy, effectful streams with first-class subprocess pipes.

Streams are re-runnable descriptions of effectful sequences (file reads,
directory walks, process output, in-memory values) composed by sequencing,
filtering, concatenation and early termination. Child processes can be fed a
stream on stdin while their output is consumed as a stream.
"""

from shellstream.config import ShellStreamConfig
from shellstream.errors import (
    ShellStreamError,
    SpawnFailed,
    ProcessFailed,
    ShellFailed,
    CacheCorrupted,
    UnencodableValue,
    PatternMatchesEmpty,
    SingleValueError,
)
from shellstream.streams import (
    Fold,
    Stream,
    OutputLine,
    Channel,
    cat,
    paste,
    grep,
    sed,
    ls,
    lstree,
    find,
    input_file,
)
from shellstream.process import (
    Command,
    proc,
    shell,
    procs,
    shells,
    inproc,
    inshell,
    inproc_with_err,
    inshell_with_err,
    proc_strict,
    shell_strict,
    parallel,
)
from shellstream.cache import memoize, cached_stream
from shellstream.monitor import ResourceMonitor

__version__ = "0.1.0"
__license__ = "Apache-2.0"

__all__ = [
    "ShellStreamConfig",
    "ShellStreamError",
    "SpawnFailed",
    "ProcessFailed",
    "ShellFailed",
    "CacheCorrupted",
    "UnencodableValue",
    "PatternMatchesEmpty",
    "SingleValueError",
    "Fold",
    "Stream",
    "OutputLine",
    "Channel",
    "cat",
    "paste",
    "grep",
    "sed",
    "ls",
    "lstree",
    "find",
    "input_file",
    "Command",
    "proc",
    "shell",
    "procs",
    "shells",
    "inproc",
    "inshell",
    "inproc_with_err",
    "inshell_with_err",
    "proc_strict",
    "shell_strict",
    "parallel",
    "memoize",
    "cached_stream",
    "ResourceMonitor",
]
