"""Lazy, push-style streams."""

from shellstream.streams.fold import (
    Fold,
    count_lines,
    count_chars,
    count_words,
)
from shellstream.streams.operators import (
    StreamAbandoned,
    StreamOperator,
    MapOperator,
    FilterOperator,
    TakeOperator,
    TakeWhileOperator,
    SkipOperator,
    DistinctOperator,
    EnumerateOperator,
    HeaderOperator,
    Header,
    Row,
)
from shellstream.streams.stream import (
    Stream,
    FileStream,
    cat,
    drain_handle,
)
from shellstream.streams.text import (
    match,
    grep,
    sed,
    sed_prefix,
    sed_suffix,
    sed_entire,
    inplace,
    inplace_prefix,
    inplace_suffix,
    inplace_entire,
    cut,
)
from shellstream.streams.sources import (
    DirectoryStream,
    ls,
    lstree,
    lsif,
    find,
    input_file,
    inhandle,
    stdin,
)
from shellstream.streams.merge import (
    Channel,
    OutputLine,
    ChannelMerger,
    MergeCell,
    MergeStatus,
    paste,
)

__all__ = [
    "Fold",
    "count_lines",
    "count_chars",
    "count_words",
    "StreamAbandoned",
    "StreamOperator",
    "MapOperator",
    "FilterOperator",
    "TakeOperator",
    "TakeWhileOperator",
    "SkipOperator",
    "DistinctOperator",
    "EnumerateOperator",
    "HeaderOperator",
    "Header",
    "Row",
    "Stream",
    "FileStream",
    "cat",
    "drain_handle",
    "match",
    "grep",
    "sed",
    "sed_prefix",
    "sed_suffix",
    "sed_entire",
    "inplace",
    "inplace_prefix",
    "inplace_suffix",
    "inplace_entire",
    "cut",
    "DirectoryStream",
    "ls",
    "lstree",
    "lsif",
    "find",
    "input_file",
    "inhandle",
    "stdin",
    "Channel",
    "OutputLine",
    "ChannelMerger",
    "MergeCell",
    "MergeStatus",
    "paste",
]
