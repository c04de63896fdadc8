"""
Lazy, re-runnable, push-style streams.

A stream is a description of how to drive a consumer. Nothing happens when a
stream is built; every call to ``fold`` runs all underlying effects again.
"""

import functools
import sys
from pathlib import Path
from typing import (
    Any, Callable, ContextManager, Generic, IO, Iterable, List, Optional,
    TypeVar, Union
)

from shellstream.config import config
from shellstream.errors import SingleValueError
from shellstream.streams.fold import Fold
from shellstream.streams.operators import (
    StreamAbandoned, StreamOperator, MapOperator, FilterOperator,
    TakeOperator, TakeWhileOperator, SkipOperator, DistinctOperator,
    EnumerateOperator, HeaderOperator
)

T = TypeVar('T')
U = TypeVar('U')
R = TypeVar('R')

Source = Callable[[Fold], Any]


def _identity(x):
    return x


def chomp(line: str) -> str:
    if line.endswith('\n'):
        return line[:-1]
    return line


def drain_handle(handle: IO[str], consumer: Fold) -> Any:
    """Feed every line of an open text handle into ``consumer``."""
    x = consumer.begin()
    while True:
        line = handle.readline()
        if not line:
            break
        x = consumer.step(x, chomp(line))
    return consumer.done(x)


class Stream(Generic[T]):
    """
    A lazy stream of effectful values.
    """

    def __init__(self, source: Union[Source, Iterable[T]]):
        """
        Initialize stream.

        Args:
            source: Production loop (callable taking a Fold) or an iterable
        """
        if callable(source):
            self._source = source
        elif hasattr(source, '__iter__'):
            self._source = functools.partial(_fold_iterable, source)
        else:
            raise TypeError("Source must be iterable or callable")

        self._operators: List[StreamOperator] = []

    def fold(self, consumer: Fold[T, Any, R]) -> R:
        """
        Run the stream against ``consumer``.

        Operators are applied around the consumer; an abandonment raised by one
        of them ends production and still finishes the consumer exactly once.
        """
        wrapped = consumer
        owned = []
        for op in reversed(self._operators):
            wrapped = op.apply(wrapped)
            owned.append(wrapped)

        try:
            return self._source(wrapped)
        except StreamAbandoned as abandoned:
            if not any(abandoned.owner is fold for fold in owned):
                raise
            return abandoned.owner.done(abandoned.state)

    def _with_operator(self, op: StreamOperator) -> 'Stream':
        new_stream = Stream(self._source)
        new_stream._operators = self._operators.copy()
        new_stream._operators.append(op)
        return new_stream

    # Structural operations

    def bind(self, func: Callable[[T], 'Stream[U]']) -> 'Stream[U]':
        """
        Run ``func(element)`` to completion for each element, in order.

        Sub-streams are flattened depth-first into the same consumer.
        """
        def bound(consumer):
            def step(x, item):
                return func(item).fold(consumer.continuing(x))

            x = self.fold(Fold(step, consumer.begin, _identity))
            return consumer.done(x)

        return Stream(bound)

    def flat_map(self, func: Callable[[T], Union['Stream[U]', Iterable[U]]]) -> 'Stream[U]':
        """Map each element to a stream or an iterable and flatten."""
        def expand(item):
            result = func(item)
            if isinstance(result, Stream):
                return result
            return Stream.select(result)
        return self.bind(expand)

    def alternative(self, other: 'Stream[T]') -> 'Stream[T]':
        """Run this stream to completion, then ``other``."""
        def both(consumer):
            x = self.fold(Fold(consumer.step, consumer.begin, _identity))
            x = other.fold(consumer.continuing(x))
            return consumer.done(x)

        return Stream(both)

    def __or__(self, other: 'Stream[T]') -> 'Stream[T]':
        return self.alternative(other)

    # Transformation operators

    def map(self, func: Callable[[T], U]) -> 'Stream[U]':
        """Apply function to each element."""
        return self._with_operator(MapOperator(func))

    def filter(self, predicate: Callable[[T], bool]) -> 'Stream[T]':
        """Keep only elements matching predicate."""
        return self._with_operator(FilterOperator(predicate))

    def limit(self, n: int) -> 'Stream[T]':
        """Keep the first n elements and abandon the rest of the production."""
        return self._with_operator(TakeOperator(n))

    take = limit

    def limit_while(self, predicate: Callable[[T], bool]) -> 'Stream[T]':
        """Stop at the first element that does not satisfy predicate."""
        return self._with_operator(TakeWhileOperator(predicate))

    def skip(self, n: int) -> 'Stream[T]':
        """Skip first n elements."""
        return self._with_operator(SkipOperator(n))

    def distinct(self, key_func: Optional[Callable[[T], Any]] = None) -> 'Stream[T]':
        """Remove duplicate elements."""
        return self._with_operator(DistinctOperator(key_func))

    def nl(self) -> 'Stream[tuple]':
        """Number each element (starting at 0)."""
        return self._with_operator(EnumerateOperator())

    def header(self) -> 'Stream':
        """Wrap the first element in Header and the others in Row."""
        return self._with_operator(HeaderOperator())

    def paste(self, other: 'Stream[U]') -> 'Stream[tuple]':
        """Pair elements with ``other`` element-wise, truncating the longer."""
        from shellstream.streams.merge import paste
        return paste(self, other)

    def cache(self, path: Union[str, Path], encode: Optional[Callable[[T], Any]] = None,
              decode: Optional[Callable[[Any], T]] = None) -> 'Stream[T]':
        """Reuse the output of a previous successful run stored at ``path``."""
        from shellstream.cache import memoize
        return memoize(path, self, encode, decode)

    # Terminal operators

    def collect(self) -> List[T]:
        """Collect all elements into a list."""
        return self.fold(Fold.list())

    def reduce(self, func: Callable[[U, T], U], initial: U) -> U:
        """Reduce stream to single value."""
        return self.fold(Fold.from_reducer(func, initial))

    def count(self) -> int:
        """Count elements."""
        return self.fold(Fold(lambda n, _: n + 1, lambda: 0))

    def first(self) -> Optional[T]:
        """Get first element, abandoning the rest of the stream."""
        items = self.limit(1).collect()
        return items[0] if items else None

    def only(self) -> T:
        """Get the single element of a stream that must produce exactly one."""
        items = self.collect()
        if len(items) != 1:
            raise SingleValueError(len(items))
        return items[0]

    def foreach(self, func: Callable[[T], Any]) -> None:
        """Apply function to each element."""
        self.fold(Fold.effect(func))

    def sh(self) -> None:
        """Run the stream for its effects only."""
        self.fold(Fold(lambda x, _: x, lambda: None))

    def view(self) -> None:
        """Print each element."""
        self.foreach(print)

    def strict(self) -> str:
        """Read all lines into one newline-terminated text."""
        return ''.join(line + '\n' for line in self.collect())

    def to_handle(self, handle: IO[str]) -> None:
        """Write each line to an open handle."""
        def write(line):
            handle.write(line + '\n')
        self.foreach(write)

    def to_file(self, path: Union[str, Path], mode: str = 'w') -> None:
        """Write stream to file."""
        path = Path(path)

        with open(path, mode, encoding=config.encoding) as f:
            self.to_handle(f)

    def append_to(self, path: Union[str, Path]) -> None:
        """Append lines to a file."""
        self.to_file(path, mode='a')

    def to_stdout(self) -> None:
        """Stream lines to standard output."""
        self.to_handle(sys.stdout)

    def to_stderr(self) -> None:
        """Stream lines to standard error."""
        self.to_handle(sys.stderr)

    # Factory methods

    @classmethod
    def from_function(cls, source: Source) -> 'Stream':
        """Create stream from a production loop that drives a Fold."""
        return cls(source)

    @classmethod
    def single(cls, value: T) -> 'Stream[T]':
        """Create stream of exactly one element."""
        def one(consumer):
            return consumer.done(consumer.step(consumer.begin(), value))
        return cls(one)

    @classmethod
    def empty(cls) -> 'Stream':
        """Create stream of no elements."""
        return cls(lambda consumer: consumer.done(consumer.begin()))

    @classmethod
    def guard(cls, condition: bool) -> 'Stream[None]':
        """One element if condition holds, none otherwise."""
        return cls.single(None) if condition else cls.empty()

    @classmethod
    def select(cls, iterable: Iterable[T]) -> 'Stream[T]':
        """Create stream from iterable."""
        return cls(functools.partial(_fold_iterable, iterable))

    from_iterable = select

    @classmethod
    def lift(cls, action: Callable[[], T]) -> 'Stream[T]':
        """Run ``action`` once per run and produce its result."""
        def run(consumer):
            x = consumer.begin()
            return consumer.done(consumer.step(x, action()))
        return cls(run)

    @classmethod
    def using(cls, factory: Callable[[], ContextManager[T]]) -> 'Stream[T]':
        """
        Produce a managed resource.

        The resource stays open while the rest of a bind runs and is released
        before ``done`` is called.
        """
        def managed(consumer):
            x = consumer.begin()
            with factory() as resource:
                x = consumer.step(x, resource)
            return consumer.done(x)
        return cls(managed)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'Stream[str]':
        """Create stream from file."""
        return FileStream(path)

    @classmethod
    def from_handle(cls, handle: IO[str]) -> 'Stream[str]':
        """Create stream of the lines of an open handle."""
        return cls(functools.partial(drain_handle, handle))

    @classmethod
    def range(cls, *args) -> 'Stream[int]':
        """Create stream of integers."""
        return cls.select(range(*args))

    @classmethod
    def infinite(cls, func: Callable[[], T]) -> 'Stream[T]':
        """Create infinite stream."""
        def forever(consumer):
            x = consumer.begin()
            while True:
                x = consumer.step(x, func())
        return cls(forever)

    @classmethod
    def endless(cls) -> 'Stream[None]':
        """Endlessly produce None."""
        return cls.infinite(lambda: None)

    @classmethod
    def yes(cls) -> 'Stream[str]':
        """Endlessly produce "y"."""
        return cls.infinite(lambda: "y")


def _fold_iterable(iterable: Iterable[T], consumer: Fold) -> Any:
    x = consumer.begin()
    for item in iterable:
        x = consumer.step(x, item)
    return consumer.done(x)


class FileStream(Stream[str]):
    """Stream lines from a file."""

    def __init__(self, path: Union[str, Path], encoding: Optional[str] = None):
        self.path = Path(path)
        self.encoding = encoding or config.encoding

        def file_source(consumer):
            with open(self.path, 'r', encoding=self.encoding,
                      errors=config.errors) as f:
                return drain_handle(f, consumer)

        super().__init__(file_source)


def cat(streams: Iterable[Stream[T]]) -> Stream[T]:
    """Combine the output of multiple streams, in order."""
    result: Stream[T] = Stream.empty()
    for s in streams:
        result = result.alternative(s)
    return result
