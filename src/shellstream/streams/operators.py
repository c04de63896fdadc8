"""
Stream operators for transformation.

An operator wraps the consumer a stream is run against. Operators are applied
freshly on every run, so any counters they keep start over each time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from shellstream.streams.fold import Fold

T = TypeVar('T')
U = TypeVar('U')


class StreamAbandoned(BaseException):
    """
    Unwinds the production loop of a stream that no longer needs elements.

    ``owner`` identifies who is responsible for catching the signal and
    ``state`` is the consumer state at the point of abandonment. Derives from
    BaseException so producers catching Exception let it through.
    """

    def __init__(self, owner: Any, state: Any = None):
        super().__init__(owner, state)
        self.owner = owner
        self.state = state


class StreamOperator(ABC):
    """Base class for stream operators."""

    @abstractmethod
    def apply(self, consumer: Fold) -> Fold:
        """Wrap a consumer so it sees the transformed elements."""
        pass


class MapOperator(StreamOperator):
    """Map each element to a new value."""

    def __init__(self, func: Callable[[T], U]):
        self.func = func

    def apply(self, consumer: Fold) -> Fold:
        return consumer.premap(self.func)


class FilterOperator(StreamOperator):
    """Filter elements by predicate."""

    def __init__(self, predicate: Callable[[T], bool]):
        self.predicate = predicate

    def apply(self, consumer: Fold) -> Fold:
        step, predicate = consumer.step, self.predicate

        def filter_step(x, item):
            if predicate(item):
                return step(x, item)
            return x

        return Fold(filter_step, consumer.begin, consumer.done)


class TakeOperator(StreamOperator):
    """
    Take first n elements.

    Once the n-th element was delivered the rest of the upstream production is
    abandoned.
    """

    def __init__(self, n: int):
        self.n = n

    def apply(self, consumer: Fold) -> Fold:
        step = consumer.step
        remaining = self.n

        def take_step(x, item):
            nonlocal remaining
            if remaining <= 0:
                raise StreamAbandoned(wrapped, x)
            remaining -= 1
            x = step(x, item)
            if remaining <= 0:
                raise StreamAbandoned(wrapped, x)
            return x

        wrapped = Fold(take_step, consumer.begin, consumer.done)
        return wrapped


class TakeWhileOperator(StreamOperator):
    """Take elements while predicate is true."""

    def __init__(self, predicate: Callable[[T], bool]):
        self.predicate = predicate

    def apply(self, consumer: Fold) -> Fold:
        step, predicate = consumer.step, self.predicate

        def take_while_step(x, item):
            if not predicate(item):
                raise StreamAbandoned(wrapped, x)
            return step(x, item)

        wrapped = Fold(take_while_step, consumer.begin, consumer.done)
        return wrapped


class SkipOperator(StreamOperator):
    """Skip first n elements."""

    def __init__(self, n: int):
        self.n = n

    def apply(self, consumer: Fold) -> Fold:
        step = consumer.step
        skipped = 0

        def skip_step(x, item):
            nonlocal skipped
            if skipped < self.n:
                skipped += 1
                return x
            return step(x, item)

        return Fold(skip_step, consumer.begin, consumer.done)


class DistinctOperator(StreamOperator):
    """Remove duplicate elements."""

    def __init__(self, key_func: Optional[Callable[[T], Any]] = None):
        self.key_func = key_func or (lambda x: x)

    def apply(self, consumer: Fold) -> Fold:
        step, key_func = consumer.step, self.key_func
        seen = set()

        def distinct_step(x, item):
            key = key_func(item)
            if key in seen:
                return x
            seen.add(key)
            return step(x, item)

        return Fold(distinct_step, consumer.begin, consumer.done)


class EnumerateOperator(StreamOperator):
    """Number each element, starting at 0."""

    def apply(self, consumer: Fold) -> Fold:
        step, begin, done = consumer.step, consumer.begin, consumer.done

        def number_step(pair, item):
            x, n = pair
            return step(x, (n, item)), n + 1

        return Fold(number_step, lambda: (begin(), 0), lambda pair: done(pair[0]))


@dataclass(frozen=True)
class Header(Generic[T]):
    """The first element of a stream."""
    value: T


@dataclass(frozen=True)
class Row(Generic[T]):
    """Every later element, paired with the first one."""
    header: T
    value: T


_MISSING = object()


class HeaderOperator(StreamOperator):
    """Wrap the first element in Header and every other one in Row."""

    def apply(self, consumer: Fold) -> Fold:
        step, begin, done = consumer.step, consumer.begin, consumer.done

        def header_step(pair, item):
            x, first = pair
            if first is _MISSING:
                return step(x, Header(item)), item
            return step(x, Row(first, item)), first

        return Fold(header_step, lambda: (begin(), _MISSING), lambda pair: done(pair[0]))
