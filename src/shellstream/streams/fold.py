"""
Driven folds: the consumers that streams are run against.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, TypeVar

T = TypeVar('T')
S = TypeVar('S')
R = TypeVar('R')


def _identity(x):
    return x


@dataclass(frozen=True)
class Fold(Generic[T, S, R]):
    """
    A consumer with three operations.

    A stream calls ``begin`` once, ``step`` once per element in order and
    ``done`` exactly once, even when no element was produced. The state is
    owned by the production loop for the duration of the run.
    """

    step: Callable[[S, T], S]
    begin: Callable[[], S]
    done: Callable[[S], R] = _identity

    def premap(self, func: Callable[[Any], T]) -> 'Fold[Any, S, R]':
        """Transform each element before it reaches ``step``."""
        step = self.step
        return Fold(lambda x, a: step(x, func(a)), self.begin, self.done)

    def postmap(self, func: Callable[[R], Any]) -> 'Fold[T, S, Any]':
        """Transform the final result."""
        done = self.done
        return Fold(self.step, self.begin, lambda x: func(done(x)))

    def continuing(self, state: S) -> 'Fold[T, S, S]':
        """
        Fold that resumes from ``state`` and hands back the raw state.

        Used to splice a sub-stream into a running production loop.
        """
        return Fold(self.step, lambda: state, _identity)

    @classmethod
    def list(cls) -> 'Fold[T, List[T], List[T]]':
        """Collect elements into a list."""
        def step(acc, item):
            acc.append(item)
            return acc
        return cls(step, list, _identity)

    @classmethod
    def from_reducer(cls, func: Callable[[S, T], S], initial: S) -> 'Fold[T, S, S]':
        """Fold built from a reducing function and a starting value."""
        return cls(func, lambda: initial, _identity)

    @classmethod
    def effect(cls, func: Callable[[T], Any]) -> 'Fold[T, None, None]':
        """Run ``func`` for every element, discard results."""
        def step(_, item):
            func(item)
            return None
        return cls(step, lambda: None, _identity)


def count_lines() -> Fold:
    """Count the elements of a stream of lines (like ``wc -l``)."""
    return Fold(lambda n, _: n + 1, lambda: 0)


def count_chars() -> Fold:
    """
    Count characters (like ``wc -c``).

    Each line is implicitly ended by a newline one character wide.
    """
    return Fold(lambda n, line: n + len(line) + 1, lambda: 0)


def count_words() -> Fold:
    """Count whitespace separated words (like ``wc -w``)."""
    return Fold(lambda n, line: n + len(line.split()), lambda: 0)
