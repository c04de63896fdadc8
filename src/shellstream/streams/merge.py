"""
Deterministic merging of independently produced streams.

Two patterns live here: forwarding several pipes into one bounded channel
(tagged by origin, in arrival order), and ``paste``, which pairs two streams
element-wise through a four-state handshake cell.
"""

import queue
import threading
from enum import Enum
from typing import IO, Any, Callable, List, NamedTuple, Optional, Sequence, Tuple

from shellstream.config import config
from shellstream.streams.fold import Fold
from shellstream.streams.operators import StreamAbandoned
from shellstream.streams.stream import Stream, chomp
from shellstream.tasks import BackgroundTask


class Channel(Enum):
    """Origin of an output line."""
    STDOUT = "stdout"
    STDERR = "stderr"


class OutputLine(NamedTuple):
    """A line of process output tagged with the pipe it came from."""
    channel: Channel
    line: str

    @property
    def is_stdout(self) -> bool:
        return self.channel is Channel.STDOUT

    @property
    def is_stderr(self) -> bool:
        return self.channel is Channel.STDERR


class ChannelMerger:
    """
    Forward lines of several pipes into one bounded channel.

    Each forwarder pushes one ``None`` sentinel when its pipe is exhausted;
    ``drain`` stops after it has seen one sentinel per forwarder.
    """

    def __init__(self, sources: Sequence[Tuple[Channel, IO[str]]],
                 maxsize: Optional[int] = None,
                 poll_interval: Optional[float] = None):
        self._channel: queue.Queue = queue.Queue(maxsize or config.merge_queue_size)
        self._poll_interval = poll_interval or config.queue_poll_interval
        self.tasks: List[BackgroundTask] = [
            BackgroundTask(self._forwarder(channel, pipe), name=f"forward-{channel.value}")
            for channel, pipe in sources
        ]

    def _put(self, task: BackgroundTask, item: Any) -> None:
        while True:
            try:
                self._channel.put(item, timeout=self._poll_interval)
                return
            except queue.Full:
                task.check()

    def _forwarder(self, channel: Channel, pipe: IO[str]):
        def forward(task: BackgroundTask) -> None:
            try:
                while True:
                    task.check()
                    line = pipe.readline()
                    if not line:
                        break
                    self._put(task, OutputLine(channel, chomp(line)))
            finally:
                if not task.cancelled:
                    self._put(task, None)
        return forward

    def start(self) -> 'ChannelMerger':
        for task in self.tasks:
            task.start()
        return self

    def drain(self, step: Callable[[Any, OutputLine], Any], x: Any) -> Any:
        """Step ``x`` through every forwarded line, in arrival order."""
        sentinels = 0
        while sentinels < len(self.tasks):
            item = self._channel.get()
            if item is None:
                sentinels += 1
                continue
            x = step(x, item)
        return x

    def cancel(self) -> None:
        for task in self.tasks:
            task.cancel()

    def join(self) -> None:
        for task in self.tasks:
            task.join()

    def wait_all(self) -> None:
        """Join every forwarder, re-raising the first failure."""
        for task in self.tasks:
            task.result()


class MergeStatus(Enum):
    """Handshake states of a paste."""
    EMPTY = 0
    HAS_LEFT = 1
    HAS_PAIR = 2
    DONE = 3


class MergeState(NamedTuple):
    status: MergeStatus
    left: Any = None
    right: Any = None


EMPTY = MergeState(MergeStatus.EMPTY)
DONE = MergeState(MergeStatus.DONE)


class Retry(Exception):
    """Raised by a transaction that must wait for another state."""


Transaction = Callable[[MergeState], Tuple[MergeState, Any]]


class MergeCell:
    """
    Shared handshake state mutated only through atomic transactions.

    A transaction maps the current state to ``(new_state, result)`` or raises
    Retry; the caller then blocks until the state changes and runs it again.
    """

    def __init__(self):
        self._condition = threading.Condition()
        self._state = EMPTY

    @property
    def state(self) -> MergeState:
        with self._condition:
            return self._state

    def atomically(self, transaction: Transaction) -> Any:
        with self._condition:
            while True:
                try:
                    new_state, result = transaction(self._state)
                except Retry:
                    self._condition.wait()
                    continue
                if new_state is not self._state:
                    self._state = new_state
                    self._condition.notify_all()
                return result


def put_left(item: Any) -> Transaction:
    def transaction(state: MergeState):
        if state.status is MergeStatus.EMPTY:
            return MergeState(MergeStatus.HAS_LEFT, item), True
        if state.status is MergeStatus.DONE:
            return state, False
        raise Retry
    return transaction


def finish_left(state: MergeState):
    if state.status is MergeStatus.EMPTY:
        return DONE, None
    if state.status is MergeStatus.DONE:
        return state, None
    raise Retry


def put_right(item: Any) -> Transaction:
    def transaction(state: MergeState):
        if state.status is MergeStatus.HAS_LEFT:
            return MergeState(MergeStatus.HAS_PAIR, state.left, item), True
        if state.status is MergeStatus.DONE:
            return state, False
        raise Retry
    return transaction


def finish_right(state: MergeState):
    if state.status is MergeStatus.HAS_LEFT:
        return DONE, None
    if state.status is MergeStatus.DONE:
        return state, None
    raise Retry


def take_pair(state: MergeState):
    if state.status is MergeStatus.HAS_PAIR:
        return EMPTY, (state.left, state.right)
    if state.status is MergeStatus.DONE:
        return state, None
    raise Retry


def force_done(state: MergeState):
    return DONE, None


def _producer(cell: MergeCell, stream: Stream, put: Callable[[Any], Transaction],
              finish: Transaction):
    def produce(task: BackgroundTask) -> None:
        def step(_, item):
            task.check()
            if not cell.atomically(put(item)):
                # The other side is exhausted or the consumer is gone
                raise StreamAbandoned(task)

        try:
            stream.fold(Fold(step, lambda: None))
        except BaseException:
            cell.atomically(force_done)
            raise
        cell.atomically(finish)
    return produce


def paste(left: Stream, right: Stream) -> Stream[tuple]:
    """
    Merge two streams element-wise.

    If one stream is longer than the other, the excess elements are
    truncated. Both producers run on their own task and are joined before the
    result reports exhaustion.
    """
    def pasted(consumer):
        x = consumer.begin()
        cell = MergeCell()
        tasks = [
            BackgroundTask(_producer(cell, left, put_left, finish_left), name="paste-left"),
            BackgroundTask(_producer(cell, right, put_right, finish_right), name="paste-right"),
        ]
        for task in tasks:
            task.start()

        try:
            while True:
                pair = cell.atomically(take_pair)
                if pair is None:
                    break
                x = consumer.step(x, pair)
        except BaseException:
            for task in tasks:
                task.cancel()
            cell.atomically(force_done)
            for task in tasks:
                task.join()
            raise

        for task in tasks:
            task.result()
        return consumer.done(x)

    return Stream(pasted)
