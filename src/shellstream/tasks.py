"""
Cancellable background tasks joined from a central driver.
"""

import logging
import threading
from typing import Any, Callable, List, Optional

from shellstream.config import config
from shellstream.streams.operators import StreamAbandoned

logger = logging.getLogger(__name__)

_local = threading.local()


def current_task() -> Optional['BackgroundTask']:
    """The task whose thread is running the caller, if any."""
    return getattr(_local, 'task', None)


class BackgroundTask:
    """
    Run ``target(task)`` on a daemon thread.

    Cancellation is cooperative: ``cancel`` sets a flag that the target
    observes through ``check``, and runs the callbacks registered with
    ``on_cancel`` so work blocked outside the target (a child process the
    target is reading from) can be interrupted. Exceptions raised by the
    target are captured and re-raised by ``result``.
    """

    def __init__(self, target: Callable[['BackgroundTask'], Any],
                 name: Optional[str] = None):
        self._target = target
        self.name = name or getattr(target, '__name__', 'task')
        self._cancel_event = threading.Event()
        self._done_event = threading.Event()
        self._callbacks_lock = threading.Lock()
        self._callbacks: List[Callable[[], Any]] = []
        self._result: Any = None
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._started = False

    def start(self) -> 'BackgroundTask':
        """Start the thread. Returns self for chaining."""
        self._started = True
        self._thread.start()
        return self

    def _run(self) -> None:
        _local.task = self
        try:
            self._result = self._target(self)
        except StreamAbandoned as abandoned:
            if abandoned.owner is not self:
                self._error = abandoned
        except BaseException as e:
            self._error = e
            if not self.cancelled:
                logger.debug("Task %s failed: %r", self.name, e)
        finally:
            _local.task = None
            self._done_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        """
        Run ``callback`` when the task is cancelled.

        A callback registered after cancellation runs immediately.
        """
        with self._callbacks_lock:
            if not self._cancel_event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_cancel_callback(self, callback: Callable[[], Any]) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def cancel(self) -> None:
        """Request the task to stop. Safe to call on a finished task."""
        with self._callbacks_lock:
            if self._cancel_event.is_set():
                return
            self._cancel_event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def check(self) -> None:
        """Unwind the task if cancellation was requested."""
        if self._cancel_event.is_set():
            raise StreamAbandoned(self)

    def done(self) -> bool:
        return self._done_event.is_set()

    def is_alive(self) -> bool:
        return self._started and not self.done()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the task. Returns True once it has finished."""
        if self._started:
            self._thread.join(timeout)
        return self.done() or not self._started

    def exception(self) -> Optional[BaseException]:
        return self._error

    def result(self) -> Any:
        """Wait for the task and return its result, re-raising its error."""
        self.join()
        if self._error is not None:
            raise self._error
        return self._result

    def halt(self, grace: Optional[float] = None) -> None:
        """
        Stop the task, re-raising any exception it might have thrown.

        The task gets ``grace`` seconds to finish on its own. A task that
        finished with an error re-raises it; a task that is still running is
        cancelled and awaited, and its outcome discarded.
        """
        if self.join(config.cancel_grace if grace is None else grace):
            self.result()
            return
        self.cancel()
        self.join()
