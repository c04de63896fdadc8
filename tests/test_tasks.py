#!/usr/bin/env python3
"""
Tests for background tasks and exactly-once handle release.
"""

import threading
import time
import unittest

from shellstream.process import HandleGuard
from shellstream.streams import StreamAbandoned
from shellstream.tasks import BackgroundTask, current_task


class CountingHandle:
    """A handle that counts how often it was closed."""

    def __init__(self, error=None):
        self.closes = 0
        self.error = error
        self._lock = threading.Lock()

    def close(self):
        time.sleep(0.01)
        with self._lock:
            self.closes += 1
        if self.error is not None:
            raise self.error


class TestHandleGuard(unittest.TestCase):
    """Test closing a shared handle from several paths."""

    def test_close_once(self):
        """Test the handle is closed by the first call only."""
        handle = CountingHandle()
        guard = HandleGuard(handle, name="test")

        self.assertFalse(guard.already_closed())
        self.assertTrue(guard.close_once())
        self.assertFalse(guard.close_once())
        self.assertTrue(guard.already_closed())
        self.assertEqual(handle.closes, 1)

    def test_concurrent_close(self):
        """Test racing closers close the handle exactly once."""
        handle = CountingHandle()
        guard = HandleGuard(handle)
        results = []
        barrier = threading.Barrier(8)

        def closer():
            barrier.wait()
            results.append(guard.close_once())

        threads = [threading.Thread(target=closer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(handle.closes, 1)
        self.assertEqual(results.count(True), 1)
        self.assertEqual(len(results), 8)

    def test_broken_pipe_on_close(self):
        """Test a broken pipe while flushing on close is not an error."""
        guard = HandleGuard(CountingHandle(BrokenPipeError()))
        self.assertTrue(guard.close_once())
        self.assertTrue(guard.already_closed())

    def test_other_errors_propagate(self):
        """Test other close errors are raised."""
        guard = HandleGuard(CountingHandle(OSError("disk full")))
        with self.assertRaises(OSError):
            guard.close_once()
        self.assertFalse(guard.close_once())


class TestBackgroundTask(unittest.TestCase):
    """Test cancellable tasks."""

    def test_result(self):
        """Test the value returned by the target."""
        task = BackgroundTask(lambda t: 42, name="answer").start()
        self.assertEqual(task.result(), 42)
        self.assertTrue(task.done())
        self.assertFalse(task.is_alive())

    def test_error_is_reraised(self):
        """Test the target's exception is raised by result."""
        def fail(task):
            raise ValueError("failed")

        task = BackgroundTask(fail).start()
        with self.assertRaises(ValueError):
            task.result()
        self.assertIsInstance(task.exception(), ValueError)

    def test_cancel(self):
        """Test a cooperative target stops when cancelled."""
        started = threading.Event()

        def spin(task):
            started.set()
            while True:
                task.check()
                time.sleep(0.001)

        task = BackgroundTask(spin).start()
        started.wait(5)
        task.cancel()

        self.assertTrue(task.join(5))
        self.assertTrue(task.cancelled)
        self.assertIsNone(task.exception())
        self.assertIsNone(task.result())

    def test_foreign_abandon_is_an_error(self):
        """Test an abandonment owned by someone else is kept as the outcome."""
        owner = object()

        def abandon(task):
            raise StreamAbandoned(owner)

        task = BackgroundTask(abandon).start()
        task.join()
        self.assertIsInstance(task.exception(), StreamAbandoned)

    def test_halt_finished_task_reraises(self):
        """Test halting a task that already failed."""
        def fail(task):
            raise RuntimeError("failed")

        task = BackgroundTask(fail).start()
        task.join()
        with self.assertRaises(RuntimeError):
            task.halt()

    def test_halt_running_task(self):
        """Test halting a task that is still running cancels it."""
        def spin(task):
            while True:
                task.check()
                time.sleep(0.001)

        task = BackgroundTask(spin).start()
        task.halt(grace=0.01)
        self.assertTrue(task.done())
        self.assertTrue(task.cancelled)

    def test_cancel_callbacks(self):
        """Test cancel runs registered callbacks once and skips removed ones."""
        calls = []
        task = BackgroundTask(lambda t: None)
        task.on_cancel(lambda: calls.append("kept"))
        removed = lambda: calls.append("removed")
        task.on_cancel(removed)
        task.remove_cancel_callback(removed)

        task.cancel()
        task.cancel()
        self.assertEqual(calls, ["kept"])

        task.on_cancel(lambda: calls.append("late"))
        self.assertEqual(calls, ["kept", "late"])

    def test_cancel_unblocks_waiting_target(self):
        """Test a callback can wake a target blocked outside of check."""
        wake = threading.Event()

        def wait(task):
            task.on_cancel(wake.set)
            wake.wait()
            task.check()

        task = BackgroundTask(wait).start()
        time.sleep(0.05)
        task.cancel()
        self.assertTrue(task.join(5))
        self.assertIsNone(task.exception())

    def test_current_task(self):
        """Test the running task is visible from its own thread only."""
        self.assertIsNone(current_task())
        task = BackgroundTask(lambda t: current_task()).start()
        self.assertIs(task.result(), task)
        self.assertIsNone(current_task())

    def test_unstarted_task(self):
        """Test joining and cancelling a task that never started."""
        task = BackgroundTask(lambda t: None)
        task.cancel()
        self.assertTrue(task.join())
        self.assertFalse(task.is_alive())


if __name__ == '__main__':
    unittest.main()
