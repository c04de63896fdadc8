#!/usr/bin/env python3
"""
Tests for merging concurrently produced streams.
"""

import io
import threading
import unittest

from shellstream import Stream, ResourceMonitor, paste
from shellstream.streams import Channel, ChannelMerger, MergeCell, MergeStatus, OutputLine
from shellstream.streams.merge import (
    put_left, put_right, finish_left, finish_right, take_pair, force_done
)


class TestPaste(unittest.TestCase):
    """Test element-wise zipping of two streams."""

    def setUp(self):
        self.monitor = ResourceMonitor()

    def test_truncates_longer_left(self):
        """Test the result is as long as the shorter stream."""
        pairs = paste(Stream.range(5), Stream.select("abc")).collect()
        self.assertEqual(pairs, [(0, "a"), (1, "b"), (2, "c")])

    def test_truncates_longer_right(self):
        """Test truncation with the right stream longer."""
        pairs = paste(Stream.select("abc"), Stream.range(5)).collect()
        self.assertEqual(pairs, [("a", 0), ("b", 1), ("c", 2)])

    def test_empty_sides(self):
        """Test pasting with an empty stream."""
        self.assertEqual(paste(Stream.empty(), Stream.range(3)).collect(), [])
        self.assertEqual(paste(Stream.range(3), Stream.empty()).collect(), [])
        self.assertEqual(paste(Stream.empty(), Stream.empty()).collect(), [])

    def test_infinite_side(self):
        """Test pasting against an endless stream terminates."""
        before = self.monitor.snapshot()
        pairs = Stream.select([1, 2]).paste(Stream.yes()).collect()
        self.assertEqual(pairs, [(1, "y"), (2, "y")])
        self.assertFalse(self.monitor.leaks(before))

    def test_both_infinite_with_limit(self):
        """Test abandoning a paste of two endless streams."""
        before = self.monitor.snapshot()
        pairs = paste(Stream.yes(), Stream.endless()).limit(3).collect()
        self.assertEqual(pairs, [("y", None)] * 3)
        self.assertFalse(self.monitor.leaks(before))

    def test_rerunnable(self):
        """Test a paste can be run more than once."""
        pasted = paste(Stream.range(2), Stream.range(2))
        self.assertEqual(pasted.collect(), pasted.collect())

    def test_producer_error(self):
        """Test an exception in one producer reaches the caller."""
        def failing(consumer):
            x = consumer.step(consumer.begin(), 1)
            raise RuntimeError("left failed")

        with self.assertRaises(RuntimeError):
            paste(Stream(failing), Stream.range(10)).collect()

    def test_consumer_error(self):
        """Test an exception in the consumer stops both producers."""
        def step(x, pair):
            raise KeyError(pair)

        before = self.monitor.snapshot()
        with self.assertRaises(KeyError):
            paste(Stream.yes(), Stream.yes()).reduce(step, None)
        self.assertFalse(self.monitor.leaks(before))


class TestMergeCell(unittest.TestCase):
    """Test the four-state handshake transactions."""

    def test_handshake(self):
        """Test one full round of the handshake."""
        cell = MergeCell()
        self.assertIs(cell.state.status, MergeStatus.EMPTY)

        self.assertTrue(cell.atomically(put_left("a")))
        self.assertIs(cell.state.status, MergeStatus.HAS_LEFT)

        self.assertTrue(cell.atomically(put_right(1)))
        self.assertIs(cell.state.status, MergeStatus.HAS_PAIR)

        self.assertEqual(cell.atomically(take_pair), ("a", 1))
        self.assertIs(cell.state.status, MergeStatus.EMPTY)

    def test_take_waits_for_pair(self):
        """Test take_pair blocks until both sides delivered."""
        cell = MergeCell()
        taken = []
        consumer = threading.Thread(target=lambda: taken.append(cell.atomically(take_pair)))
        consumer.start()

        cell.atomically(put_left("x"))
        cell.atomically(put_right("y"))
        consumer.join(timeout=5)

        self.assertFalse(consumer.is_alive())
        self.assertEqual(taken, [("x", "y")])

    def test_finish(self):
        """Test finishing either side ends the handshake."""
        cell = MergeCell()
        cell.atomically(finish_left)
        self.assertIs(cell.state.status, MergeStatus.DONE)
        self.assertFalse(cell.atomically(put_right(1)))
        self.assertIsNone(cell.atomically(take_pair))

        cell = MergeCell()
        cell.atomically(put_left("a"))
        cell.atomically(finish_right)
        self.assertIs(cell.state.status, MergeStatus.DONE)
        self.assertFalse(cell.atomically(put_left("b")))

    def test_force_done(self):
        """Test force_done from any state."""
        cell = MergeCell()
        cell.atomically(put_left("a"))
        cell.atomically(put_right("b"))
        cell.atomically(force_done)
        self.assertIsNone(cell.atomically(take_pair))


class TestChannelMerger(unittest.TestCase):
    """Test forwarding several pipes into one channel."""

    def test_drain(self):
        """Test every line is forwarded once and tagged with its channel."""
        merger = ChannelMerger([
            (Channel.STDOUT, io.StringIO("a\nb\n")),
            (Channel.STDERR, io.StringIO("c\n")),
        ], maxsize=1).start()

        lines = merger.drain(lambda acc, item: acc + [item], [])
        merger.wait_all()

        self.assertEqual(len(lines), 3)
        self.assertEqual([l.line for l in lines if l.channel is Channel.STDOUT], ["a", "b"])
        self.assertEqual([l.line for l in lines if l.is_stderr], ["c"])
        self.assertIn(OutputLine(Channel.STDERR, "c"), lines)

    def test_cancel_unblocks_forwarders(self):
        """Test cancelled forwarders stop even when the channel is full."""
        merger = ChannelMerger([
            (Channel.STDOUT, io.StringIO("x\n" * 100)),
        ], maxsize=1, poll_interval=0.01).start()

        merger.cancel()
        merger.join()
        self.assertTrue(all(task.done() for task in merger.tasks))


if __name__ == '__main__':
    unittest.main()
