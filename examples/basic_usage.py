#!/usr/bin/env python3
"""
Basic usage examples for shellstream.
"""

import os
import sys
import tempfile
import time

from shellstream import (
    Stream,
    ShellStreamConfig,
    ResourceMonitor,
    inproc,
    inproc_with_err,
    inshell,
    paste,
    grep,
    sed,
    lstree,
    memoize,
    parallel,
    proc,
)
from shellstream.streams import count_lines


PY = sys.executable


def example_pipes():
    """Example: Feed a child process and stream its output back."""
    print("\n=== Pipes Example ===")

    upper = inproc(PY, ["-c", "import sys\nfor l in sys.stdin: sys.stdout.write(l.upper())"],
                   Stream.select(["alpha", "beta", "gamma"]))
    print(f"Uppercased: {upper.collect()}")

    # Shell pipelines compose with stream operators
    words = sed("a", "4", grep("a", inshell("printf 'cat\\ndog\\nbat\\n'")))
    print(f"Filtered and substituted: {words.collect()}")


def example_early_termination():
    """Example: Take a few lines of an endless child and release it."""
    print("\n=== Early Termination Example ===")

    monitor = ResourceMonitor()
    before = monitor.snapshot()

    endless = inproc(PY, ["-c", "while True: print('tick', flush=True)"])
    print(f"First three lines: {endless.limit(3).collect()}")

    leaks = monitor.leaks(before)
    print(f"Leaked resources: {'none' if not leaks else leaks}")


def example_stderr():
    """Example: Merge stdout and stderr in arrival order."""
    print("\n=== Merged Output Example ===")

    script = "import sys\nprint('to stdout', flush=True)\nprint('to stderr', file=sys.stderr)"
    for line in inproc_with_err(PY, ["-c", script]).collect():
        print(f"{line.channel.value:>6}: {line.line}")


def example_paste():
    """Example: Zip two streams element-wise."""
    print("\n=== Paste Example ===")

    numbered = paste(Stream.range(1, 100), Stream.select(["first", "second", "third"]))
    for n, name in numbered.collect():
        print(f"{n}. {name}")


def example_files():
    """Example: Walk a directory tree."""
    print("\n=== Files Example ===")

    here = os.path.dirname(os.path.abspath(__file__))
    python_files = lstree(here).filter(lambda p: p.suffix == ".py")
    print(f"Python files below {here}: {python_files.count()}")
    print(f"Lines in this file: {Stream.from_file(__file__).fold(count_lines())}")


def example_memoize():
    """Example: Reuse the output of a slow stream across runs."""
    print("\n=== Memoization Example ===")

    def slow(consumer):
        x = consumer.begin()
        for i in range(3):
            time.sleep(0.2)
            x = consumer.step(x, i)
        return consumer.done(x)

    with tempfile.TemporaryDirectory() as temp_dir:
        cached = memoize(os.path.join(temp_dir, "slow.cache"), Stream(slow))
        for attempt in ("first", "second"):
            start = time.time()
            values = cached.collect()
            print(f"{attempt} run: {values} in {time.time() - start:.2f}s")


def example_parallel():
    """Example: Run several children at once."""
    print("\n=== Parallel Example ===")

    actions = [lambda i=i: proc(PY, ["-c", f"import time; time.sleep(0.2); raise SystemExit({i})"])
               for i in range(4)]
    start = time.time()
    print(f"Exit codes: {parallel(actions).collect()} in {time.time() - start:.2f}s")


def main():
    """Run all examples."""
    print("=== shellstream Examples ===")

    ShellStreamConfig.set_defaults(
        terminate_timeout=2.0,
        merge_queue_size=16,
    )

    example_pipes()
    example_early_termination()
    example_stderr()
    example_paste()
    example_files()
    example_memoize()
    example_parallel()

    print("\n=== All examples completed! ===")


if __name__ == "__main__":
    main()
