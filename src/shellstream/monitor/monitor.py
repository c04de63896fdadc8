"""Handle, child process and thread monitoring."""

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

import psutil


@dataclass
class ResourceSnapshot:
    """Resources held by the current process at one point in time."""
    open_handles: int
    children: FrozenSet[int]
    threads: FrozenSet[str]
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return (f"Resources: {self.open_handles} open handles, "
                f"{len(self.children)} running children, "
                f"{len(self.threads)} threads")


@dataclass
class ResourceLeaks:
    """Resources that appeared between two snapshots."""
    handles: int
    children: FrozenSet[int]
    threads: FrozenSet[str]

    def __bool__(self) -> bool:
        return self.handles > 0 or bool(self.children) or bool(self.threads)


class ResourceMonitor:
    """Inspect the handle, process and thread tables of this process."""

    def __init__(self, pid: Optional[int] = None):
        """
        Initialize resource monitor.

        Args:
            pid: Process to inspect (None for the current process)
        """
        self.process = psutil.Process(pid)
        self._history: List[ResourceSnapshot] = []
        self._max_history = 100

    def _open_handles(self) -> int:
        if hasattr(self.process, "num_fds"):
            return self.process.num_fds()
        return self.process.num_handles()

    def _running_children(self) -> FrozenSet[int]:
        running = set()
        for child in self.process.children(recursive=True):
            try:
                if child.status() != psutil.STATUS_ZOMBIE:
                    running.add(child.pid)
            except psutil.NoSuchProcess:
                continue
        return frozenset(running)

    def snapshot(self) -> ResourceSnapshot:
        """Get current resource usage."""
        info = ResourceSnapshot(
            open_handles=self._open_handles(),
            children=self._running_children(),
            threads=frozenset(t.name for t in threading.enumerate()),
        )
        self._history.append(info)
        if len(self._history) > self._max_history:
            self._history.pop(0)
        return info

    def leaks(self, before: ResourceSnapshot, settle: float = 1.0) -> ResourceLeaks:
        """
        Resources that appeared since ``before``.

        Waits up to ``settle`` seconds for exiting threads and children to
        disappear before reporting them.
        """
        deadline = time.time() + settle
        while True:
            now = self.snapshot()
            found = ResourceLeaks(
                handles=max(0, now.open_handles - before.open_handles),
                children=now.children - before.children,
                threads=now.threads - before.threads,
            )
            if not found or time.time() >= deadline:
                return found
            time.sleep(0.05)

    def get_history(self) -> List[ResourceSnapshot]:
        return list(self._history)

    def get_trend(self) -> Dict[str, float]:
        """Open handle trend over the recorded snapshots."""
        if not self._history:
            return {"avg_handles": 0, "max_handles": 0, "trend": 0}

        handles = [h.open_handles for h in self._history]
        if len(handles) >= 2:
            first_half = handles[:len(handles) // 2]
            second_half = handles[len(handles) // 2:]
            trend = sum(second_half) / len(second_half) - sum(first_half) / len(first_half)
        else:
            trend = 0

        return {
            "avg_handles": sum(handles) / len(handles),
            "max_handles": max(handles),
            "trend": trend,
        }


# Global monitor instance
monitor = ResourceMonitor()
