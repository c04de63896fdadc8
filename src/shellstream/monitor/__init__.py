"""Resource monitoring for spawned processes and their handles."""

from shellstream.monitor.monitor import (
    ResourceMonitor,
    ResourceSnapshot,
    ResourceLeaks,
    monitor,
)

__all__ = [
    "ResourceMonitor",
    "ResourceSnapshot",
    "ResourceLeaks",
    "monitor",
]
