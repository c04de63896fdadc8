"""
Configuration management for stream and subprocess operations.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ShellStreamConfig:
    """Global configuration for stream and subprocess operations."""

    # Text decoding of pipes and files
    encoding: str = "utf-8"
    errors: str = "strict"

    # Process shutdown
    terminate_timeout: float = 5.0  # seconds before a terminated child is killed
    cancel_grace: float = 0.1       # wait for a cancelled feeder before terminating the child

    # stdout/stderr merge channel
    merge_queue_size: int = 64
    queue_poll_interval: float = 0.05

    # Commands
    ssh_executable: str = "ssh"
    inplace_prefix: str = "shellstream"

    # Passed to every spawned process (None inherits the parent environment)
    environment: Optional[Dict[str, str]] = None

    _instance: Optional['ShellStreamConfig'] = None

    def __post_init__(self):
        """Pick up overrides from the environment."""
        timeout = os.environ.get("SHELLSTREAM_TERMINATE_TIMEOUT")
        if timeout:
            self.terminate_timeout = float(timeout)

    @classmethod
    def get_instance(cls) -> 'ShellStreamConfig':
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def set_defaults(cls, **kwargs) -> None:
        """Set default configuration values."""
        instance = cls.get_instance()
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

    def popen_text_options(self) -> Dict[str, Any]:
        """Keyword arguments for opening pipes in line-buffered text mode."""
        return {
            "text": True,
            "encoding": self.encoding,
            "errors": self.errors,
            "bufsize": 1,
        }


# Global configuration instance
config = ShellStreamConfig.get_instance()
