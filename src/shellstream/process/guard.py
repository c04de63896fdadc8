"""
Exactly-once release of handles shared between tasks.
"""

import logging
import threading
from typing import IO, Optional

logger = logging.getLogger(__name__)


class HandleGuard:
    """
    Close a handle at most once, no matter how many paths race to close it.

    Every code path that may release the handle (the task that writes to it,
    the driver's cleanup, an exception unwind) calls ``close_once``. Callers
    that lose the race wait until the physical close has finished.
    """

    def __init__(self, handle: IO, name: Optional[str] = None):
        self._handle = handle
        self.name = name or getattr(handle, 'name', repr(handle))
        self._lock = threading.Lock()
        self._closed = False

    @property
    def handle(self) -> IO:
        return self._handle

    def close_once(self) -> bool:
        """
        Close the handle unless already closed.

        Returns:
            True for the call that performed the close
        """
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            try:
                self._handle.close()
            except BrokenPipeError:
                # Flushing into a pipe whose reader is gone
                logger.debug("Broken pipe while closing %s", self.name)
            return True

    def already_closed(self) -> bool:
        with self._lock:
            return self._closed
