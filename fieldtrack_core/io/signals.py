"""
Change notification fan-out.

A Signal keeps an ordered list of callbacks and calls each of them
synchronously on emit(). Publishers decide when to emit; the "only on
actual change" contract lives with them, not here.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """
    Synchronous observer list.

    Usage:
        fix_status_changed = Signal("fix_status_changed")
        fix_status_changed.connect(lambda status: print(status))
        fix_status_changed.emit(FixStatus.FIX_3D)

    Listener exceptions propagate to the emitter.
    """

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable] = []

    def connect(self, callback: Callable) -> None:
        """Register callback; connecting the same callback twice is a no-op."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def disconnect(self, callback: Callable) -> None:
        """Remove callback if registered."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, *args) -> None:
        """Call every registered callback with args, in registration order."""
        logger.debug(f"emit {self.name}{args}")
        # Copy so listeners may disconnect themselves while being notified
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)
