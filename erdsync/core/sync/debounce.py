"""
Debouncer
=========

Cancel-and-restart timer running on the asyncio event loop.
"""

from typing import Any, Callable, Optional
import asyncio


class Debouncer:
    """
    Delay a callback until triggers stop arriving.

    Every ``trigger`` cancels the pending call and starts the delay again, so
    the callback runs once, ``delay`` seconds after the last trigger.
    """

    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        if delay < 0:
            raise ValueError("Debounce delay cannot be negative")
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """(Re)start the delay. Must be called from a running event loop."""
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """
        Run a pending callback immediately.

        Returns:
            True if a callback was pending and has run
        """
        if self._handle is None:
            return False
        self.cancel()
        self.callback()
        return True

    def _fire(self) -> None:
        self._handle = None
        self.callback()
