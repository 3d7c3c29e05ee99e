"""In-process timer registry (one pending callback per session)"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TimerCallback = Callable[[str], Awaitable[None]]


class TimerRegistry:
    """
    Pending single-shot callbacks keyed by session ID

    The registry is confined to the event loop thread. ``schedule`` and
    ``cancel`` never await, so cancel-then-set runs as one step and a
    session can never hold two live handles.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._timers: dict[str, asyncio.TimerHandle] = {}
        # Callbacks that fired and are still running
        self._inflight: set[asyncio.Task] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def schedule(self, session_id: str, delay: float, callback: TimerCallback) -> None:
        """
        Schedule ``callback(session_id)`` after ``delay`` seconds

        Any pending entry for the same session is cancelled first.
        """
        self.cancel(session_id)
        handle = self._get_loop().call_later(
            max(0.0, delay), self._fire, session_id, callback
        )
        self._timers[session_id] = handle

    def _fire(self, session_id: str, callback: TimerCallback) -> None:
        """Timer expiry: drop the entry and run the callback as a task"""
        self._timers.pop(session_id, None)
        task = asyncio.ensure_future(callback(session_id))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def cancel(self, session_id: str) -> bool:
        """Cancel and remove a pending entry; returns False if there was none"""
        handle = self._timers.pop(session_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending entry"""
        cancelled = 0
        for session_id, handle in list(self._timers.items()):
            handle.cancel()
            cancelled += 1
            logger.debug(f"Cancelled timer for session {session_id}")
        self._timers.clear()
        return cancelled

    def count(self) -> int:
        """Number of pending entries"""
        return len(self._timers)

    def has(self, session_id: str) -> bool:
        return session_id in self._timers

    def due_in(self, session_id: str) -> Optional[float]:
        """Seconds until the session's callback fires, or None"""
        handle = self._timers.get(session_id)
        if handle is None:
            return None
        return max(0.0, handle.when() - self._get_loop().time())

    @property
    def inflight(self) -> int:
        """Number of fired callbacks still running"""
        return len(self._inflight)

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for callbacks that already fired

        Args:
            timeout: Upper bound in seconds (None waits indefinitely)

        Returns:
            True if nothing is left running
        """
        if not self._inflight:
            return True
        _, pending = await asyncio.wait(set(self._inflight), timeout=timeout)
        return not pending
