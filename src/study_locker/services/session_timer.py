"""Server-side session timer management"""

import logging
from datetime import datetime
from typing import Callable

from study_locker.config.constants import ACTIVE_STATUSES
from study_locker.core.timer_registry import TimerRegistry
from study_locker.core.timezone import now
from study_locker.repositories.store import SessionStore
from study_locker.services.completion import SessionCompletionHandler
from study_locker.utils.session_time import calculate_end_time, remaining_minutes

logger = logging.getLogger(__name__)


class SessionTimerManager:
    """
    Keeps one auto-completion timer per running session

    Built once at process start and handed to whatever needs it. Timers live
    in memory only, so ``restore_active_session_timers`` must run on startup
    to re-derive them from the store.
    """

    def __init__(
        self,
        store: SessionStore,
        registry: TimerRegistry | None = None,
        completion: SessionCompletionHandler | None = None,
        clock: Callable[[], datetime] = now,
    ):
        self.store = store
        self.registry = registry or TimerRegistry()
        self.completion = completion or SessionCompletionHandler(store, clock=clock)
        self._clock = clock

    async def start_session_timer(self, session_id: str) -> bool:
        """
        Schedule auto-completion at the session's true end time

        Unknown or finished sessions are ignored. An overdue session (for
        example after downtime) is completed right here instead of scheduled.

        Returns:
            False if the session could not be read from the store
        """
        try:
            session = await self.store.get_session(session_id)
        except Exception as e:
            # Session stays running in the store and is picked up by the next restore
            logger.error(f"Failed to load session {session_id} for its timer: {e}", exc_info=True)
            return False

        if session is None or not session.is_active:
            return True

        self.registry.cancel(session_id)

        end_time = calculate_end_time(
            session.start_time, session.planned_duration, session.extensions
        )
        remaining = (end_time - self._clock()).total_seconds()

        if remaining <= 0:
            logger.info(f"Session {session_id} is overdue, completing now")
            await self.completion.complete(session_id, statuses=ACTIVE_STATUSES)
            return True

        self.registry.schedule(session_id, remaining, self._on_timer_fired)
        logger.info(f"Session timer started for {session_id}, will complete in {round(remaining)} seconds")
        return True

    async def extend_session_timer(self, session_id: str) -> bool:
        """Reschedule after a new extension has been committed"""
        return await self.start_session_timer(session_id)

    def clear_session_timer(self, session_id: str) -> None:
        """Drop the session's pending timer (manual end, emergency access)"""
        if self.registry.cancel(session_id):
            logger.info(f"Session timer cleared for {session_id}")

    async def get_session_time_remaining(self, session_id: str) -> int:
        """Whole minutes left; 0 for unknown or finished sessions, or when the store fails"""
        try:
            session = await self.store.get_session(session_id)
        except Exception as e:
            logger.error(f"Failed to read remaining time of session {session_id}: {e}")
            return 0

        if session is None or not session.is_active:
            return 0

        end_time = calculate_end_time(
            session.start_time, session.planned_duration, session.extensions
        )
        return remaining_minutes(end_time, self._clock())

    async def restore_active_session_timers(self) -> int:
        """
        Recreate timers for every running session in the store

        A failure for one session is logged and skipped.

        Returns:
            Number of sessions restored without error
        """
        sessions = await self.store.list_sessions(ACTIVE_STATUSES)
        logger.info(f"Restoring timers for {len(sessions)} active sessions")

        restored = 0
        for session in sessions:
            try:
                if await self.start_session_timer(session.id):
                    restored += 1
            except Exception as e:
                logger.error(f"Failed to restore timer for session {session.id}: {e}", exc_info=True)

        if restored < len(sessions):
            logger.warning(f"Restored {restored}/{len(sessions)} session timers")
        return restored

    def clear_all_timers(self) -> None:
        """Cancel every pending timer (process shutdown)"""
        cancelled = self.registry.cancel_all()
        logger.info(f"Cleared {cancelled} session timers")

    def active_timer_count(self) -> int:
        return self.registry.count()

    async def shutdown(self, grace_seconds: float | None = None) -> None:
        """Cancel pending timers, then wait for completions already running"""
        self.clear_all_timers()
        if not await self.registry.drain(timeout=grace_seconds):
            logger.warning(f"{self.registry.inflight} session completions still running at shutdown")

    async def _on_timer_fired(self, session_id: str) -> None:
        """Timer callback; nothing upstream to report errors to"""
        try:
            # Emergency-accessed sessions are only ever closed by hand
            await self.completion.complete(session_id, statuses=ACTIVE_STATUSES)
        except Exception as e:
            # Session stays running in the store and is picked up by the next restore
            logger.error(f"Auto-completion failed for session {session_id}: {e}")
