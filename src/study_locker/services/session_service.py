"""Session service: create, extend, end and synchronise rentals"""

import logging
import secrets
from datetime import datetime
from typing import Callable

from study_locker.config.constants import (
    ACTIVE_STATUSES,
    COMPLETABLE_STATUSES,
    UNLOCK_CODE_MAX,
    UNLOCK_CODE_MIN,
    LockerStatus,
    SessionStatus,
)
from study_locker.config.settings import Settings, get_settings
from study_locker.core.timezone import now
from study_locker.models.session import Session
from study_locker.repositories.store import SessionStore
from study_locker.services.session_timer import SessionTimerManager
from study_locker.utils.session_time import (
    calculate_end_time,
    original_end_time,
    remaining_minutes,
    remaining_seconds,
    total_extension_minutes,
)

logger = logging.getLogger(__name__)


def generate_unlock_code() -> str:
    """Six-digit numeric unlock code"""
    return str(UNLOCK_CODE_MIN + secrets.randbelow(UNLOCK_CODE_MAX - UNLOCK_CODE_MIN + 1))


def _failure(message: str) -> dict:
    return {"success": False, "message": message}


class SessionService:
    """Session operations that feed the timer manager"""

    def __init__(
        self,
        store: SessionStore,
        timer_manager: SessionTimerManager,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = now,
    ):
        self.store = store
        self.timer_manager = timer_manager
        self.settings = settings or get_settings()
        self._clock = clock

    async def create_session(self, user_id: str, locker_id: str, planned_duration: int) -> dict:
        """
        Start a rental and its timer

        Args:
            user_id: Renting user
            locker_id: Locker to occupy
            planned_duration: Planned minutes

        Returns:
            Result dictionary; on success carries ``session`` and ``end_time``
        """
        settings = self.settings
        if not settings.min_planned_duration <= planned_duration <= settings.max_planned_duration:
            return _failure(
                f"Planned duration must be between {settings.min_planned_duration} "
                f"and {settings.max_planned_duration} minutes"
            )

        async def work(tx: SessionStore) -> dict:
            locker = await tx.get_locker(locker_id, for_update=True)
            if locker is None:
                return _failure("Locker not found")

            if locker.status != LockerStatus.AVAILABLE or await tx.find_active_session(locker_id=locker_id):
                return _failure("Locker is not available")

            if await tx.find_active_session(user_id=user_id):
                return _failure("User already has an active session")

            session = await tx.create_session(
                user_id=user_id,
                locker_id=locker_id,
                planned_duration=planned_duration,
                unlock_code=generate_unlock_code(),
                start_time=self._clock(),
            )
            await tx.update_locker(locker_id, status=LockerStatus.OCCUPIED, usage_delta=1)
            return {"success": True, "message": "Session started", "session": session}

        result = await self.store.run_transaction(work)
        if not result["success"]:
            logger.info(f"Session not created for user {user_id} on locker {locker_id}: {result['message']}")
            return result

        session = result["session"]
        logger.info(f"Session {session.id} started: user {user_id} locker {locker_id} for {planned_duration} minutes")
        await self.timer_manager.start_session_timer(session.id)
        result["end_time"] = original_end_time(session.start_time, session.planned_duration)
        return result

    async def extend_session(
        self,
        session_id: str,
        user_id: str,
        minutes: int,
        reason: str | None = None,
    ) -> dict:
        """
        Add minutes to a running session and reschedule its timer

        Enforces the per-call bounds, the number of extensions per session and
        the cap on total extension minutes.
        """
        settings = self.settings
        if not settings.min_extension_minutes <= minutes <= settings.max_extension_minutes:
            return _failure(
                f"Extension must be between {settings.min_extension_minutes} "
                f"and {settings.max_extension_minutes} minutes"
            )

        async def work(tx: SessionStore) -> dict:
            session = await tx.get_session(session_id, for_update=True)
            if session is None:
                return _failure("Session not found")
            if session.user_id != user_id:
                return _failure("Not allowed to extend this session")
            if not session.is_active:
                return _failure("Finished sessions cannot be extended")
            if len(session.extensions) >= settings.max_extensions_per_session:
                return _failure(
                    f"Extension limit reached (max {settings.max_extensions_per_session})"
                )

            total = total_extension_minutes(session.extensions)
            if total + minutes > settings.max_total_extension_minutes:
                return _failure(
                    f"Total extension would exceed {settings.max_total_extension_minutes} minutes"
                )

            extension = await tx.add_extension(session_id, minutes, reason)
            await tx.update_session(
                session_id,
                status=SessionStatus.EXTENDED,
                extended_times=session.extended_times + 1,
            )
            new_end_time = calculate_end_time(
                session.start_time,
                session.planned_duration,
                [*session.extensions, extension],
            )
            return {
                "success": True,
                "message": "Session extended",
                "extension": extension,
                "new_end_time": new_end_time,
                "total_extension_time": total + minutes,
                "remaining_extensions": settings.max_extensions_per_session - len(session.extensions) - 1,
            }

        result = await self.store.run_transaction(work)
        if not result["success"]:
            logger.info(f"Extension refused for session {session_id}: {result['message']}")
            return result

        # Extension is committed; the rescheduled end time includes it
        await self.timer_manager.extend_session_timer(session_id)
        logger.info(f"Session {session_id} extended by {minutes} minutes")
        return result

    async def end_session(self, session_id: str, user_id: str) -> dict:
        """Owner ends the rental early"""
        session = await self.store.get_session(session_id)
        if session is None:
            return _failure("Session not found")
        if session.user_id != user_id:
            return _failure("Not allowed to end this session")
        if session.status not in COMPLETABLE_STATUSES:
            return _failure("Session has already ended")

        self.timer_manager.clear_session_timer(session_id)
        completed = await self.timer_manager.completion.complete(
            session_id, statuses=COMPLETABLE_STATUSES
        )
        if completed is None:
            return _failure("Session has already ended")

        return {
            "success": True,
            "message": "Session ended",
            "session_id": session_id,
            "actual_duration": completed.actual_duration,
            "end_time": completed.end_time,
        }

    async def emergency_access(self, session_id: str, reason: str) -> dict:
        """
        Mark a running session as emergency-accessed

        The timer is cleared so no auto-completion fires afterwards. The
        locker stays OCCUPIED until the session is completed by hand.
        """

        async def work(tx: SessionStore) -> Session | None:
            session = await tx.get_session(session_id, for_update=True)
            if session is None or not session.is_active:
                return None
            return await tx.update_session(
                session_id,
                status=SessionStatus.EMERGENCY_ACCESSED,
                phone_access=session.phone_access + 1,
            )

        updated = await self.store.run_transaction(work)
        if updated is None:
            return _failure("No active session to open")

        self.timer_manager.clear_session_timer(session_id)
        logger.warning(f"Emergency access on session {session_id} (locker {updated.locker_id}): {reason}")
        return {"success": True, "message": "Emergency access recorded", "session": updated}

    async def reset_locker(self, locker_id: str) -> dict:
        """
        Administrative reset: interrupt the locker's running sessions and free it

        Interrupted sessions get an end time but no actual duration, and are
        not counted in the daily statistics.

        Args:
            locker_id: Locker to reset

        Returns:
            Result dictionary; on success carries ``interrupted_sessions`` (IDs)
        """

        async def work(tx: SessionStore) -> dict:
            locker = await tx.get_locker(locker_id, for_update=True)
            if locker is None:
                return _failure("Locker not found")

            end_time = self._clock()
            interrupted = []
            for session in await tx.list_sessions(ACTIVE_STATUSES):
                if session.locker_id != locker_id:
                    continue
                await tx.update_session(
                    session.id,
                    status=SessionStatus.INTERRUPTED,
                    end_time=end_time,
                )
                interrupted.append(session.id)

            await tx.update_locker(locker_id, status=LockerStatus.AVAILABLE)
            return {
                "success": True,
                "message": "Locker reset",
                "locker_id": locker_id,
                "locker_number": locker.locker_number,
                "interrupted_sessions": interrupted,
            }

        result = await self.store.run_transaction(work)
        if not result["success"]:
            return result

        for session_id in result["interrupted_sessions"]:
            self.timer_manager.clear_session_timer(session_id)
        logger.warning(
            f"Locker {locker_id} reset, interrupted sessions: {result['interrupted_sessions'] or 'none'}"
        )
        return result

    async def get_sync_state(self, user_id: str) -> dict:
        """Snapshot of the user's running session for client clocks"""
        session = await self.store.find_active_session(user_id=user_id)
        current = self._clock()
        if session is None:
            return {"has_active_session": False, "server_time": current}

        end_time = calculate_end_time(session.start_time, session.planned_duration, session.extensions)
        return {
            "has_active_session": True,
            "session": {
                "id": session.id,
                "locker_id": session.locker_id,
                "status": session.status,
                "start_time": session.start_time,
                "original_end_time": original_end_time(session.start_time, session.planned_duration),
                "end_time": end_time,
                "planned_duration": session.planned_duration,
                "unlock_code": session.unlock_code,
                "time_remaining": remaining_seconds(end_time, current),
                "time_remaining_minutes": remaining_minutes(end_time, current),
                "extensions": session.extensions,
                "total_extension_time": total_extension_minutes(session.extensions),
                "extended_times": session.extended_times,
                "phone_access": session.phone_access,
            },
            "server_time": current,
        }

    async def get_timer_status(
        self,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> dict:
        """
        Remaining minutes plus the process-wide timer count

        With ``session_id`` the given session is reported (only to its owner
        when ``user_id`` is also passed). With ``user_id`` alone the user's
        running session is looked up.
        """
        if session_id is None and user_id is None:
            return _failure("Session or user required")

        if session_id is not None:
            session = await self.store.get_session(session_id)
            if session is None or (user_id is not None and session.user_id != user_id):
                return _failure("Session not found")
        else:
            session = await self.store.find_active_session(user_id=user_id)
            if session is None:
                return {
                    "success": True,
                    "has_active_session": False,
                    "active_timer_count": self.timer_manager.active_timer_count(),
                }

        return {
            "success": True,
            "has_active_session": session.is_active,
            "session_id": session.id,
            "status": session.status,
            "is_active": session.is_active,
            "locker_id": session.locker_id,
            "planned_duration": session.planned_duration,
            "start_time": session.start_time,
            "end_time": session.end_time,
            "time_remaining": await self.timer_manager.get_session_time_remaining(session.id),
            "has_timer": self.timer_manager.registry.has(session.id),
            "active_timer_count": self.timer_manager.active_timer_count(),
        }
