"""Session completion: close the session, free the locker, count the day"""

import logging
from datetime import datetime
from typing import Callable, Sequence

from study_locker.config.constants import COMPLETABLE_STATUSES, LockerStatus, SessionStatus
from study_locker.core.timezone import local_date, now
from study_locker.models.session import Session
from study_locker.repositories.store import SessionStore
from study_locker.utils.session_time import elapsed_minutes

logger = logging.getLogger(__name__)


class SessionCompletionHandler:
    """Atomic COMPLETED transition with locker release and daily stats"""

    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = now):
        self.store = store
        self._clock = clock

    async def complete(
        self,
        session_id: str,
        statuses: Sequence[SessionStatus] = COMPLETABLE_STATUSES,
    ) -> Session | None:
        """
        Complete a session

        Safe to call more than once for the same session (a fired timer may
        race a manual end): the session row is re-read under lock inside the
        transaction and only the first caller changes anything.

        Args:
            session_id: Session ID
            statuses: Statuses the session may be in; any other status is a no-op

        Returns:
            The completed session, or None if nothing was done

        Raises:
            Any store error; the transaction is rolled back and the session
            stays in its previous status.
        """

        async def work(tx: SessionStore) -> Session | None:
            session = await tx.get_session(session_id, for_update=True)
            if session is None or session.status not in statuses:
                return None

            locker = await tx.get_locker(session.locker_id, for_update=True)
            if locker is None:
                logger.warning(f"Session {session_id} references missing locker {session.locker_id}")
                return None

            end_time = self._clock()
            actual_duration = elapsed_minutes(session.start_time, end_time)

            completed = await tx.update_session(
                session_id,
                status=SessionStatus.COMPLETED,
                end_time=end_time,
                actual_duration=actual_duration,
            )
            await tx.update_locker(
                session.locker_id,
                status=LockerStatus.AVAILABLE,
                total_hours_delta=actual_duration / 60,
            )
            await tx.upsert_daily_statistics(local_date(end_time), actual_duration)
            return completed

        try:
            completed = await self.store.run_transaction(work)
        except Exception as e:
            logger.error(f"Failed to complete session {session_id}: {e}", exc_info=True)
            raise

        if completed is None:
            logger.debug(f"Session {session_id} missing or already finished, nothing to complete")
            return None

        logger.info(f"Session {session_id} completed after {completed.actual_duration} minutes")
        return completed
