"""Session store: the persistence surface the timer core works against"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Awaitable, Callable, List, Sequence, TypeVar

from study_locker.config.constants import LockerStatus, SessionStatus
from study_locker.core.database import DatabaseConnection
from study_locker.models.extension import SessionExtension
from study_locker.models.locker import Locker
from study_locker.models.session import Session
from study_locker.models.usage_stats import UsageStats
from study_locker.repositories.extension_repository import ExtensionRepository
from study_locker.repositories.locker_repository import LockerRepository
from study_locker.repositories.session_repository import SessionRepository
from study_locker.repositories.usage_stats_repository import UsageStatsRepository

T = TypeVar("T")


class SessionStore(ABC):
    """
    Transactional record store for sessions, extensions, lockers and stats

    ``run_transaction(work)`` calls ``work(tx)`` with a store whose
    operations all commit together or not at all.
    """

    @abstractmethod
    async def get_session(self, session_id: str, for_update: bool = False) -> Session | None:
        """Session with its extensions"""

    @abstractmethod
    async def list_sessions(self, statuses: Sequence[SessionStatus]) -> List[Session]:
        """Sessions (with extensions) whose status is in ``statuses``"""

    @abstractmethod
    async def find_active_session(
        self,
        locker_id: str | None = None,
        user_id: str | None = None,
    ) -> Session | None:
        """Running session of a locker and/or user (with extensions)"""

    @abstractmethod
    async def create_session(
        self,
        user_id: str,
        locker_id: str,
        planned_duration: int,
        unlock_code: str,
        start_time: datetime | None = None,
    ) -> Session:
        """Insert an ACTIVE session"""

    @abstractmethod
    async def update_session(self, session_id: str, **fields: Any) -> Session | None:
        """Update session columns"""

    @abstractmethod
    async def add_extension(
        self,
        session_id: str,
        extended_by: int,
        reason: str | None = None,
    ) -> SessionExtension:
        """Append an extension record"""

    @abstractmethod
    async def get_locker(self, locker_id: str, for_update: bool = False) -> Locker | None:
        """Locker by ID"""

    @abstractmethod
    async def update_locker(
        self,
        locker_id: str,
        status: LockerStatus | None = None,
        total_hours_delta: float = 0.0,
        usage_delta: int = 0,
    ) -> Locker | None:
        """Set locker status and bump its counters"""

    @abstractmethod
    async def upsert_daily_statistics(self, day: date, session_minutes: int) -> UsageStats:
        """Count one finished session in the day's aggregate"""

    @abstractmethod
    async def run_transaction(self, work: Callable[["SessionStore"], Awaitable[T]]) -> T:
        """Run ``work`` atomically"""


class PostgresSessionStore(SessionStore):
    """SessionStore over the asyncpg repositories"""

    def __init__(self, conn=None):
        # A bound store is already inside a transaction
        self._conn = conn
        self.sessions = SessionRepository(conn)
        self.extensions = ExtensionRepository(conn)
        self.lockers = LockerRepository(conn)
        self.stats = UsageStatsRepository(conn)

    async def get_session(self, session_id: str, for_update: bool = False) -> Session | None:
        session = await self.sessions.get_by_id(session_id, for_update=for_update)
        if session is None:
            return None
        session.extensions = await self.extensions.get_by_session(session_id)
        return session

    async def list_sessions(self, statuses: Sequence[SessionStatus]) -> List[Session]:
        sessions = await self.sessions.get_by_statuses(statuses)
        extensions = await self.extensions.get_by_sessions([s.id for s in sessions])
        for session in sessions:
            session.extensions = extensions.get(session.id, [])
        return sessions

    async def find_active_session(
        self,
        locker_id: str | None = None,
        user_id: str | None = None,
    ) -> Session | None:
        session = await self.sessions.get_active(locker_id=locker_id, user_id=user_id)
        if session is None:
            return None
        session.extensions = await self.extensions.get_by_session(session.id)
        return session

    async def create_session(
        self,
        user_id: str,
        locker_id: str,
        planned_duration: int,
        unlock_code: str,
        start_time: datetime | None = None,
    ) -> Session:
        return await self.sessions.create(
            user_id=user_id,
            locker_id=locker_id,
            planned_duration=planned_duration,
            unlock_code=unlock_code,
            start_time=start_time,
        )

    async def update_session(self, session_id: str, **fields: Any) -> Session | None:
        return await self.sessions.update(session_id, **fields)

    async def add_extension(
        self,
        session_id: str,
        extended_by: int,
        reason: str | None = None,
    ) -> SessionExtension:
        return await self.extensions.create(session_id, extended_by, reason)

    async def get_locker(self, locker_id: str, for_update: bool = False) -> Locker | None:
        return await self.lockers.get_by_id(locker_id, for_update=for_update)

    async def update_locker(
        self,
        locker_id: str,
        status: LockerStatus | None = None,
        total_hours_delta: float = 0.0,
        usage_delta: int = 0,
    ) -> Locker | None:
        return await self.lockers.update(
            locker_id,
            status=status,
            total_hours_delta=total_hours_delta,
            usage_delta=usage_delta,
        )

    async def upsert_daily_statistics(self, day: date, session_minutes: int) -> UsageStats:
        return await self.stats.record_session(day, session_minutes)

    async def run_transaction(self, work):
        if self._conn is not None:
            return await work(self)

        async with DatabaseConnection() as conn:
            async with conn.transaction():
                return await work(PostgresSessionStore(conn))
