"""Pytest configuration and shared fixtures."""

import asyncio
import copy
import os
import uuid
from datetime import date, datetime, timedelta

import pytest

os.environ.setdefault("DATABASE_URL", "postgresql://localhost/study_locker_test")

from study_locker.config.constants import LockerStatus, SessionStatus
from study_locker.config.settings import Settings
from study_locker.core.timer_registry import TimerRegistry
from study_locker.models import Locker, Session, SessionExtension, UsageStats
from study_locker.repositories.store import SessionStore
from study_locker.services.session_service import SessionService
from study_locker.services.session_timer import SessionTimerManager

START = datetime(2026, 10, 18, 9, 0, 0)


class FakeTimerHandle:
    """Stand-in for asyncio.TimerHandle driven by FakeClock."""

    def __init__(self, when: float, callback, args):
        self._when = when
        self._callback = callback
        self._args = args
        self._cancelled = False

    def when(self) -> float:
        return self._when

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def run(self) -> None:
        self._callback(*self._args)


class FakeClock:
    """Wall clock and loop timer source that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.start = start
        self.offset = 0.0
        self.handles: list[FakeTimerHandle] = []

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.offset)

    def time(self) -> float:
        return self.offset

    def call_later(self, delay, callback, *args) -> FakeTimerHandle:
        handle = FakeTimerHandle(self.offset + delay, callback, args)
        self.handles.append(handle)
        return handle

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        """Move time forward, firing due handles in order."""
        target = self.offset + minutes * 60 + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled() and h.when() <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when())
            self.handles.remove(handle)
            self.offset = max(self.offset, handle.when())
            handle.run()
        self.offset = target


class InMemorySessionStore(SessionStore):
    """SessionStore kept in dicts; transactions roll back from a snapshot."""

    def __init__(self, clock):
        self._clock = clock
        self._lock = asyncio.Lock()
        self.sessions: dict[str, Session] = {}
        self.extensions: dict[str, list[SessionExtension]] = {}
        self.lockers: dict[str, Locker] = {}
        self.stats: dict[date, UsageStats] = {}
        self._next_id = 1

    # ---------- seeding helpers ----------

    def add_locker(self, locker_id: str, status: LockerStatus = LockerStatus.AVAILABLE, number: int | None = None):
        ts = self._clock()
        self.lockers[locker_id] = Locker(
            id=locker_id,
            created_at=ts,
            updated_at=ts,
            locker_number=number if number is not None else len(self.lockers) + 1,
            location="Library 2F",
            status=status,
            total_usages=0,
            total_hours=0.0,
        )
        return self.lockers[locker_id]

    def add_session(
        self,
        session_id: str,
        locker_id: str,
        planned_duration: int = 30,
        start_time: datetime | None = None,
        status: SessionStatus = SessionStatus.ACTIVE,
        user_id: str = "u1",
        extensions: tuple = (),
    ):
        start_time = start_time or self._clock()
        self.sessions[session_id] = Session(
            id=session_id,
            created_at=start_time,
            updated_at=start_time,
            user_id=user_id,
            locker_id=locker_id,
            status=status,
            start_time=start_time,
            planned_duration=planned_duration,
            unlock_code="123456",
        )
        if status in (SessionStatus.ACTIVE, SessionStatus.EXTENDED) and locker_id in self.lockers:
            self.lockers[locker_id].status = LockerStatus.OCCUPIED
        for minutes in extensions:
            self.seed_extension(session_id, minutes)
        return self.sessions[session_id]

    def seed_extension(self, session_id: str, minutes: int) -> SessionExtension:
        extension = SessionExtension(
            id=self._next_id,
            session_id=session_id,
            extended_by=minutes,
            reason=None,
            created_at=self._clock(),
        )
        self._next_id += 1
        self.extensions.setdefault(session_id, []).append(extension)
        return extension

    def _with_extensions(self, session: Session) -> Session:
        result = copy.deepcopy(session)
        result.extensions = copy.deepcopy(self.extensions.get(session.id, []))
        return result

    # ---------- SessionStore ----------

    async def get_session(self, session_id, for_update=False):
        session = self.sessions.get(session_id)
        if session is None:
            return None
        return self._with_extensions(session)

    async def list_sessions(self, statuses):
        return [
            self._with_extensions(s)
            for s in sorted(self.sessions.values(), key=lambda s: s.start_time)
            if s.status in statuses
        ]

    async def find_active_session(self, locker_id=None, user_id=None):
        candidates = [
            s for s in self.sessions.values()
            if s.is_active
            and (locker_id is None or s.locker_id == locker_id)
            and (user_id is None or s.user_id == user_id)
        ]
        if not candidates:
            return None
        return self._with_extensions(max(candidates, key=lambda s: s.start_time))

    async def create_session(self, user_id, locker_id, planned_duration, unlock_code, start_time=None):
        start_time = start_time or self._clock()
        session = Session(
            id=uuid.uuid4().hex,
            created_at=start_time,
            updated_at=start_time,
            user_id=user_id,
            locker_id=locker_id,
            status=SessionStatus.ACTIVE,
            start_time=start_time,
            planned_duration=planned_duration,
            unlock_code=unlock_code,
        )
        self.sessions[session.id] = session
        return copy.deepcopy(session)

    async def update_session(self, session_id, **fields):
        session = self.sessions.get(session_id)
        if session is None:
            return None
        for key, value in fields.items():
            setattr(session, key, value)
        session.updated_at = self._clock()
        return self._with_extensions(session)

    async def add_extension(self, session_id, extended_by, reason=None):
        extension = self.seed_extension(session_id, extended_by)
        extension.reason = reason
        return copy.deepcopy(extension)

    async def get_locker(self, locker_id, for_update=False):
        return copy.deepcopy(self.lockers.get(locker_id))

    async def update_locker(self, locker_id, status=None, total_hours_delta=0.0, usage_delta=0):
        locker = self.lockers.get(locker_id)
        if locker is None:
            return None
        if status is not None:
            locker.status = status
        locker.total_hours += total_hours_delta
        locker.total_usages += usage_delta
        locker.updated_at = self._clock()
        return copy.deepcopy(locker)

    async def upsert_daily_statistics(self, day, session_minutes):
        ts = self._clock()
        stats = self.stats.get(day)
        if stats is None:
            stats = UsageStats(
                id=len(self.stats) + 1,
                date=day,
                total_sessions=1,
                total_users=1,
                avg_session_time=float(session_minutes),
                locker_utilization=0.0,
                total_revenue=0,
                created_at=ts,
                updated_at=ts,
            )
            self.stats[day] = stats
        else:
            stats.avg_session_time += (session_minutes - stats.avg_session_time) / (stats.total_sessions + 1)
            stats.total_sessions += 1
            stats.updated_at = ts
        return copy.deepcopy(stats)

    async def run_transaction(self, work):
        async with self._lock:
            snapshot = copy.deepcopy((self.sessions, self.extensions, self.lockers, self.stats, self._next_id))
            try:
                return await work(self)
            except Exception:
                self.sessions, self.extensions, self.lockers, self.stats, self._next_id = snapshot
                raise


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemorySessionStore:
    return InMemorySessionStore(clock.now)


@pytest.fixture
def registry(clock) -> TimerRegistry:
    return TimerRegistry(loop=clock)


@pytest.fixture
def manager(store, registry, clock) -> SessionTimerManager:
    return SessionTimerManager(store, registry=registry, clock=clock.now)


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="postgresql://localhost/study_locker_test")


@pytest.fixture
def service(store, manager, settings, clock) -> SessionService:
    return SessionService(store, manager, settings=settings, clock=clock.now)
