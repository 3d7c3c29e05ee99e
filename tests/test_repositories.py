"""SQL issued by the asyncpg repositories, checked against a recording connection."""

import asyncio
from datetime import date, datetime

import pytest

from study_locker.config.constants import LockerStatus, SessionStatus
from study_locker.repositories.locker_repository import LockerRepository
from study_locker.repositories.session_repository import SessionRepository
from study_locker.repositories.usage_stats_repository import UsageStatsRepository

TS = datetime(2026, 10, 18, 9, 30, 0)


class RecordingConnection:
    """Minimal asyncpg connection stand-in: records calls, returns a canned row."""

    def __init__(self, row=None):
        self.row = row
        self.calls = []

    async def fetchrow(self, query, *args):
        self.calls.append((query, args))
        return self.row


def stats_row(**overrides):
    row = {
        "id": 1,
        "date": date(2026, 10, 18),
        "total_sessions": 1,
        "total_users": 1,
        "avg_session_time": 42.0,
        "locker_utilization": 0.0,
        "total_revenue": 0,
        "created_at": TS,
        "updated_at": TS,
    }
    row.update(overrides)
    return row


def locker_row(**overrides):
    row = {
        "id": "L1",
        "locker_number": 1,
        "location": "Library 2F",
        "status": "AVAILABLE",
        "total_usages": 3,
        "total_hours": 1.5,
        "created_at": TS,
        "updated_at": TS,
    }
    row.update(overrides)
    return row


class TestUsageStatsRepository:
    """record_session is one upsert keyed by date with a running mean."""

    def test_upsert_statement(self):
        conn = RecordingConnection(stats_row())

        stats = asyncio.run(UsageStatsRepository(conn).record_session(date(2026, 10, 18), 42))

        query, args = conn.calls[0]
        normalized = " ".join(query.split())
        assert "ON CONFLICT (date) DO UPDATE" in normalized
        assert "total_sessions = usage_stats.total_sessions + 1" in normalized
        assert (
            "avg_session_time = usage_stats.avg_session_time + ($2 - usage_stats.avg_session_time)"
            " / (usage_stats.total_sessions + 1)"
        ) in normalized
        assert "VALUES ($1, 1, 1, $2, 0, 0, $3, $3)" in normalized
        assert args[0] == date(2026, 10, 18)
        assert args[1] == 42.0 and isinstance(args[1], float)
        assert stats.avg_session_time == 42.0
        assert stats.total_sessions == 1

    def test_running_mean_formula(self):
        # Same arithmetic as the ON CONFLICT branch, applied to 30, 60, 90
        avg, total = 30.0, 1
        for minutes in (60, 90):
            avg = avg + (minutes - avg) / (total + 1)
            total += 1

        assert avg == pytest.approx(60.0)


class TestLockerRepository:
    """update sets status only when given and always bumps the counters."""

    def test_update_with_status(self):
        conn = RecordingConnection(locker_row(total_hours=2.0))

        locker = asyncio.run(
            LockerRepository(conn).update("L1", status=LockerStatus.AVAILABLE, total_hours_delta=0.5)
        )

        query, args = conn.calls[0]
        assert "COALESCE($2::text::locker_status, status)" in query
        assert args[:4] == ("L1", "AVAILABLE", 0.5, 0)
        assert locker.status == LockerStatus.AVAILABLE
        assert locker.total_hours == 2.0

    def test_update_without_status_keeps_current(self):
        conn = RecordingConnection(locker_row(status="OCCUPIED"))

        asyncio.run(LockerRepository(conn).update("L1", usage_delta=1))

        _, args = conn.calls[0]
        assert args[1] is None
        assert args[3] == 1

    def test_missing_row(self):
        conn = RecordingConnection(None)

        assert asyncio.run(LockerRepository(conn).update("ghost")) is None

    def test_get_for_update_locks_row(self):
        conn = RecordingConnection(locker_row())

        asyncio.run(LockerRepository(conn).get_by_id("L1", for_update=True))

        assert conn.calls[0][0].endswith("FOR UPDATE")


class TestSessionRepository:
    """update only writes whitelisted columns."""

    def test_update_builds_set_clause(self):
        conn = RecordingConnection(None)

        asyncio.run(
            SessionRepository(conn).update("s1", status=SessionStatus.COMPLETED, actual_duration=30)
        )

        query, args = conn.calls[0]
        assert query.startswith("UPDATE sessions SET status = $1, actual_duration = $2, updated_at = $3")
        assert query.endswith("WHERE id = $4 RETURNING *")
        assert args[0] == "COMPLETED"
        assert args[1] == 30
        assert args[3] == "s1"

    def test_update_rejects_unknown_columns(self):
        conn = RecordingConnection(None)

        with pytest.raises(ValueError):
            asyncio.run(SessionRepository(conn).update("s1", locker_id="L2"))
        assert conn.calls == []
