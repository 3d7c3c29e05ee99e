"""Daily usage statistics data access layer"""

from datetime import date

from study_locker.core.timezone import now
from study_locker.models.usage_stats import UsageStats
from study_locker.repositories.base import BaseRepository


class UsageStatsRepository(BaseRepository):
    """Daily usage statistics Repository"""

    async def record_session(self, day: date, session_minutes: int) -> UsageStats:
        """
        Count one finished session in the day's aggregate

        The first completion of a day creates the row; later ones increment
        total_sessions and fold the duration into avg_session_time as a
        running mean. The mean is never recomputed from the sessions table.

        Args:
            day: Local calendar date
            session_minutes: Actual duration of the finished session

        Returns:
            The day's statistics after the update
        """
        conn = await self._get_connection()
        try:
            record = await conn.fetchrow(
                """
                INSERT INTO usage_stats (
                    date, total_sessions, total_users, avg_session_time,
                    locker_utilization, total_revenue, created_at, updated_at
                )
                VALUES ($1, 1, 1, $2, 0, 0, $3, $3)
                ON CONFLICT (date) DO UPDATE SET
                    total_sessions = usage_stats.total_sessions + 1,
                    avg_session_time = usage_stats.avg_session_time
                        + ($2 - usage_stats.avg_session_time) / (usage_stats.total_sessions + 1),
                    updated_at = $3
                RETURNING *
                """,
                day,
                float(session_minutes),
                now(),
            )
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    @staticmethod
    def _to_model(record) -> UsageStats:
        """Database record to model"""
        return UsageStats(
            id=record["id"],
            date=record["date"],
            total_sessions=record["total_sessions"],
            total_users=record["total_users"],
            avg_session_time=record["avg_session_time"],
            locker_utilization=record["locker_utilization"],
            total_revenue=record["total_revenue"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
