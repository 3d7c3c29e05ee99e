"""Locker data access layer"""

from study_locker.config.constants import LockerStatus
from study_locker.core.timezone import now
from study_locker.models.locker import Locker
from study_locker.repositories.base import BaseRepository


class LockerRepository(BaseRepository):
    """Locker Repository"""

    async def get_by_id(self, locker_id: str, for_update: bool = False) -> Locker | None:
        """Get a locker by ID"""
        conn = await self._get_connection()
        try:
            query = "SELECT * FROM lockers WHERE id = $1"
            if for_update:
                query += " FOR UPDATE"
            record = await conn.fetchrow(query, locker_id)
            if not record:
                return None
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    async def update(
        self,
        locker_id: str,
        status: LockerStatus | None = None,
        total_hours_delta: float = 0.0,
        usage_delta: int = 0,
    ) -> Locker | None:
        """
        Set status and bump cumulative counters in one statement

        Args:
            locker_id: Locker ID
            status: New status (None keeps the current one)
            total_hours_delta: Hours added to total_hours
            usage_delta: Added to total_usages

        Returns:
            Updated locker, or None if the row does not exist
        """
        conn = await self._get_connection()
        try:
            record = await conn.fetchrow(
                """
                UPDATE lockers
                SET status = COALESCE($2::text::locker_status, status),
                    total_hours = total_hours + $3,
                    total_usages = total_usages + $4,
                    updated_at = $5
                WHERE id = $1
                RETURNING *
                """,
                locker_id,
                status.value if status is not None else None,
                float(total_hours_delta),
                usage_delta,
                now(),
            )
            if not record:
                return None
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    @staticmethod
    def _to_model(record) -> Locker:
        """Database record to model"""
        return Locker(
            id=record["id"],
            locker_number=record["locker_number"],
            location=record["location"],
            status=LockerStatus(record["status"]),
            total_usages=record["total_usages"],
            total_hours=record["total_hours"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
