"""Session data access layer"""

import logging
import uuid
from datetime import datetime
from typing import List, Sequence

from study_locker.config.constants import ACTIVE_STATUSES, SessionStatus
from study_locker.core.timezone import now
from study_locker.models.session import Session
from study_locker.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

# Columns callers may change through update()
_UPDATABLE_COLUMNS = (
    "status",
    "end_time",
    "actual_duration",
    "extended_times",
    "phone_access",
)


class SessionRepository(BaseRepository):
    """Session Repository"""

    async def create(
        self,
        user_id: str,
        locker_id: str,
        planned_duration: int,
        unlock_code: str,
        start_time: datetime | None = None,
    ) -> Session:
        """Insert an ACTIVE session"""
        conn = await self._get_connection()
        try:
            if start_time is None:
                start_time = now()

            record = await conn.fetchrow(
                """
                INSERT INTO sessions (
                    id, user_id, locker_id, status, start_time,
                    planned_duration, unlock_code, created_at, updated_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $5, $5)
                RETURNING *
                """,
                uuid.uuid4().hex,
                user_id,
                locker_id,
                SessionStatus.ACTIVE.value,
                start_time,
                planned_duration,
                unlock_code,
            )
            session = self._to_model(record)
            logger.debug(f"Session created: id={session.id} locker={locker_id}")
            return session
        finally:
            await self._release_connection(conn)

    async def get_by_id(self, session_id: str, for_update: bool = False) -> Session | None:
        """
        Get a session by ID

        Args:
            session_id: Session ID
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            Session without extensions, or None
        """
        conn = await self._get_connection()
        try:
            query = "SELECT * FROM sessions WHERE id = $1"
            if for_update:
                query += " FOR UPDATE"
            record = await conn.fetchrow(query, session_id)
            if not record:
                return None
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    async def get_by_statuses(self, statuses: Sequence[SessionStatus]) -> List[Session]:
        """Sessions whose status is in ``statuses``"""
        conn = await self._get_connection()
        try:
            records = await conn.fetch(
                "SELECT * FROM sessions WHERE status::text = ANY($1::text[]) ORDER BY start_time",
                [SessionStatus(s).value for s in statuses],
            )
            return [self._to_model(record) for record in records]
        finally:
            await self._release_connection(conn)

    async def get_active(
        self,
        locker_id: str | None = None,
        user_id: str | None = None,
    ) -> Session | None:
        """Most recent ACTIVE/EXTENDED session of a locker and/or user"""
        conditions = ["status::text = ANY($1::text[])"]
        params: list = [[s.value for s in ACTIVE_STATUSES]]

        if locker_id is not None:
            params.append(locker_id)
            conditions.append(f"locker_id = ${len(params)}")
        if user_id is not None:
            params.append(user_id)
            conditions.append(f"user_id = ${len(params)}")

        conn = await self._get_connection()
        try:
            record = await conn.fetchrow(
                f"""
                SELECT * FROM sessions
                WHERE {' AND '.join(conditions)}
                ORDER BY start_time DESC
                LIMIT 1
                """,
                *params,
            )
            if not record:
                return None
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    async def update(self, session_id: str, **fields) -> Session | None:
        """
        Update selected columns

        Args:
            session_id: Session ID
            **fields: Column values; only status, end_time, actual_duration,
                extended_times and phone_access are accepted

        Returns:
            Updated session, or None if the row does not exist
        """
        unknown = set(fields) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update session columns: {sorted(unknown)}")

        updates = []
        params = []
        for column in _UPDATABLE_COLUMNS:
            if column in fields:
                value = fields[column]
                if isinstance(value, SessionStatus):
                    value = value.value
                params.append(value)
                updates.append(f"{column} = ${len(params)}")

        params.append(now())
        updates.append(f"updated_at = ${len(params)}")
        params.append(session_id)

        conn = await self._get_connection()
        try:
            record = await conn.fetchrow(
                f"UPDATE sessions SET {', '.join(updates)} WHERE id = ${len(params)} RETURNING *",
                *params,
            )
            if not record:
                return None
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    @staticmethod
    def _to_model(record) -> Session:
        """Database record to model"""
        return Session(
            id=record["id"],
            user_id=record["user_id"],
            locker_id=record["locker_id"],
            status=SessionStatus(record["status"]),
            start_time=record["start_time"],
            planned_duration=record["planned_duration"],
            unlock_code=record["unlock_code"],
            actual_duration=record["actual_duration"],
            end_time=record["end_time"],
            extended_times=record["extended_times"],
            phone_access=record["phone_access"],
            created_at=record["created_at"],
            updated_at=record["updated_at"],
        )
