"""Session extension data access layer"""

from collections import defaultdict
from typing import List

from study_locker.core.timezone import now
from study_locker.models.extension import SessionExtension
from study_locker.repositories.base import BaseRepository


class ExtensionRepository(BaseRepository):
    """Session extension Repository (append-only)"""

    async def create(
        self,
        session_id: str,
        extended_by: int,
        reason: str | None = None,
    ) -> SessionExtension:
        """Append an extension record"""
        conn = await self._get_connection()
        try:
            record = await conn.fetchrow(
                """
                INSERT INTO session_extensions (session_id, extended_by, reason, created_at)
                VALUES ($1, $2, $3, $4)
                RETURNING *
                """,
                session_id,
                extended_by,
                reason,
                now(),
            )
            return self._to_model(record)
        finally:
            await self._release_connection(conn)

    async def get_by_session(self, session_id: str) -> List[SessionExtension]:
        """Extensions of one session, newest first"""
        conn = await self._get_connection()
        try:
            records = await conn.fetch(
                """
                SELECT * FROM session_extensions
                WHERE session_id = $1
                ORDER BY created_at DESC, id DESC
                """,
                session_id,
            )
            return [self._to_model(record) for record in records]
        finally:
            await self._release_connection(conn)

    async def get_by_sessions(self, session_ids: List[str]) -> dict[str, List[SessionExtension]]:
        """Extensions of many sessions, grouped by session ID"""
        if not session_ids:
            return {}

        conn = await self._get_connection()
        try:
            records = await conn.fetch(
                """
                SELECT * FROM session_extensions
                WHERE session_id = ANY($1)
                ORDER BY created_at DESC, id DESC
                """,
                session_ids,
            )
        finally:
            await self._release_connection(conn)

        grouped = defaultdict(list)
        for record in records:
            grouped[record["session_id"]].append(self._to_model(record))
        return dict(grouped)

    @staticmethod
    def _to_model(record) -> SessionExtension:
        """Database record to model"""
        return SessionExtension(
            id=record["id"],
            session_id=record["session_id"],
            extended_by=record["extended_by"],
            reason=record["reason"],
            created_at=record["created_at"],
        )
