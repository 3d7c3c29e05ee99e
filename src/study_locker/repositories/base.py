"""Repository base class"""

import asyncio
import logging
from abc import ABC

from study_locker.core.database import DatabaseConnection

logger = logging.getLogger(__name__)


class BaseRepository(ABC):
    """
    Repository base class

    A repository built with ``conn`` runs every statement on that connection
    (so several repositories can share one transaction) and never releases it.
    Otherwise each call borrows a pooled connection.
    """

    # Per-task connection contexts so concurrent tasks never share one
    _contexts = {}

    def __init__(self, conn=None):
        self._bound_conn = conn

    async def _get_connection(self):
        """Get database connection"""
        if self._bound_conn is not None:
            return self._bound_conn

        task_id = id(asyncio.current_task())

        if task_id not in self._contexts:
            self._contexts[task_id] = DatabaseConnection()

        db_context = self._contexts[task_id]
        conn = await db_context.__aenter__()
        return conn

    async def _release_connection(self, _conn=None):
        """
        Release database connection (with exception safety)

        Args:
            _conn: Unused, kept for call-site symmetry
        """
        if self._bound_conn is not None:
            return

        task_id = id(asyncio.current_task())

        if task_id in self._contexts:
            try:
                await self._contexts[task_id].__aexit__(None, None, None)
            except Exception as e:
                logger.warning(f"Error releasing database connection: {e}")
            finally:
                del self._contexts[task_id]
