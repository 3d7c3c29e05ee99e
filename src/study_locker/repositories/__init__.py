"""Data access layer"""

from study_locker.repositories.base import BaseRepository
from study_locker.repositories.extension_repository import ExtensionRepository
from study_locker.repositories.locker_repository import LockerRepository
from study_locker.repositories.session_repository import SessionRepository
from study_locker.repositories.store import PostgresSessionStore, SessionStore
from study_locker.repositories.usage_stats_repository import UsageStatsRepository

__all__ = [
    "BaseRepository",
    "SessionRepository",
    "ExtensionRepository",
    "LockerRepository",
    "UsageStatsRepository",
    "SessionStore",
    "PostgresSessionStore",
]
