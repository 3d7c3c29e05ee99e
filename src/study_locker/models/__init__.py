"""Data models"""

from study_locker.models.base import BaseEntity
from study_locker.models.extension import SessionExtension
from study_locker.models.locker import Locker
from study_locker.models.session import Session
from study_locker.models.usage_stats import UsageStats

__all__ = [
    "BaseEntity",
    "Session",
    "SessionExtension",
    "Locker",
    "UsageStats",
]
