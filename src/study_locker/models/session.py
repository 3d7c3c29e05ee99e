"""Session model"""

from dataclasses import dataclass, field
from datetime import datetime

from study_locker.config.constants import ACTIVE_STATUSES, SessionStatus
from study_locker.models.base import BaseEntity
from study_locker.models.extension import SessionExtension


@dataclass
class Session(BaseEntity):
    """One rental of a locker by a user"""

    user_id: str
    locker_id: str
    status: SessionStatus
    start_time: datetime
    planned_duration: int  # minutes
    unlock_code: str
    actual_duration: int | None = None  # minutes, set on completion
    end_time: datetime | None = None
    extended_times: int = 0
    phone_access: int = 0
    extensions: list[SessionExtension] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        """Holds its locker and has a running timer"""
        return self.status in ACTIVE_STATUSES
