"""Locker model"""

from dataclasses import dataclass

from study_locker.config.constants import LockerStatus
from study_locker.models.base import BaseEntity


@dataclass
class Locker(BaseEntity):
    """Physical storage unit"""

    locker_number: int
    location: str | None
    status: LockerStatus
    total_usages: int
    total_hours: float
