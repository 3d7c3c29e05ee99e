"""Daily usage statistics model"""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class UsageStats:
    """Aggregate for one calendar day"""

    id: int
    date: date
    total_sessions: int
    total_users: int
    avg_session_time: float  # minutes
    locker_utilization: float
    total_revenue: int
    created_at: datetime
    updated_at: datetime
