"""Session extension model"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class SessionExtension:
    """Append-only record of minutes added to a session"""

    id: int
    session_id: str
    extended_by: int  # minutes
    reason: str | None
    created_at: datetime
