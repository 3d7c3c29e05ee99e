"""Constants"""

from enum import Enum
from typing import Final


# ==================== Session status ====================
class SessionStatus(str, Enum):
    """Session status"""
    ACTIVE = "ACTIVE"
    EXTENDED = "EXTENDED"
    COMPLETED = "COMPLETED"
    INTERRUPTED = "INTERRUPTED"
    EMERGENCY_ACCESSED = "EMERGENCY_ACCESSED"


# Sessions that hold a locker and own a running timer
ACTIVE_STATUSES: Final[tuple[SessionStatus, ...]] = (
    SessionStatus.ACTIVE,
    SessionStatus.EXTENDED,
)

# Sessions the completion handler may still close out
COMPLETABLE_STATUSES: Final[tuple[SessionStatus, ...]] = (
    SessionStatus.ACTIVE,
    SessionStatus.EXTENDED,
    SessionStatus.EMERGENCY_ACCESSED,
)


# ==================== Locker status ====================
class LockerStatus(str, Enum):
    """Locker status"""
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_ORDER = "OUT_OF_ORDER"
    RESERVED = "RESERVED"


# ==================== Unlock code ====================
UNLOCK_CODE_MIN: Final[int] = 100000
UNLOCK_CODE_MAX: Final[int] = 999999

SECONDS_PER_MINUTE: Final[int] = 60
