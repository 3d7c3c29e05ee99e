"""Business services"""

from study_locker.services.completion import SessionCompletionHandler
from study_locker.services.session_service import SessionService
from study_locker.services.session_timer import SessionTimerManager

__all__ = [
    "SessionCompletionHandler",
    "SessionTimerManager",
    "SessionService",
]
