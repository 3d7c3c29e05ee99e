"""Utility functions"""

from study_locker.utils.session_time import (
    calculate_end_time,
    elapsed_minutes,
    original_end_time,
    remaining_minutes,
    remaining_seconds,
    total_extension_minutes,
)

__all__ = [
    "calculate_end_time",
    "elapsed_minutes",
    "original_end_time",
    "remaining_minutes",
    "remaining_seconds",
    "total_extension_minutes",
]
