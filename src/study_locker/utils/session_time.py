"""Session end-time arithmetic"""

from datetime import datetime, timedelta
from typing import Iterable

from study_locker.config.constants import SECONDS_PER_MINUTE


def total_extension_minutes(extensions: Iterable) -> int:
    """
    Sum of extension minutes

    Args:
        extensions: Objects with an ``extended_by`` attribute (minutes)

    Returns:
        Total minutes added to the session
    """
    return sum(ext.extended_by for ext in extensions)


def original_end_time(start_time: datetime, planned_duration: int) -> datetime:
    """End time before any extension"""
    return start_time + timedelta(minutes=planned_duration)


def calculate_end_time(
    start_time: datetime,
    planned_duration: int,
    extensions: Iterable,
) -> datetime:
    """
    True scheduled end time

    Args:
        start_time: Session start
        planned_duration: Planned minutes
        extensions: Extension records (order does not matter)

    Returns:
        start_time + planned_duration + sum of extensions
    """
    return original_end_time(start_time, planned_duration) + timedelta(
        minutes=total_extension_minutes(extensions)
    )


def remaining_minutes(end_time: datetime, current: datetime) -> int:
    """Whole minutes left, truncated, never negative"""
    seconds = (end_time - current).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // SECONDS_PER_MINUTE)


def remaining_seconds(end_time: datetime, current: datetime) -> int:
    """Whole seconds left, truncated, never negative"""
    return max(0, int((end_time - current).total_seconds()))


def elapsed_minutes(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between two instants, truncated"""
    seconds = (end_time - start_time).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // SECONDS_PER_MINUTE)
