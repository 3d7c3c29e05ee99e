"""Timed phone-locker rentals: session timers and locker reconciliation"""

__version__ = "0.1.0"
