"""Startup restore and shutdown signal hooks"""

import asyncio
import logging
import signal

from study_locker.services.session_timer import SessionTimerManager

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def restore_timers(manager: SessionTimerManager) -> int:
    """
    Re-derive session timers after a (re)start

    Args:
        manager: Timer manager

    Returns:
        Number of sessions restored
    """
    restored = await manager.restore_active_session_timers()
    logger.info(f"Startup restore finished: {restored} sessions, {manager.active_timer_count()} timers pending")
    return restored


def register_shutdown_handlers(
    loop: asyncio.AbstractEventLoop,
    manager: SessionTimerManager,
    stop_event: asyncio.Event,
) -> None:
    """
    Cancel all timers as soon as SIGINT/SIGTERM arrives

    Args:
        loop: Running event loop
        manager: Timer manager
        stop_event: Set once the signal has been handled
    """

    def on_signal(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, clearing session timers")
        manager.clear_all_timers()
        stop_event.set()

    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, on_signal, sig)

    logger.info("Shutdown handlers registered")
