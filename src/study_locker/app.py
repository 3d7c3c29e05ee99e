"""Service application"""

import asyncio
import logging
from dataclasses import dataclass

from study_locker.config.settings import get_settings
from study_locker.core.database import check_and_init_database, close_pool
from study_locker.repositories.store import PostgresSessionStore, SessionStore
from study_locker.services.session_service import SessionService
from study_locker.services.session_timer import SessionTimerManager
from study_locker.tasks.lifecycle import register_shutdown_handlers, restore_timers

logger = logging.getLogger(__name__)


@dataclass
class LockerApp:
    """Long-lived service objects shared by request handlers"""

    store: SessionStore
    timer_manager: SessionTimerManager
    session_service: SessionService


def create_app(store: SessionStore | None = None) -> LockerApp:
    """Build the service objects once for the whole process"""
    store = store or PostgresSessionStore()
    timer_manager = SessionTimerManager(store)
    session_service = SessionService(store, timer_manager)

    logger.info("Locker service created")
    return LockerApp(store=store, timer_manager=timer_manager, session_service=session_service)


async def serve() -> None:
    """Run until SIGINT/SIGTERM"""
    settings = get_settings()

    await check_and_init_database()
    app = create_app()

    stop_event = asyncio.Event()
    register_shutdown_handlers(asyncio.get_running_loop(), app.timer_manager, stop_event)

    try:
        await restore_timers(app.timer_manager)
        logger.info("Locker service running")
        await stop_event.wait()
    finally:
        await app.timer_manager.shutdown(settings.shutdown_grace_seconds)
        await close_pool()
        logger.info("Locker service stopped")
