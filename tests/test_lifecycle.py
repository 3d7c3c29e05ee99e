"""Tests for startup restore and shutdown signal wiring."""

import asyncio
import signal

from study_locker.app import LockerApp, create_app
from study_locker.config.constants import SessionStatus
from study_locker.tasks.lifecycle import SHUTDOWN_SIGNALS, register_shutdown_handlers, restore_timers


class RecordingLoop:
    """Captures add_signal_handler registrations."""

    def __init__(self):
        self.handlers = {}

    def add_signal_handler(self, sig, callback, *args):
        self.handlers[sig] = (callback, args)

    def send(self, sig):
        callback, args = self.handlers[sig]
        callback(*args)


class TestShutdownHandlers:
    """SIGINT/SIGTERM cancel every pending timer before stopping."""

    def test_registers_both_signals(self, manager):
        loop = RecordingLoop()
        register_shutdown_handlers(loop, manager, asyncio.Event())

        assert set(loop.handlers) == set(SHUTDOWN_SIGNALS)

    def test_signal_clears_timers_and_sets_stop_event(self, store, manager, clock):
        store.add_locker("L1")
        store.add_session("s1", "L1", planned_duration=30)
        loop = RecordingLoop()

        async def scenario():
            stop_event = asyncio.Event()
            register_shutdown_handlers(loop, manager, stop_event)
            await manager.start_session_timer("s1")

            loop.send(signal.SIGTERM)
            clock.advance(minutes=30)
            await manager.registry.drain(timeout=1)
            return stop_event.is_set()

        assert asyncio.run(scenario()) is True
        assert manager.active_timer_count() == 0
        assert store.sessions["s1"].status == SessionStatus.ACTIVE


class TestStartup:
    """Startup builds the service once and restores timers."""

    def test_restore_timers(self, store, manager):
        store.add_locker("L1")
        store.add_session("s1", "L1", planned_duration=30)

        assert asyncio.run(restore_timers(manager)) == 1
        assert manager.active_timer_count() == 1

    def test_create_app_shares_one_store(self, store):
        app = create_app(store)

        assert isinstance(app, LockerApp)
        assert app.timer_manager.store is store
        assert app.session_service.timer_manager is app.timer_manager
