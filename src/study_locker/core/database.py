"""Database connection pool management"""

import logging

import asyncpg
from asyncpg import Pool
from typing import Optional

from study_locker.config.settings import get_settings

logger = logging.getLogger(__name__)

_pool: Optional[Pool] = None


async def _init_connection(conn):
    """Per-connection setup (session time zone)"""
    settings = get_settings()
    # NOW() and naive TIMESTAMP columns use the configured zone
    await conn.execute(f"SET TIME ZONE '{settings.timezone}';")


async def get_pool() -> Pool:
    """Return the connection pool (created on first use)"""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
            init=_init_connection,
        )
    return _pool


async def close_pool():
    """Close the connection pool"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None


class DatabaseConnection:
    """Pooled connection context manager"""

    def __init__(self):
        self._conn = None
        self._pool = None
        self._acquire_context = None

    async def __aenter__(self):
        self._pool = await get_pool()
        # acquire() returns a context manager; enter it to get the connection
        self._acquire_context = self._pool.acquire()
        self._conn = await self._acquire_context.__aenter__()
        return self._conn

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._acquire_context:
            await self._acquire_context.__aexit__(exc_type, exc_val, exc_tb)
            self._acquire_context = None
            self._conn = None


# ==================== Schema bootstrap ====================

_INIT_SQL_TYPES = """
DO $$ BEGIN
    CREATE TYPE session_status AS ENUM (
        'ACTIVE', 'EXTENDED', 'COMPLETED', 'INTERRUPTED', 'EMERGENCY_ACCESSED'
    );
EXCEPTION
    WHEN duplicate_object THEN null;
END $$;

DO $$ BEGIN
    CREATE TYPE locker_status AS ENUM (
        'AVAILABLE', 'OCCUPIED', 'MAINTENANCE', 'OUT_OF_ORDER', 'RESERVED'
    );
EXCEPTION
    WHEN duplicate_object THEN null;
END $$;
"""

_INIT_SQL_TABLES = """
CREATE TABLE IF NOT EXISTS lockers (
    id TEXT PRIMARY KEY,
    locker_number INTEGER NOT NULL UNIQUE,
    location VARCHAR(255),
    status locker_status NOT NULL DEFAULT 'AVAILABLE',
    total_usages INTEGER NOT NULL DEFAULT 0,
    total_hours DOUBLE PRECISION NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    locker_id TEXT NOT NULL REFERENCES lockers(id),
    status session_status NOT NULL DEFAULT 'ACTIVE',
    start_time TIMESTAMP NOT NULL DEFAULT NOW(),
    planned_duration INTEGER NOT NULL CHECK (planned_duration >= 5),
    actual_duration INTEGER,
    end_time TIMESTAMP,
    unlock_code VARCHAR(6) NOT NULL,
    extended_times INTEGER NOT NULL DEFAULT 0,
    phone_access INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS session_extensions (
    id BIGSERIAL PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    extended_by INTEGER NOT NULL CHECK (extended_by > 0),
    reason VARCHAR(200),
    created_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS usage_stats (
    id BIGSERIAL PRIMARY KEY,
    date DATE NOT NULL UNIQUE,
    total_sessions INTEGER NOT NULL DEFAULT 0,
    total_users INTEGER NOT NULL DEFAULT 0,
    avg_session_time DOUBLE PRECISION NOT NULL DEFAULT 0,
    locker_utilization DOUBLE PRECISION NOT NULL DEFAULT 0,
    total_revenue INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_sessions_locker_id ON sessions(locker_id);
CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(status);
CREATE INDEX IF NOT EXISTS idx_session_extensions_session_id ON session_extensions(session_id);

-- One running session per locker
CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_active_locker
    ON sessions (locker_id)
    WHERE status IN ('ACTIVE', 'EXTENDED');

CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS update_lockers_updated_at ON lockers;
CREATE TRIGGER update_lockers_updated_at
    BEFORE UPDATE ON lockers
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_sessions_updated_at ON sessions;
CREATE TRIGGER update_sessions_updated_at
    BEFORE UPDATE ON sessions
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_usage_stats_updated_at ON usage_stats;
CREATE TRIGGER update_usage_stats_updated_at
    BEFORE UPDATE ON usage_stats
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""


async def init_database():
    """Create enum types, tables, indexes and triggers"""
    settings = get_settings()

    try:
        conn = await asyncpg.connect(settings.database_url)

        try:
            await conn.execute(f"SET TIME ZONE '{settings.timezone}';")

            await conn.execute(_INIT_SQL_TYPES)
            logger.info("Database types initialised")

            await conn.execute(_INIT_SQL_TABLES)
            logger.info("Database tables initialised")
        finally:
            await conn.close()

    except Exception as e:
        logger.error(f"Database initialisation failed: {e}", exc_info=True)
        raise


async def check_and_init_database():
    """Initialise the schema if the sessions table is missing"""
    settings = get_settings()

    conn = await asyncpg.connect(settings.database_url)
    try:
        exists = await conn.fetchval(
            "SELECT EXISTS (SELECT FROM information_schema.tables WHERE table_name = 'sessions')"
        )
    finally:
        await conn.close()

    if not exists:
        logger.warning("Database tables missing, initialising...")
        await init_database()
    else:
        logger.debug("Database tables present")
