"""
PostgreSQL Connection Manager - async user storage infrastructure.

Provides:
- Connection pooling with asyncpg
- Startup retries for a database that is still booting
- Schema bootstrap for the users table
- Fallback mode flag when PostgreSQL is unavailable (the auth service
  then uses its in-memory store)

Usage:
    db = DatabaseManager(url=runtime_config.database_url)
    await db.connect()
    if db.available:
        row = await db.fetchrow("SELECT * FROM users WHERE email = $1", email)
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import asyncpg

logger = logging.getLogger(__name__)

USERS_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def _looks_like_transient_connect_error(error_text: str) -> bool:
    text = (error_text or "").lower()
    patterns = (
        "connection refused",
        "the database system is starting up",
        "connection reset by peer",
        "connection timed out",
        "timeout expired",
        "could not connect to server",
    )
    return any(p in text for p in patterns)


@dataclass
class DatabaseManager:
    """
    PostgreSQL connection manager with fallback mode.

    An empty URL means no database is configured; the manager goes
    straight to fallback mode without touching the network.
    """

    url: str = ""
    pool_size: int = 5

    _pool: Any = field(default=None, repr=False)
    _available: bool = field(default=False, repr=False)
    _fallback_mode: bool = field(default=False, repr=False)
    _last_error: Optional[str] = field(default=None, repr=False)

    @property
    def available(self) -> bool:
        """Check if PostgreSQL is available."""
        return self._available and not self._fallback_mode

    @property
    def fallback_mode(self) -> bool:
        return self._fallback_mode

    async def connect(self) -> bool:
        """
        Establish the pool and ensure the users table exists.

        Returns:
            True if connected, False if fallback mode activated
        """
        if not self.url:
            logger.info("DATABASE_URL not set, using in-memory user store")
            self._fallback_mode = True
            return False

        max_retries = int(os.environ.get("POSTGRES_CONNECT_RETRIES", "5"))
        retry_delay_s = float(os.environ.get("POSTGRES_CONNECT_RETRY_DELAY_S", "2.0"))

        for attempt in range(max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(
                    self.url,
                    min_size=1,
                    max_size=self.pool_size,
                    command_timeout=30.0,
                )
                async with self._pool.acquire() as conn:
                    await conn.execute(USERS_SCHEMA)

                self._available = True
                self._fallback_mode = False
                self._last_error = None
                logger.info(f"PostgreSQL connected: pool_size={self.pool_size}")
                return True
            except (OSError, asyncpg.PostgresError, asyncio.TimeoutError) as e:
                self._last_error = str(e)
                await self._discard_pool()
                if attempt < max_retries and _looks_like_transient_connect_error(str(e)):
                    if attempt == 0:
                        logger.info(
                            "PostgreSQL not ready yet; retrying startup connection "
                            f"(max_retries={max_retries}, delay={retry_delay_s:.1f}s)"
                        )
                    await asyncio.sleep(retry_delay_s)
                    continue
                break

        logger.warning(f"PostgreSQL connection failed: {self._last_error}, using in-memory user store")
        self._fallback_mode = True
        self._available = False
        return False

    async def disconnect(self) -> None:
        """Close PostgreSQL connection pool."""
        await self._discard_pool()

    async def _discard_pool(self) -> None:
        if self._pool:
            try:
                await self._pool.close()
            except Exception as e:
                logger.warning(f"Error closing PostgreSQL pool: {e}")
            finally:
                self._pool = None
                self._available = False

    async def health_check(self) -> Dict[str, Any]:
        """
        Check PostgreSQL health status.

        Returns:
            Dict with status and mode
        """
        if self._fallback_mode:
            return {"status": "fallback", "mode": "memory", "error": self._last_error}

        if not self._pool:
            return {"status": "disconnected", "mode": "none"}

        try:
            start = asyncio.get_running_loop().time()
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            latency_ms = (asyncio.get_running_loop().time() - start) * 1000
            return {
                "status": "connected",
                "mode": "postgresql",
                "latency_ms": round(latency_ms, 2),
                "pool_size": self._pool.get_size(),
            }
        except Exception as e:
            self._last_error = str(e)
            logger.warning(f"PostgreSQL health check failed: {e}")
            return {"status": "error", "mode": "postgresql", "error": str(e)}

    # === Query Operations ===

    async def fetchrow(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Fetch a single row as dict."""
        self._require_pool()
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    def _require_pool(self) -> None:
        if self._fallback_mode or not self._pool:
            raise RuntimeError("Cannot execute PostgreSQL query in fallback mode")
