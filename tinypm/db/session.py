"""
Database engine and session factory.

Connection pool parameters:
- pool_size: persistent connections (default 10, fits a 4-worker uvicorn)
- max_overflow: extra connections allowed at peak
- pool_timeout: seconds to wait for a free connection
- pool_recycle: recycle period (avoids PostgreSQL dropping idle connections)
- pool_pre_ping: check a connection is alive before using it

The engine is owned by a ``Database`` instance built once per process
(see ``tinypm.core.container``) instead of living at module level.
"""

import logging
import time
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tinypm.config import Settings

logger = logging.getLogger("tinypm.db")


class Database:
    def __init__(self, engine: Engine, slow_query_threshold_ms: int = 500):
        self.engine = engine
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        self._install_query_timing()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        url = settings.database_url
        if url.startswith("sqlite"):
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                echo=settings.DB_ECHO,
            )
        else:
            engine = create_engine(
                url,
                pool_pre_ping=True,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                echo=settings.DB_ECHO,
            )
        return cls(engine, slow_query_threshold_ms=settings.SLOW_QUERY_THRESHOLD_MS)

    # ---------------------------------------------------------------------------
    # Slow query monitoring
    # ---------------------------------------------------------------------------
    def _install_query_timing(self) -> None:
        threshold_ms = self.slow_query_threshold_ms

        @event.listens_for(self.engine, "before_cursor_execute")
        def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start_time", []).append(time.perf_counter())

        @event.listens_for(self.engine, "after_cursor_execute")
        def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            total_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000
            if total_ms >= threshold_ms:
                # Truncate long SQL to keep log lines bounded
                stmt_preview = statement[:500] + "..." if len(statement) > 500 else statement
                logger.warning(
                    "Slow query detected (%.1fms): %s",
                    total_ms,
                    stmt_preview,
                )

    def session(self) -> Iterator[Session]:
        """Yield a session and always close it; used as a FastAPI dependency."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database ping failed")
            return False

    def get_pool_status(self) -> Optional[dict]:
        pool = self.engine.pool
        if not hasattr(pool, "checkedout"):
            return None
        return {
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }

    def dispose(self) -> None:
        self.engine.dispose()
