"""
Database Connection Pool Manager
Uses SQLAlchemy for connection pooling
"""
from sqlalchemy import create_engine, Engine
from sqlalchemy.pool import Pool
from typing import Optional
from leadpulse.core.config import settings
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)


def _engine_options() -> dict:
    """
    Build create_engine keyword arguments from settings.
    The pool is small and fixed: once it is exhausted, requests wait up to
    pool_timeout seconds for a connection and then fail.
    """
    db_config = settings.database
    pool_config = db_config.pool

    if db_config.is_sqlite:
        return {"echo": pool_config.echo, "connect_args": {"check_same_thread": False}}

    connect_args = {}
    if db_config.schema:
        connect_args["options"] = f"-csearch_path={db_config.schema}"
    if db_config.ssl_mode and not db_config.is_local:
        connect_args["sslmode"] = db_config.ssl_mode

    return {
        "pool_pre_ping": True,
        "pool_size": pool_config.size,
        "max_overflow": pool_config.max_overflow,
        "pool_timeout": pool_config.timeout,
        "pool_recycle": pool_config.recycle,
        "echo": pool_config.echo,
        "connect_args": connect_args,
    }


class DatabasePool:
    """
    Connection pool manager using SQLAlchemy.
    Manages a single shared connection pool for all database operations.
    """

    _engine: Optional[Engine] = None
    _pool: Optional[Pool] = None
    _initialized: bool = False

    @classmethod
    def initialize(cls) -> None:
        """
        Initialize the database connection pool.
        Should be called at application startup.
        """
        if cls._initialized:
            logger.warning("Database pool already initialized")
            return

        try:
            options = _engine_options()
            cls._engine = create_engine(settings.DATABASE_URL, **options)
            cls._pool = cls._engine.pool
            cls._initialized = True

            pool_config = settings.database.pool
            logger.info(
                f"[green]Database pool initialized:[/green] "
                f"[cyan]size={pool_config.size}[/cyan], [cyan]max_overflow={pool_config.max_overflow}[/cyan], "
                f"[cyan]timeout={pool_config.timeout}s[/cyan], [cyan]recycle={pool_config.recycle}s[/cyan]"
            )
        except Exception as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise

    @classmethod
    def get_engine(cls) -> Engine:
        """
        Get the database engine.
        Initializes the pool if not already initialized.

        Raises:
            RuntimeError: If pool is not initialized
        """
        if not cls._initialized:
            cls.initialize()

        if cls._engine is None:
            raise RuntimeError("Database pool not initialized")

        return cls._engine

    @classmethod
    def close(cls) -> None:
        """
        Close the database connection pool.
        Should be called at application shutdown.
        """
        if cls._engine is not None:
            try:
                cls._engine.dispose()
                logger.info("[green]Database pool closed successfully[/green]")
            except Exception as e:
                logger.error(f"Error closing database pool: {e}")
            finally:
                cls._engine = None
                cls._pool = None
                cls._initialized = False

    @classmethod
    def get_pool_status(cls) -> dict:
        """
        Get the current status of the connection pool.

        Returns:
            dict: Pool status information
        """
        if not cls._initialized or cls._pool is None:
            return {
                "initialized": False,
                "size": 0,
                "checked_in": 0,
                "checked_out": 0,
                "overflow": 0,
            }

        # Only QueuePool exposes counters; SQLite pools do not
        pool = cls._pool
        return {
            "initialized": True,
            "size": pool.size() if hasattr(pool, "size") else 0,
            "checked_in": pool.checkedin() if hasattr(pool, "checkedin") else 0,
            "checked_out": pool.checkedout() if hasattr(pool, "checkedout") else 0,
            "overflow": pool.overflow() if hasattr(pool, "overflow") else 0,
        }
