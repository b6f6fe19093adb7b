"""
Database configuration and connection management for the listing store.

This module provides RDBMS-agnostic database configuration with support for:
- SQLite (default, also used by the test suite)
- MySQL/MariaDB
- PostgreSQL

Configuration is loaded from environment variables with sensible defaults.
"""

import os
import logging
from typing import Optional, Dict, Any
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool
from sqlalchemy.exc import SQLAlchemyError
from contextlib import contextmanager

from .models import create_all_tables

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """
    Database configuration manager supporting multiple RDBMS backends.

    Owns the SQLAlchemy engine and session factory. Constructed once at
    process start and passed to the repository that needs it.
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        """
        Initialize database configuration.

        Args:
            database_url: Optional database URL override
            echo: Enable SQL query logging for debugging
        """
        self.database_url = database_url or self._build_database_url()
        self.echo = echo
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._is_initialized = False

        self.db_type = self._detect_database_type()
        self.engine_kwargs = self._get_engine_kwargs()

        logger.info(f"Database configuration initialized for {self.db_type}")

    def _build_database_url(self) -> str:
        """
        Build database URL from environment variables.

        Environment variables:
        - DATABASE_URL: Complete database URL (takes precedence)
        - DB_TYPE: Database type (sqlite, mysql, postgresql)
        - DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD

        Returns:
            Complete database URL string
        """
        database_url = os.getenv('DATABASE_URL')
        if database_url:
            return database_url

        db_type = os.getenv('DB_TYPE', 'sqlite').lower()

        if db_type == 'sqlite':
            db_name = os.getenv('DB_NAME', 'listings.db')
            return f"sqlite:///{db_name}"

        elif db_type in ['mysql', 'mariadb']:
            host = os.getenv('DB_HOST', 'localhost')
            port = os.getenv('DB_PORT', '3306')
            database = os.getenv('DB_NAME', 'listings')
            username = os.getenv('DB_USER', 'root')
            password = os.getenv('DB_PASSWORD', '')
            return f"mysql+pymysql://{username}:{password}@{host}:{port}/{database}?charset=utf8mb4"

        elif db_type == 'postgresql':
            host = os.getenv('DB_HOST', 'localhost')
            port = os.getenv('DB_PORT', '5432')
            database = os.getenv('DB_NAME', 'listings')
            username = os.getenv('DB_USER', 'postgres')
            password = os.getenv('DB_PASSWORD', '')
            return f"postgresql://{username}:{password}@{host}:{port}/{database}"

        else:
            raise ValueError(f"Unsupported database type: {db_type}")

    def _detect_database_type(self) -> str:
        """Detect database type from URL."""
        if self.database_url.startswith('sqlite'):
            return 'sqlite'
        elif self.database_url.startswith('mysql'):
            return 'mysql'
        elif self.database_url.startswith('postgresql'):
            return 'postgresql'
        else:
            return 'unknown'

    def _get_engine_kwargs(self) -> Dict[str, Any]:
        """
        Get database-specific engine configuration.

        Returns:
            Dictionary of engine configuration parameters
        """
        kwargs: Dict[str, Any] = {
            'echo': self.echo,
        }

        if self.db_type == 'sqlite':
            kwargs.update({
                'poolclass': StaticPool,
                'connect_args': {
                    'check_same_thread': False,
                    'timeout': 30,
                },
            })

        elif self.db_type in ['mysql', 'postgresql']:
            kwargs.update({
                'poolclass': QueuePool,
                'pool_size': int(os.getenv('DB_POOL_SIZE', '10')),
                'max_overflow': int(os.getenv('DB_MAX_OVERFLOW', '20')),
                'pool_timeout': int(os.getenv('DB_POOL_TIMEOUT', '30')),
                'pool_recycle': int(os.getenv('DB_POOL_RECYCLE', '3600')),
                'pool_pre_ping': True,
            })

        return kwargs

    def initialize(self) -> None:
        """
        Initialize database engine and session factory.

        Raises:
            SQLAlchemyError: If database connection fails
        """
        if self._is_initialized:
            return

        try:
            self.engine = create_engine(self.database_url, **self.engine_kwargs)

            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine,
                expire_on_commit=False,
            )

            self._setup_event_listeners()

            self._is_initialized = True
            logger.info(f"Database engine initialized successfully ({self.db_type})")

        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def _setup_event_listeners(self) -> None:
        """Set up SQLAlchemy event listeners for connection management."""

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Enforce parent references on SQLite."""
            if self.db_type == 'sqlite':
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    def create_tables(self) -> None:
        """Create all database tables if they don't exist."""
        if not self._is_initialized:
            self.initialize()

        create_all_tables(self.engine)
        logger.info("Database tables created successfully")

    def get_session(self) -> Session:
        """Get a new database session."""
        if not self._is_initialized:
            self.initialize()
        return self.SessionLocal()

    @contextmanager
    def get_session_context(self):
        """
        Get a database session with automatic cleanup.

        Usage:
            with db_config.get_session_context() as session:
                # Use session here
                pass

        Yields:
            SQLAlchemy session with automatic commit/rollback
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            if not self._is_initialized:
                self.initialize()

            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def get_connection_info(self) -> Dict[str, Any]:
        """
        Get database connection information for monitoring.

        Returns:
            Dictionary with connection details
        """
        return {
            'database_type': self.db_type,
            'database_url': self.database_url.split('@')[-1] if '@' in self.database_url else self.database_url,
            'is_initialized': self._is_initialized,
            'echo_enabled': self.echo,
        }

    def close(self) -> None:
        """Close database connections and clean up resources."""
        if self.engine:
            self.engine.dispose()
            logger.info("Database connections closed")
