"""
Database Module for the Odoo Import Backend

This module handles database initialization, connection management, and session handling.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool

from models import Base
from config import Config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database manager."""
        self.database_url = database_url or self._get_database_url()
        self.engine = None
        self.session_factory = None
        self._scoped_session = None

    def _get_database_url(self) -> str:
        """Resolve the database URL: DATABASE_URL, then SUPABASE_DB_URL, then local SQLite."""
        database_url = os.getenv('DATABASE_URL')
        if database_url:
            return database_url

        supabase_db_url = os.getenv('SUPABASE_DB_URL')
        if supabase_db_url:
            logger.info("Using custom SUPABASE_DB_URL")
            return supabase_db_url

        if Config.DATABASE_URL:
            return Config.DATABASE_URL

        db_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'database.db')
        logger.info("Using development SQLite database")
        return f"sqlite:///{db_path}"

    def initialize(self, create_tables: bool = False) -> None:
        """Initialize database connection."""
        try:
            if self.database_url.startswith('sqlite'):
                self.engine = create_engine(
                    self.database_url,
                    echo=False,
                    poolclass=StaticPool,
                    connect_args={'check_same_thread': False},
                )

                # Enable foreign key constraints for SQLite
                @event.listens_for(self.engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self.engine = create_engine(
                    self.database_url,
                    echo=False,
                    pool_size=Config.DB_POOL_SIZE,
                    max_overflow=Config.DB_MAX_OVERFLOW,
                    pool_pre_ping=True,
                    pool_recycle=3600,  # Recycle connections after 1 hour
                )

            self.session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                expire_on_commit=False
            )
            self._scoped_session = scoped_session(self.session_factory)

            if create_tables:
                logger.info("Creating database tables...")
                self.create_tables()

            # Mask credentials in logs
            safe_url = self.database_url
            if '@' in safe_url:
                safe_url = safe_url.split('://')[0] + '://***@' + safe_url.split('@')[1]
            logger.info(f"Database initialized successfully: {safe_url}")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def create_tables(self) -> None:
        """Create all database tables."""
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create database tables: {e}")
            raise

    def get_session(self) -> Session:
        """Get a database session."""
        if not self._scoped_session:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        return self._scoped_session()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
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

    def close(self) -> None:
        """Close database connections."""
        if self._scoped_session:
            self._scoped_session.remove()

        if self.engine:
            self.engine.dispose()

        logger.info("Database connections closed")

    def health_check(self) -> dict:
        """Check database health."""
        try:
            with self.session_scope() as session:
                result = session.execute(text("SELECT 1")).scalar()

                return {
                    'status': 'healthy',
                    'connection_test': result == 1
                }

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e)
            }


# Global database manager instance
db_manager = DatabaseManager()


def init_database(database_url: Optional[str] = None, create_tables: bool = True) -> None:
    """Initialize the global database manager."""
    global db_manager
    if database_url:
        db_manager = DatabaseManager(database_url)
    db_manager.initialize(create_tables)


def get_db_session() -> Session:
    """Get a database session from the global manager."""
    return db_manager.get_session()


@contextmanager
def db_session_scope() -> Generator[Session, None, None]:
    """Get a transactional database session scope."""
    with db_manager.session_scope() as session:
        yield session


def close_database() -> None:
    """Close the global database manager."""
    db_manager.close()


def database_health_check() -> dict:
    """Check database health."""
    return db_manager.health_check()
