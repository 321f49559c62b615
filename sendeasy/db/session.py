from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from sendeasy.core.config import settings


def get_connect_args(database_url: str) -> Dict[str, Any]:
    """Get database-specific connection arguments"""
    if database_url.startswith("sqlite"):
        # SQLite needs check_same_thread=False for FastAPI
        return {"check_same_thread": False}
    return {}


def create_db_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections get foreign key enforcement."""
    db_engine = create_engine(
        database_url,
        connect_args=get_connect_args(database_url),
        pool_pre_ping=not database_url.startswith("sqlite"),
    )
    if database_url.startswith("sqlite"):
        event.listen(db_engine, "connect", _enable_sqlite_foreign_keys)
    return db_engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # ON DELETE CASCADE is ignored by SQLite unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_db_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting DB session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_sync() -> Generator[Session, None, None]:
    """Get a synchronous DB session for background tasks with proper resource management"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
