"""Initialize the database with proper schema"""

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from sendeasy.db.base import Base
from sendeasy.db.session import engine as default_engine

# Import all models explicitly to register them with SQLAlchemy
from sendeasy.db.models import session as _model_session  # noqa: F401
from sendeasy.db.models import transfer as _model_transfer  # noqa: F401

logger = logging.getLogger("sendeasy.database")


def init_database(bind: Optional[Engine] = None) -> None:
    """Create all tables with proper schema"""
    bind = bind or default_engine
    try:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=bind)

        table_names = [table.name for table in Base.metadata.sorted_tables]
        logger.info("Created database tables", extra={
            "table_count": len(table_names),
            "tables": table_names
        })

    except Exception as e:
        logger.error(f"Error initializing database: {e}", extra={
            "error_type": type(e).__name__,
        })
        raise


if __name__ == "__main__":
    init_database()
