"""
Database introspection used by the health endpoint and the setup script.

Works against SQLite and PostgreSQL.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sendeasy.db.session import engine as default_engine

logger = logging.getLogger(__name__)

_VERSION_QUERIES = {
    "sqlite": "SELECT sqlite_version()",
    "postgresql": "SHOW server_version",
}


def get_database_type(bind: Optional[Engine] = None) -> str:
    """Dialect name of the engine, e.g. ``sqlite`` or ``postgresql``."""
    return (bind or default_engine).dialect.name


def get_database_info(bind: Optional[Engine] = None) -> Dict[str, Any]:
    """
    Connect once and collect the dialect, server version and table names.

    Connection problems are reported in ``error`` rather than raised.
    """
    bind = bind or default_engine
    db_type = get_database_type(bind)
    info: Dict[str, Any] = {
        "type": db_type,
        "connected": False,
        "tables": [],
        "version": None,
        "error": None,
    }

    try:
        with bind.connect() as conn:
            info["connected"] = True
            query = _VERSION_QUERIES.get(db_type)
            if query:
                info["version"] = conn.execute(text(query)).scalar()
            info["tables"] = inspect(conn).get_table_names()
    except SQLAlchemyError as e:
        logger.error(f"Database connection error: {e}")
        info["error"] = str(e)

    return info


def check_database_health(bind: Optional[Engine] = None) -> Dict[str, Any]:
    """
    Summarise ``get_database_info`` as a health status.

    ``unhealthy`` when the database cannot be reached, ``warning`` when it is
    reachable but has no tables yet.
    """
    db_info = get_database_info(bind)
    health: Dict[str, Any] = {
        "status": "healthy",
        "database_type": db_info["type"],
        "connected": db_info["connected"],
        "table_count": len(db_info["tables"]),
        "last_error": None,
    }

    if db_info["error"]:
        health["status"] = "unhealthy"
        health["last_error"] = db_info["error"]
    elif not db_info["tables"]:
        health["status"] = "warning"
        health["last_error"] = "No tables found - run scripts/setup_database.py"

    return health
