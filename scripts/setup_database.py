#!/usr/bin/env python3
"""
Create the SendEasy tables.

Reads DATABASE_URL like the server does; works for SQLite and PostgreSQL.
Exits non-zero when the database cannot be reached or table creation fails.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from sendeasy.core.config import settings
from sendeasy.core.utils.database_helpers import check_database_health, get_database_info
from sendeasy.db.init_db import init_database


def describe_database() -> bool:
    info = get_database_info()
    print(f"Database:   {make_url(settings.database_url).render_as_string(hide_password=True)}")
    print(f"Dialect:    {info['type']} {info['version'] or ''}".rstrip())

    if info["error"]:
        print(f"❌ Cannot connect: {info['error']}")
        return False

    existing = sorted(info["tables"])
    print(f"Tables:     {', '.join(existing) if existing else '(none)'}")
    return True


def main() -> bool:
    print("🗄️  SendEasy Database Setup")
    print("=" * 40)

    if not describe_database():
        return False

    print("\n🔧 Creating missing tables...")
    try:
        init_database()
    except SQLAlchemyError as e:
        print(f"❌ Table creation failed: {e}")
        return False

    health = check_database_health()
    print(f"✅ Done: {health['table_count']} tables, status {health['status']}")
    if health["last_error"]:
        print(f"⚠️  {health['last_error']}")
    return health["status"] == "healthy"


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
