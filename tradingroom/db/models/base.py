"""
Shared SQLAlchemy base and helpers.
"""
from sqlalchemy.orm import declarative_base
from datetime import datetime, UTC

# Import SQLite compilation shims for PostgreSQL-only types when running tests
# under SQLite. Keep import side-effect consistent with the package layout.
from .. import sqlite_compiler_shims  # noqa: F401


def now_utc():
    """Return an aware UTC datetime for default/updated timestamps."""
    return datetime.now(UTC)


def as_utc(value):
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


Base = declarative_base()
