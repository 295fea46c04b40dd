"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration and falls back
to an in-memory SQLite database under pytest so the suite runs without a
Postgres server. Exposes the ``get_db`` FastAPI dependency.
"""
import os
import sys
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


def _get_database_url() -> str:
    # If DATABASE_URL is explicitly set, use it
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")

    # Otherwise, generate from individual components (all must be set)
    db_user = os.getenv("POSTGRES_USER")
    db_password = os.getenv("POSTGRES_PASSWORD")
    db_host = os.getenv("POSTGRES_HOST")
    db_port = os.getenv("POSTGRES_PORT")
    db_name = os.getenv("POSTGRES_DB")

    if not all([db_user, db_password, db_host, db_port, db_name]):
        missing = []
        if not db_user: missing.append("POSTGRES_USER")
        if not db_password: missing.append("POSTGRES_PASSWORD")
        if not db_host: missing.append("POSTGRES_HOST")
        if not db_port: missing.append("POSTGRES_PORT")
        if not db_name: missing.append("POSTGRES_DB")
        raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")

    return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while a test runs, so module import
    during collection is detected through ``sys.modules`` instead.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return "pytest" in sys.modules


# Test override strategy:
# 1. TEST_DATABASE_URL (set by the Postgres fixtures) always wins.
# 2. Under pytest without it, force in-memory sqlite.
# 3. Otherwise use DATABASE_URL / POSTGRES_*.
explicit_test_db = os.getenv("TEST_DATABASE_URL")

if explicit_test_db:
    DATABASE_URL = explicit_test_db
    _engine_kwargs = {}
elif _is_pytest_runtime():
    # StaticPool keeps a single connection so the in-memory schema persists
    DATABASE_URL = "sqlite+pysqlite:///:memory:"
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
else:
    DATABASE_URL = _get_database_url()
    _engine_kwargs = {"pool_pre_ping": True}

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def is_postgres(bind) -> bool:
    """True when the given engine/connection/session talks to PostgreSQL."""
    return bind.dialect.name == "postgresql"


_SCHEMA_INIT_DONE = False


def _ensure_sqlite_schema():
    """Create tables on first use for in-memory SQLite (migrations are Postgres-only)."""
    global _SCHEMA_INIT_DONE
    if _SCHEMA_INIT_DONE:
        return
    if str(engine.url).startswith("sqlite"):
        from tradingroom.db import models  # local import to avoid circular import at module load
        models.Base.metadata.create_all(bind=engine)
    _SCHEMA_INIT_DONE = True


def get_db():
    """Dependency to get a database session."""
    _ensure_sqlite_schema()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
