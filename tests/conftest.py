import os
import uuid
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Postgres-only behaviour (the fan-out trigger) runs against a throwaway
# container when TEST_WITH_POSTGRES=1; everything else uses in-memory SQLite.
USE_POSTGRES = os.getenv("TEST_WITH_POSTGRES") == "1"
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient

import tradingroom.db.database as db_module
from tradingroom.db import models, schemas
from tradingroom.db.repositories import servers as server_repo
from tradingroom.db.repositories import roles as role_repo
from tradingroom.api.main import app
from tradingroom.utils.feature_flags import refresh_feature_flag_cache

ADMIN_EMAIL = "admin@example.com"


@pytest.fixture(scope="session")
def _engine():
    if not USE_POSTGRES:
        yield db_module.engine
        return

    from testcontainers.postgres import PostgresContainer
    from alembic import command
    from alembic.config import Config

    image = os.getenv("TEST_POSTGRES_IMAGE", "postgres:16-alpine")
    with PostgresContainer(image) as pg:
        url = pg.get_connection_url()
        os.environ["TEST_DATABASE_URL"] = url
        cfg = Config(os.path.join(ROOT, "alembic.ini"))
        cfg.set_main_option("script_location", os.path.join(ROOT, "migrations"))
        cfg.set_main_option("sqlalchemy.url", url)
        command.upgrade(cfg, "head")

        engine = create_engine(url)
        db_module.engine = engine
        db_module.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        try:
            yield engine
        finally:
            engine.dispose()
            os.environ.pop("TEST_DATABASE_URL", None)


_CURRENT_SESSION = None


# Per-test session. Postgres: an outer transaction rolled back at the end, with
# service commits turned into savepoints. SQLite: a freshly created schema.
@pytest.fixture(autouse=True)
def db_session(_engine):
    global _CURRENT_SESSION
    if USE_POSTGRES:
        connection = _engine.connect()
        trans = connection.begin()
        session = sessionmaker(
            bind=connection, autoflush=False, join_transaction_mode="create_savepoint"
        )()
        _CURRENT_SESSION = session
        try:
            yield session
        finally:
            _CURRENT_SESSION = None
            session.close()
            trans.rollback()
            connection.close()
        return

    models.Base.metadata.drop_all(bind=_engine)
    models.Base.metadata.create_all(bind=_engine)
    session = db_module.SessionLocal()
    _CURRENT_SESSION = session
    try:
        yield session
    finally:
        _CURRENT_SESSION = None
        session.close()


def _override_get_db():
    yield _CURRENT_SESSION


app.dependency_overrides[db_module.get_db] = _override_get_db


@pytest.fixture(autouse=True)
def _service_env(monkeypatch):
    monkeypatch.delenv("DEV_MODE", raising=False)
    monkeypatch.delenv("STRIPE_API_KEY", raising=False)
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest.fixture
def db(db_session):
    return db_session


@pytest.fixture
def client():
    return TestClient(app)


class Factory:
    """Row builders for service-level tests."""

    def __init__(self, db):
        self.db = db

    def user(self, email=None, display_name=None, is_superadmin=False):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            is_superadmin=is_superadmin,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def server(self, owner, name="Trading Floor"):
        return server_repo.create_server(self.db, schemas.ServerCreate(name=name), owner_id=owner.id)

    def role(self, server, name):
        return role_repo.get_role_by_name(self.db, server.id, name)

    def join(self, server, user, role_name="free"):
        role = self.role(server, role_name)
        return server_repo.create_member(self.db, server.id, user.id, role.id)

    def section(self, server, creator, name="Signals", parent=None):
        payload = schemas.SectionCreate(name=name, parent_id=parent.id if parent else None)
        return server_repo.create_section(self.db, server.id, payload, creator_id=creator.id)

    def channel(self, server, creator, name="general", section=None, type="text"):
        payload = schemas.ChannelCreate(name=name, type=type, section_id=section.id if section else None)
        return server_repo.create_channel(self.db, server.id, payload, creator_id=creator.id)


@pytest.fixture
def factory(db):
    return Factory(db)
