import os
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from stockflow.app.api.deps import get_db
from stockflow.app.db.base import Base
from stockflow.app.db.models.models_v1 import Employee, Inventory, Sku, User
from stockflow.app.db.models.core_types import InventoryType
from stockflow.app.main import app

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+pysqlite://")


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Fresh schema per test.

    In-memory SQLite by default; point TEST_DATABASE_URL at a throwaway
    Postgres database to exercise the FOR UPDATE paths for real.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    session = Session(bind=engine, autoflush=False)

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def world(db_session):
    """Master data used by most tests: one user, three inventories, two SKUs, one dispatcher."""
    user = User(username="admin", full_name="Administrator", active=True)
    prd = Inventory(code="PRD-001", name="Central Kitchen", type=InventoryType.production, active=True)
    hub = Inventory(code="HUB-001", name="North Hub", type=InventoryType.hub, active=True)
    store = Inventory(code="STR-001", name="Downtown Store", type=InventoryType.store, active=True)
    beef = Sku(code="SKU-BEEF-500", name="Beef patty 500g", active=True)
    chicken = Sku(code="SKU-CHKN-250", name="Chicken breast 250g", active=True)
    employee = Employee(code="EMP-001", full_name="Default Dispatcher", active=True)

    db_session.add_all([user, prd, hub, store, beef, chicken, employee])
    db_session.commit()

    return SimpleNamespace(
        user=user,
        prd=prd,
        hub=hub,
        store=store,
        beef=beef,
        chicken=chicken,
        employee=employee,
    )


@pytest.fixture
def client(db_session, world):
    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as c:
            c.headers.update({"X-User-Id": str(world.user.id)})
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def for_update_tables(db_session):
    """
    Tables read with SELECT ... FOR UPDATE through db_session, in order.

    SQLite drops the lock clause, so statements are compiled for Postgres to
    see what would be locked there.
    """
    tables = []

    def record(state):
        if not state.is_select:
            return
        if "FOR UPDATE" in str(state.statement.compile(dialect=postgresql.dialect())):
            tables.extend(f.name for f in state.statement.get_final_froms())

    event.listen(db_session, "do_orm_execute", record)
    try:
        yield tables
    finally:
        event.remove(db_session, "do_orm_execute", record)


@pytest.fixture
def executed_sql(db_session):
    """Raw SQL strings sent to the database while the test runs."""
    statements = []
    engine = db_session.get_bind()

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", record)
