from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import get_db, init_db
from app.main import app
from app.schemas.inventory_record import InventoryRecordOut


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_record(item_name: str, day: str | date, **quantities) -> InventoryRecordOut:
    """Record snapshot with balances derived the same way the entry form does."""
    fields = {
        "opening_stock": 0,
        "new_stock": 0,
        "issued_production": 0,
        "returns": 0,
        "rebagging": 0,
        "damaged": 0,
    }
    fields.update(quantities)
    new_balance = fields["opening_stock"] + fields["new_stock"]
    closing = max(
        0,
        new_balance - fields["issued_production"] + fields["returns"] + fields["rebagging"] - fields["damaged"],
    )
    fields.setdefault("closing_stock", closing)
    return InventoryRecordOut(
        item_name=item_name,
        date=day,
        new_balance=new_balance,
        **fields,
    )
