from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger.auth import get_current_user
from stockledger.db import Base, get_db
from stockledger.main import app
from stockledger.models import User
from stockledger.tests.factories import seed_ledger


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_current_user] = lambda: User(
        id=1,
        organization_id=1,
        email="member@stockledger.local",
        full_name="Test Member",
        password_hash="x",
        is_admin=False,
        is_active=True,
    )
    yield
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal

    app.dependency_overrides.pop(get_db, None)
    Base.metadata.drop_all(engine)


@pytest.fixture()
def ledger(client):
    """Committed ledger data for API tests; the organization gets id 1."""
    _, SessionLocal = client
    with SessionLocal() as db:
        setup = seed_ledger(db)
        db.commit()
        return SimpleNamespace(
            organization_id=setup.organization_id,
            base_url=f"/api/organizations/{setup.organization_id}",
            warehouse_id=setup.warehouse.id,
            warehouse_node_id=setup.warehouse_node.id,
            external_node_id=setup.external_node.id,
            adjustment_node_id=setup.adjustment_node.id,
            item_id=setup.item.id,
            unit_id=setup.unit.id,
        )
