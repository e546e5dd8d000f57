"""Shared fixtures: in-memory ledger database, sessions and an API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.db.base import Base
from app.db.session import make_engine, make_sessionmaker
from app.main import create_app
from app.models import billing  # noqa: F401
from app.services.billing_account import open_account
from app.services.billing_ledger import add_item


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def account(db):
    """Open account for patient 7 / encounter 101."""
    return open_account(db, patient_id=7, encounter_id=101, created_by="cashier-1")


@pytest.fixture
def charged_account(db, account):
    """Account carrying a single 5,000.00 consultation charge."""
    add_item(
        db,
        account.id,
        item_type="consultation",
        description="Specialist consultation",
        quantity=1,
        unit_price="5000.00",
    )
    return account


@pytest.fixture
def client(session_factory):
    app = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)
