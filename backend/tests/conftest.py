from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from cart_service.adapters.mock_catalog import MockProductCatalog
from cart_service.api.deps import get_clock, get_policy, get_product_client
from cart_service.config import CartPolicy
from cart_service.db import get_db, init_db, make_engine
from cart_service.main import app
from cart_service.services.cart_service import CartService


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return MockProductCatalog({"p1": 100, "p2": 100, "p3": 5})


@pytest.fixture
def policy():
    return CartPolicy(
        ttl=timedelta(hours=72),
        tax_rate=Decimal("0.18"),
        shipping_cost=Decimal("0.00"),
        abandon_after=timedelta(hours=24),
        max_write_retries=3,
    )


@pytest.fixture
def service(db, catalog, policy, clock):
    return CartService(db, catalog, policy=policy, clock=clock)


@pytest.fixture
def client(session_factory, catalog, policy, clock):
    def override_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_product_client] = lambda: catalog
    app.dependency_overrides[get_policy] = lambda: policy
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
