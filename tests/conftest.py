"""Pytest configuration and fixtures"""
import os
import time
import uuid

import fakeredis
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

# Set test environment variables before the app reads its settings
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test_anon_key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from storefront.core.config import get_settings  # noqa: E402
from storefront.database import get_session  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.user import User  # noqa: E402
from storefront.repositories.cart_repo import CartRepository  # noqa: E402
from storefront.repositories.product_repo import ProductRepository  # noqa: E402
from storefront.services.cart_cache import CartCache  # noqa: E402
from storefront.services.cart_service import CartService, get_cart_service  # noqa: E402


@pytest.fixture
def engine():
    """Fresh in-memory database shared across threads"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def products(engine):
    """Sample catalog: P1-P3 purchasable, P4 inactive, P5 out of stock"""
    rows = [
        Product(id="P1", tracking_id="SAR-P1", name="Kanjivaram Silk", fabric="silk", price=12500.0, in_stock=10),
        Product(id="P2", tracking_id="SAR-P2", name="Chanderi Cotton", fabric="cotton", price=2400.0, in_stock=10),
        Product(id="P3", tracking_id="SAR-P3", name="Banarasi Georgette", fabric="georgette", price=8900.0, in_stock=3),
        Product(id="P4", tracking_id="SAR-P4", name="Retired Chiffon", fabric="chiffon", price=1500.0, in_stock=5, is_active=False),
        Product(id="P5", tracking_id="SAR-P5", name="Paithani Silk", fabric="silk", price=21000.0, in_stock=0),
    ]
    with Session(engine) as session:
        session.add_all(rows)
        session.commit()
        return {p.id: p for p in rows}


@pytest.fixture
def fake_redis():
    """In-memory Redis standing in for the shared cache server"""
    client = fakeredis.FakeRedis()
    client.flushall()
    yield client
    client.flushall()


@pytest.fixture
def cart_service(fake_redis):
    return CartService(
        CartRepository(),
        ProductRepository(),
        CartCache(fake_redis, ttl_seconds=30),
    )


@pytest.fixture
def client(engine, fake_redis, monkeypatch):
    """Test client bound to the in-memory database and a fake Redis"""

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    monkeypatch.setattr(get_cart_service().cache, "client", fake_redis)
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(user_id: uuid.UUID, email: str) -> str:
    """Sign a Supabase-style access token with the test secret"""
    settings = get_settings()
    claims = {
        "sub": str(user_id),
        "email": email,
        "exp": int(time.time()) + 3600,
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.SUPABASE_JWT_ALG)


@pytest.fixture
def shopper(engine):
    user = User(id=uuid.uuid4(), email="asha@example.com", name="asha", role="user")
    with Session(engine) as session:
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


@pytest.fixture
def auth_headers(shopper):
    return {"Authorization": f"Bearer {make_token(shopper.id, shopper.email)}"}
