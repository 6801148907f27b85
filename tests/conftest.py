"""Shared fixtures: in-memory database, fake redis, seeded store, API client."""

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import rolekit.models  # noqa: F401
from rolekit.core.security import create_access_token, hash_password
from rolekit.db.base import Base
from rolekit.db.session import enable_sqlite_foreign_keys, get_db
from rolekit.db.seeds.seed_roles import seed_roles
from rolekit.models import User
from rolekit.services.cache_service import CacheService, cache_service
from rolekit.services.gate import gate_registry


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Point the shared cache singleton at an in-memory redis."""
    client = fakeredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(cache_service, "_client", client)
    yield client
    client.flushall()


@pytest.fixture
def cache(fake_redis) -> CacheService:
    return CacheService(client=fake_redis, default_ttl=60)


@pytest.fixture
def seeded(db):
    """Database holding the default permissions and roles."""
    seed_roles(db)
    return db


@pytest.fixture
def make_user(db):
    """Factory creating an active user with a known password."""
    counter = {"n": 0}

    def _make(email=None, password="secret123", full_name="Test User") -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            hashed_password=hash_password(password),
            full_name=full_name,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def client(db):
    """TestClient whose requests share the test's database session."""
    from rolekit.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    for name in gate_registry.abilities():
        gate_registry.forget(name)


@pytest.fixture
def auth_headers():
    """Build JSON request headers carrying a bearer token for a user."""

    def _headers(user: User, **extra) -> dict:
        token = create_access_token({"sub": str(user.id), "email": user.email})
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        headers.update(extra)
        return headers

    return _headers
