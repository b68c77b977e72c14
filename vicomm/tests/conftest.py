import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

# Set the test database BEFORE importing any vicomm modules
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from vicomm.main import app
from vicomm.database import Base, enable_sqlite_foreign_keys
from vicomm.dependencies import get_db
from vicomm.limits import limiter
from vicomm.models.user import User, UserRole
from vicomm.seed import seed_categories, seed_cities
import vicomm.database as db_module
import vicomm.dependencies as dependencies_module
import vicomm.Middleware.audit_middleware as audit_mw

# Categories seeded for every test
TEST_CATEGORIES = [
    {"slug": "buy-and-sell", "title": "Buy & Sell", "description": "Stuff"},
    {"slug": "pets", "title": "Pets", "description": "Animals"},
]


@pytest.fixture(scope="session")
def test_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # share same in-memory DB across connections
    )
    enable_sqlite_foreign_keys(engine)
    return engine


@pytest.fixture()
def db_session(test_engine):
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    # Fresh schema per test to avoid cross-test data (e.g., unique email)
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    seed_cities(session)
    seed_categories(session, TEST_CATEGORIES)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def patch_sessionlocal(monkeypatch, test_engine, db_session):
    monkeypatch.setattr(db_module, "engine", test_engine, raising=False)

    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    monkeypatch.setattr(db_module, "SessionLocal", TestingSessionLocal, raising=True)
    monkeypatch.setattr(
        dependencies_module, "SessionLocal", TestingSessionLocal, raising=True
    )
    monkeypatch.setattr(audit_mw, "SessionLocal", TestingSessionLocal, raising=True)

    def test_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = test_get_db

    # Disable rate limiter globally for tests
    limiter.enabled = False
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def make_user(db_session):
    def _make_user(username="seller", role=UserRole.USER):
        user = User(
            email=f"{username}@example.com",
            username=username,
            name=username.title(),
            password_hash="x",
            role=role,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user
