import os

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = "test_secret_key_for_testing_only"
os.environ.setdefault("FOCUSSHIELD_TIMEZONE", "UTC")

import pytest
from typing import Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from faker import Faker

from focusshield.main import app
from focusshield.database import get_db
from focusshield.models.models import Base
from focusshield.schemas.user import AuthUser
from focusshield.services.auth_service import create_access_token
from focusshield.services.local_store import LocalRecordStore, MemoryStorage

fake = Faker()


@pytest.fixture
def db() -> Generator:
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db) -> TestClient:
    """Get test client with database dependency override"""
    def override_get_db_for_test():
        try:
            yield db
        finally:
            pass  # Let the db fixture handle cleanup

    app.dependency_overrides[get_db] = override_get_db_for_test
    yield TestClient(app)
    app.dependency_overrides.clear()  # Clean up the override after the test


def make_user() -> Dict:
    user = AuthUser(id=fake.uuid4(), email=fake.email())
    access_token = create_access_token(data={"sub": user.id, "email": user.email})
    return {
        "user": user,
        "access_token": access_token,
        "token_type": "bearer",
        "headers": {"Authorization": f"Bearer {access_token}"}
    }


@pytest.fixture
def test_user() -> Dict:
    """An authenticated user as issued by the auth provider"""
    return make_user()


@pytest.fixture
def test_user2() -> Dict:
    """A second user for testing user isolation"""
    return make_user()


@pytest.fixture
def local_store() -> LocalRecordStore:
    return LocalRecordStore(MemoryStorage())
