from __future__ import annotations

import os
from uuid import uuid4

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_JWT_SECRET"] = "test-service-secret"
os.environ["ALLOWED_HOSTS"] = "testserver,localhost"
os.environ["ENV"] = "dev"
os.environ["GAME_TYPE_ALLOWLIST"] = ""
os.environ["RANKINGS_TIMEZONE"] = "UTC"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import geoboard.models  # noqa: F401
from geoboard.core.security import create_service_token
from geoboard.db.base import Base
from geoboard.db.session import get_db
from geoboard.main import app
from tests.testkit import ApiClient, IdentityFactory

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def api() -> ApiClient:
    return ApiClient(TestClient(app))


@pytest.fixture(scope="session")
def service_token() -> str:
    return create_service_token("pytest")


@pytest.fixture
def identity_factory() -> IdentityFactory:
    return IdentityFactory(seed=uuid4().hex[:8])
