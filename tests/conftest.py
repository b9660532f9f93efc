"""Shared fixtures: in-memory SQLite schema per test, sessions, HTTP client."""

import os

# Must be set before fleet_rbac.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient

import fleet_rbac.models  # noqa: F401
from fleet_rbac.core.security import create_access_token
from fleet_rbac.db.base import Base
from fleet_rbac.db.session import engine, SessionLocal
from fleet_rbac.services.audit_service import AuditContext
from fleet_rbac.services.role_service import role_service
from fleet_rbac.services.user_service import user_service

ADMIN_PASSWORD = "admin-secret"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from fleet_rbac.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_role(db):
    role = role_service.create(db, "admin", "Administrators")
    return role_service.set_permissions(db, role.id, ["users.manage"])


@pytest.fixture
def admin_user(db, admin_role):
    user, _ = user_service.create(
        db, "Admin User", "admin@example.com", admin_role.id, password=ADMIN_PASSWORD,
    )
    return user


@pytest.fixture
def actor(admin_user):
    return AuditContext(actor_id=admin_user.id, ip_address="10.0.0.1", user_agent="pytest")


def _bearer(user_id: int) -> dict:
    token = create_access_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _bearer


@pytest.fixture
def admin_headers(admin_user):
    return _bearer(admin_user.id)
