"""
Studio CRM Test Configuration

Shared fixtures: an in-memory database, the FastAPI app with its session
dependency overridden, auth tokens and seed records.
"""
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DASHBOARD_REFRESH_SECONDS"] = "0"
os.environ["AUTH_PROBE_DELAY"] = "0"
os.environ["ADMIN_EMAIL"] = "admin@studio.example.com"
os.environ["ADMIN_PASSWORD"] = "test-admin-password"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crm import config
from crm.auth.utils import create_access_token, get_password_hash
from crm.dashboard import routes as dashboard_routes
from crm.dashboard.api_client import APIClient
from crm.database import Base, get_db
from crm.models import Client, ClientStatus, Invoice, Project
from main import app


# =============================================================================
# FIXTURES: Database
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def app_db(session_factory, tmp_path, monkeypatch):
    """Point the app at the test database and a temporary upload root."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(config, "UPLOAD_DIR", str(tmp_path / "uploads"))
    dashboard_routes.controllers.clear()
    yield app
    app.dependency_overrides.clear()
    dashboard_routes.controllers.clear()


@pytest.fixture
def client(app_db):
    with TestClient(app_db) as test_client:
        yield test_client


# =============================================================================
# FIXTURES: Auth
# =============================================================================

@pytest.fixture
def admin_token():
    return create_access_token({"sub": config.ADMIN_EMAIL, "type": "admin"})


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


def token_for(client_record: Client) -> str:
    return create_access_token({"sub": client_record.email, "type": "client", "cid": client_record.id})


@pytest.fixture
def active_client(db_session):
    record = Client(
        email="owner@acme.example.com",
        contact_name="Olivia Owner",
        company_name="Acme Bakery",
        password_hash=get_password_hash("correct-horse"),
        status=ClientStatus.ACTIVE.value,
    )
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def client_headers(active_client):
    return {"Authorization": f"Bearer {token_for(active_client)}"}


@pytest.fixture
def other_client_headers(db_session):
    """An active client who owns nothing."""
    record = Client(
        email="someone@else.example.com",
        contact_name="Sid Else",
        password_hash=get_password_hash("another-horse"),
        status=ClientStatus.ACTIVE.value,
    )
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return {"Authorization": f"Bearer {token_for(record)}"}


# =============================================================================
# FIXTURES: Seed records
# =============================================================================

@pytest.fixture
def project(db_session, active_client):
    record = Project(
        client_id=active_client.id,
        project_name="Acme Bakery Website",
        project_type="business-site",
        status="active",
        budget="$2,500 - $5,000",
        features=["contact-form", "blog", "premium"],
        progress=0,
        start_date=date(2026, 1, 5),
    )
    db_session.add(record)
    db_session.commit()
    db_session.refresh(record)
    return record


@pytest.fixture
def make_invoice(db_session):
    counter = {"n": 0}

    def factory(project, status="sent", total=100.0, paid=0.0, due_in_days=14, invoice_type="standard"):
        counter["n"] += 1
        invoice = Invoice(
            invoice_number=f"INV-TEST-{counter['n']:03d}",
            project_id=project.id,
            client_id=project.client_id,
            invoice_type=invoice_type,
            line_items=[{"description": "Work", "quantity": 1, "rate": total, "amount": total}],
            amount_total=total,
            amount_paid=paid,
            credit_applied=0,
            status=status,
            issue_date=date.today(),
            due_date=date.today() + timedelta(days=due_in_days),
        )
        db_session.add(invoice)
        db_session.commit()
        db_session.refresh(invoice)
        return invoice

    return factory


# =============================================================================
# FIXTURES: Dashboard
# =============================================================================

@pytest.fixture
def in_process_api(app_db):
    """Factory for API clients that reach the app through the ASGI transport."""
    def factory(token: str) -> APIClient:
        return APIClient(base_url="http://crm.local", token=token, transport=httpx.ASGITransport(app=app_db))

    return factory
