"""
Test configuration and fixtures.

Provides:
- An in-memory SQLite database per test, with the schema created fresh
- A factory for inserting submissions with complete nested records
- A TestClient with the database dependency overridden and API keys configured
"""
import os
from datetime import timedelta
from pathlib import Path
from typing import Generator

import pytest

os.environ.setdefault("LEADPULSE_CONFIG", str(Path(__file__).parent.parent / "config.yaml"))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leadpulse.core.config import settings
from leadpulse.core.dependencies import get_db
from leadpulse.database.models import Base, Submission
from leadpulse.main import app
from leadpulse.schemas.submissions import BrowserInfo, DeviceInfo, GeoLocation, OsInfo
from leadpulse.utils.helpers import utcnow

ADMIN_KEY = "test-admin-key"
MANAGER_KEY = "test-manager-key"
ANALYST_KEY = "test-analyst-key"


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


def build_submission(**overrides) -> Submission:
    """A stored-shape submission; nested objects may be overridden partially"""
    geolocation = GeoLocation(**overrides.pop("geolocation", {})).model_dump()
    device_info = DeviceInfo(**overrides.pop("device_info", {})).model_dump()
    fields = {
        "fname": "Jane",
        "lname": "Doe",
        "email": "jane@example.com",
        "phone": "5551234567",
        "state": "TX",
        "age": "65",
        "beneficiary": "spouse",
        "ip_address": "203.0.113.5",
        "user_agent": "Mozilla/5.0",
        "geolocation": geolocation,
        "browser_info": BrowserInfo(family="Chrome").model_dump(),
        "os_info": OsInfo(family="Windows").model_dump(),
        "device_info": device_info,
        "trusted_form_cert_url": "https://cert.trustedform.com/abc",
        "status": "pending",
        "quality_score": 0,
        "submission_date": utcnow() - timedelta(minutes=1),
    }
    fields.update(overrides)
    return Submission(**fields)


@pytest.fixture()
def make_submission(db):
    def factory(**overrides) -> Submission:
        submission = build_submission(**overrides)
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission
    return factory


@pytest.fixture()
def client(db, monkeypatch, tmp_path) -> Generator[TestClient, None, None]:
    monkeypatch.setattr(
        settings.security,
        "api_keys",
        {ADMIN_KEY: "admin", MANAGER_KEY: "manager", ANALYST_KEY: "analyst"},
    )
    monkeypatch.setattr(settings.export, "directory", str(tmp_path / "exports"))

    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(key: str = ADMIN_KEY) -> dict:
    return {"X-API-Key": key}
