import os

# Configure the app for an isolated in-memory run before anything imports it
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CACHE_ENABLED"] = "true"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from camphub import rate_limiter  # noqa: E402
from camphub.cache import cache  # noqa: E402
from camphub.database import Base, SessionLocal, engine  # noqa: E402
from camphub.domain.documents import service as documents_service  # noqa: E402
from camphub.domain.registrations import service as registrations_service  # noqa: E402
from camphub.main import app  # noqa: E402
from tests.testkit import FakeRedis  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(rate_limiter, "redis_client", fake)
    monkeypatch.setattr(cache, "redis_client", fake)
    monkeypatch.setattr(cache, "enabled", True)
    rate_limiter.memory_cache.clear()
    yield fake
    rate_limiter.memory_cache.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch) -> dict[str, AsyncMock]:
    """Replace outbound email with mocks; tests assert on the recorded calls"""
    mocks = {
        "request": AsyncMock(return_value={"id": "email-request"}),
        "signed": AsyncMock(return_value={"id": "email-signed"}),
        "declined": AsyncMock(return_value={"id": "email-declined"}),
        "registration": AsyncMock(return_value={"id": "email-registration"}),
        "waitlist": AsyncMock(return_value={"id": "email-waitlist"}),
    }
    monkeypatch.setattr(documents_service, "send_signature_request_email", mocks["request"])
    monkeypatch.setattr(documents_service, "send_document_signed_email", mocks["signed"])
    monkeypatch.setattr(documents_service, "send_document_declined_email", mocks["declined"])
    monkeypatch.setattr(
        registrations_service, "send_registration_confirmation_email", mocks["registration"]
    )
    monkeypatch.setattr(registrations_service, "send_waitlist_notification_email", mocks["waitlist"])
    return mocks


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client():
    """Factory for independent clients, each with its own session cookie"""

    def factory() -> TestClient:
        return TestClient(app)

    return factory


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
