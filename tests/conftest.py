"""Shared test fixtures."""
import httpx
import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from gateway import PaymentGateway
from main import create_app
from security import issue_token

ADMIN_EMAIL = "admin@dochouse.com"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_name="docHouseTest",
        jwt_secret="test-secret",
        payment_secret_key="sk_test_123",
        log_level="WARNING",
    )


@pytest.fixture
def db(settings):
    """In-memory MongoDB database."""
    return mongomock.MongoClient()[settings.database_name]


@pytest.fixture
def gateway_requests():
    """Requests the mock payment gateway received."""
    return []


@pytest.fixture
def gateway(settings, gateway_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append(request)
        return httpx.Response(200, json={"id": "pi_123", "client_secret": "pi_123_secret_abc"})

    return PaymentGateway(
        settings.payment_secret_key,
        settings.payment_api_url,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def client(settings, db, gateway):
    """FastAPI test client bound to the in-memory database."""
    app = create_app(settings, db=db, gateway=gateway)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(settings):
    def _create(email: str):
        token = issue_token({"email": email}, settings)
        return {"Authorization": f"Bearer {token}"}
    return _create


@pytest.fixture
def admin_headers(db, auth_headers):
    db["users"].insert_one({"email": ADMIN_EMAIL, "role": "admin"})
    return auth_headers(ADMIN_EMAIL)
