"""
Shared fixtures.

Every test gets its own app backed by an in-memory SQLite database, with the
scheduler disabled and a throwaway upload directory.
"""

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
PASSWORD = "correct horse battery staple"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        max_upload_size_mb=1,
        enable_scheduler=False,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


def register(client, email, password=PASSWORD, first_name="Test", last_name="User"):
    return client.post(
        "/api/register",
        json={
            "email": email,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
        },
    )


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    response = register(client, "alice@example.com", first_name="Alice")
    assert response.status_code == 200
    body = response.json()
    return {"id": body["user"]["id"], "token": body["token"], "headers": bearer(body["token"])}


@pytest.fixture
def bob(client):
    response = register(client, "bob@example.com", first_name="Bob")
    assert response.status_code == 200
    body = response.json()
    return {"id": body["user"]["id"], "token": body["token"], "headers": bearer(body["token"])}


@pytest.fixture
def make_expense(client):
    def _make(headers, **fields):
        payload = {
            "amount": 25.0,
            "description": "Lunch at cafe",
            "category": "Food & Dining",
            "date": "2026-10-01",
        }
        payload.update(fields)
        response = client.post("/api/expenses", json=payload, headers=headers)
        assert response.status_code == 200, response.text
        return response.json()

    return _make
