import pytest
from fastapi.testclient import TestClient

from customers_service.main import app

TOKEN = "test-token"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'customers.db'}")
    monkeypatch.setenv("INTERNAL_SERVICE_TOKEN", TOKEN)
    monkeypatch.setenv("CREATE_SCHEMA", "true")
    with TestClient(app) as c:
        c.headers["Authorization"] = f"Bearer {TOKEN}"
        yield c


@pytest.fixture
def customer(client):
    resp = client.post(
        "/customers",
        json={"name": "Alice Doe", "email": "alice@example.com", "phone": "555-0100"},
    )
    assert resp.status_code == 201
    return resp.json()["data"]
