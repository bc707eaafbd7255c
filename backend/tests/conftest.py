"""Shared fixtures: a throwaway SQLite database and a logged-in API client."""

import asyncio
import os
import tempfile
from pathlib import Path

import pytest

# Settings are read at import time, so the environment has to be ready first.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="tradewiser-tests-"))
os.environ["SQLITE_DATABASE_URI"] = f"sqlite:///{(_TMP_DIR / 'test.db').as_posix()}"
os.environ["UPLOAD_DIR"] = str(_TMP_DIR / "uploads")
os.environ["LOG_DIR"] = str(_TMP_DIR / "logs")
os.environ["LOAN_SWEEP_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PUBLIC_BASE_URL"] = "https://tradewiser.test"

from fastapi.testclient import TestClient  # noqa: E402

from tradewiser.db.init_db import reset_database  # noqa: E402
from tradewiser.main import app  # noqa: E402

PASSWORD = "secret123"

WAREHOUSE_DELHI = {
    "name": "Azadpur Mandi Warehouse",
    "address": "GT Karnal Road",
    "city": "Delhi",
    "state": "Delhi",
    "pincode": "110033",
    "latitude": 28.7041,
    "longitude": 77.1750,
    "capacity": 10000,
    "available_space": 7500,
    "specializations": ["Wheat", "Rice", "Pulses"],
    "facilities": ["pest_control"],
    "storage_rate_per_mt_month": 120,
}

WAREHOUSE_MUMBAI = {
    "name": "Vashi APMC Storage",
    "address": "Sector 19, Vashi",
    "city": "Navi Mumbai",
    "state": "Maharashtra",
    "pincode": "400703",
    "latitude": 19.0771,
    "longitude": 73.0080,
    "capacity": 15000,
    "specializations": ["oilseeds", "spices"],
}


@pytest.fixture
def client():
    asyncio.run(reset_database())
    with TestClient(app) as test_client:
        yield test_client


def register(client, username: str, role: str = "farmer") -> dict:
    """Register a user (which also logs them in) and return the user payload."""
    response = client.post("/api/auth/register", json={
        "username": username,
        "password": PASSWORD,
        "full_name": username.title(),
        "email": f"{username}@example.com",
        "role": role,
    })
    assert response.status_code == 201, response.text
    return response.json()


def login(client, username: str) -> dict:
    response = client.post("/api/auth/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()


def create_warehouse(client, **overrides) -> dict:
    payload = {**WAREHOUSE_DELHI, **overrides}
    response = client.post("/api/warehouses", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def create_receipt(client, warehouse_id: int, quantity: float = 10, **overrides) -> dict:
    payload = {"quantity": quantity, "warehouse_id": warehouse_id, "commodity_name": "Wheat", **overrides}
    response = client.post("/api/receipts", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def farmer(client) -> dict:
    return register(client, "ramesh")


@pytest.fixture
def warehouse(client, farmer) -> dict:
    return create_warehouse(client)
