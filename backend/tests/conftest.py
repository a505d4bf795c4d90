import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["STORE_BACKEND"] = "memory"
os.environ["ENV"] = "test"

import asyncio
import itertools
from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from database import get_store
from main import app
from promote_admin import promote
from stores.memory import InMemoryStore
from utils.rate_limiter import _RATE_LIMIT_STORE

_emails = itertools.count(1)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    _RATE_LIMIT_STORE.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(role="buyer", name=None, email=None, password="s3cret-pass"):
        email = email or f"user{next(_emails)}@example.com"
        resp = client.post("/api/auth/signup", json={
            "email": email,
            "password": password,
            "full_name": name or f"{role.title()} User",
            "role": role,
        })
        assert resp.status_code == 201, resp.text
        # each test user authenticates with its own bearer header
        client.cookies.clear()

        body = resp.json()
        return {
            "id": body["user"]["id"],
            "email": email,
            "password": password,
            "token": body["access_token"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
        }
    return _register


@pytest.fixture
def farmer(register):
    return register("farmer", name="Fiona Farmer")


@pytest.fixture
def buyer(register):
    return register("buyer", name="Bob Buyer")


@pytest.fixture
def admin(register, store):
    user = register("buyer", name="Ada Admin")
    assert asyncio.run(promote(store, user["email"])) == "promoted"
    return user


@pytest.fixture
def make_listing(client):
    def _make(owner, **overrides):
        payload = {
            "name": "Tomatoes",
            "category": "Vegetables",
            "planted_on": "2026-03-01",
            "harvest_on": "2026-06-01",
            "quantity": 5,
            "unit": "kg",
            "unit_price": "2.00",
        }
        payload.update(overrides)
        resp = client.post("/api/listings", json=payload, headers=owner["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()["listing"]
    return _make


@pytest.fixture
def seed_listing(store):
    async def _seed(*, quantity="5", unit_price="2.00", status="active", farmer_id="farmer-1"):
        now = datetime.utcnow()
        return await store.create_listing({
            "farmer_id": farmer_id,
            "name": "Yam",
            "category": "roots",
            "planted_on": date(2026, 1, 10),
            "harvest_on": date(2026, 9, 1),
            "quantity": Decimal(quantity),
            "unit": "kg",
            "unit_price": Decimal(unit_price),
            "status": status,
            "image_url": None,
            "created_at": now,
            "updated_at": now,
        })
    return _seed
