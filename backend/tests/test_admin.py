import asyncio
from datetime import datetime, timedelta

from config.env import AUDIT_RETENTION_DAYS
from promote_admin import promote
from stores.memory import InMemoryStore
from workers.audit_cleanup_worker import purge_expired_audit_logs


def test_admin_routes_require_admin(client, farmer, buyer):
    for user in (farmer, buyer):
        assert client.get("/api/admin/users", headers=user["headers"]).status_code == 403
        assert client.get("/api/admin/sales", headers=user["headers"]).status_code == 403
    assert client.get("/api/admin/listings").status_code == 401


def test_list_and_delete_users(client, store, admin, farmer):
    users = client.get("/api/admin/users", headers=admin["headers"]).json()
    assert users["count"] == 2
    assert all("password_hash" not in u for u in users["users"])

    resp = client.delete(f"/api/admin/users/{farmer['id']}", headers=admin["headers"])
    assert resp.status_code == 200
    assert farmer["id"] not in store.users
    assert any(e["action"] == "USER_DELETED" for e in store.audit_logs)

    # the deleted user's token no longer resolves
    assert client.get("/api/auth/me", headers=farmer["headers"]).status_code == 401
    assert client.delete(f"/api/admin/users/{farmer['id']}", headers=admin["headers"]).status_code == 404


def test_admin_accounts_cannot_be_deleted(client, admin):
    resp = client.delete(f"/api/admin/users/{admin['id']}", headers=admin["headers"])
    assert resp.status_code == 403


def test_toggle_listing_status(client, admin, farmer, make_listing):
    listing = make_listing(farmer)
    url = f"/api/admin/listings/{listing['id']}/toggle-status"

    assert client.post(url, headers=admin["headers"]).json()["status"] == "inactive"
    assert client.get("/api/listings").json() == []

    assert client.post(url, headers=admin["headers"]).json()["status"] == "active"
    assert len(client.get("/api/listings").json()) == 1

    assert client.post("/api/admin/listings/missing/toggle-status", headers=admin["headers"]).status_code == 404


def test_admin_lists_and_deletes_listings(client, store, admin, farmer, make_listing):
    listing = make_listing(farmer)

    body = client.get("/api/admin/listings", headers=admin["headers"]).json()
    assert body["count"] == 1
    assert body["listings"][0]["farmer_name"] == "Fiona Farmer"

    assert client.delete(f"/api/admin/listings/{listing['id']}", headers=admin["headers"]).status_code == 200
    assert listing["id"] not in store.listings


def test_admin_sees_all_sales(client, admin, farmer, buyer, make_listing):
    listing = make_listing(farmer)
    client.post("/api/purchases", json={"listing_id": listing["id"], "quantity": 1}, headers=buyer["headers"])

    body = client.get("/api/admin/sales", headers=admin["headers"]).json()

    assert body["count"] == 1
    assert body["sales"][0]["buyer_id"] == buyer["id"]


# -------------------------------------------------
# Operator script
# -------------------------------------------------

def test_promote_results(client, store, buyer):
    assert asyncio.run(promote(store, "nobody@example.com")) == "missing"
    assert asyncio.run(promote(store, buyer["email"].upper())) == "promoted"
    assert asyncio.run(promote(store, buyer["email"])) == "already_admin"

    assert store.users[buyer["id"]]["role"] == "admin"
    assert client.get("/api/admin/users", headers=buyer["headers"]).status_code == 200


# -------------------------------------------------
# Audit retention
# -------------------------------------------------

async def test_purge_expired_audit_logs():
    store = InMemoryStore()
    now = datetime(2026, 10, 1)
    store.audit_logs = [
        {"action": "OLD", "created_at": now - timedelta(days=AUDIT_RETENTION_DAYS + 1)},
        {"action": "RECENT", "created_at": now - timedelta(days=1)},
    ]

    removed = await purge_expired_audit_logs(store, now=now)

    assert removed == 1
    assert [e["action"] for e in store.audit_logs] == ["RECENT"]
