"""
Tests for developer API keys: issue, list, revoke, and authenticating with a key
"""
from datetime import datetime, timedelta

from conftest import auth_headers

from storehub.models.api_key import ApiKey
from storehub.models.audit import AuditLog


def issue_key(client, admin, **fields):
    payload = {"name": "Inventory sync", **fields}
    return client.post("/api/v1/api-keys", json=payload, headers=auth_headers(admin))


def key_headers(key, **headers):
    return {"Authorization": f"Bearer {key}", **headers}


def test_issue_key(client, db, tenant_a, admin_a):
    response = issue_key(client, admin_a, description="Nightly ERP export")

    assert response.status_code == 201
    body = response.json()
    assert body["api_key"].startswith("pk_")
    assert body["key_prefix"] == body["api_key"][:12]
    assert body["tenant_id"] == tenant_a.id
    assert body["scopes"] == ["orders:read"]
    assert body["created_by"] == admin_a.id
    assert body["total_requests"] == 0

    stored = db.query(ApiKey).one()
    assert stored.key_hash != body["api_key"]
    assert body["api_key"] not in stored.key_hash


def test_listing_never_shows_the_key(client, admin_a):
    issue_key(client, admin_a)

    listed = client.get("/api/v1/api-keys", headers=auth_headers(admin_a)).json()

    assert len(listed) == 1
    assert "api_key" not in listed[0]
    assert "key_hash" not in listed[0]


def test_scopes_outside_key_capabilities_rejected(client, admin_a):
    response = issue_key(client, admin_a, scopes=["staff:manage"])

    assert response.status_code == 400
    assert "staff:manage" in response.json()["error"]
    assert issue_key(client, admin_a, scopes=["orders:teleport"]).status_code == 400


def test_customer_cannot_issue_keys(client, customer_a):
    assert issue_key(client, customer_a).status_code == 403


def test_super_admin_cannot_issue_keys(client, tenant_a, super_admin):
    response = client.post(
        "/api/v1/api-keys",
        json={"name": "Platform key", "tenant_id": tenant_a.id},
        headers=auth_headers(super_admin),
    )

    assert response.status_code == 403


def test_key_reads_its_tenant_and_counts_usage(client, admin_a, customer_a, product_a):
    client.post(
        "/api/v1/orders",
        json={"items": [{"product_id": product_a.id, "quantity": 1}], "delivery_type": "pickup"},
        headers=auth_headers(customer_a),
    )
    key = issue_key(client, admin_a).json()

    response = client.get("/api/v1/orders", headers=key_headers(key["api_key"]))

    assert response.status_code == 200
    assert response.json()["total"] == 1

    usage = client.get(f"/api/v1/api-keys/{key['id']}", headers=auth_headers(admin_a)).json()
    assert usage["total_requests"] == 1
    assert usage["last_used_at"] is not None


def test_key_cannot_reach_another_tenant(client, tenant_b, admin_a):
    key = issue_key(client, admin_a).json()["api_key"]

    response = client.get("/api/v1/orders", headers=key_headers(key, Host="greengrocer.storehub.local"))
    assert response.status_code == 403
    assert response.json()["type"] == "tenant_mismatch"

    through_path = client.get(f"/api/v1/tenants/{tenant_b.id}/orders", headers=key_headers(key))
    assert through_path.status_code == 403


def test_key_is_limited_to_its_scopes(client, admin_a):
    key = issue_key(client, admin_a).json()["api_key"]

    category = client.post("/api/v1/categories", json={"name": "Vitamins"}, headers=key_headers(key))
    assert category.status_code == 403
    assert "catalog:manage" in category.json()["error"]

    assert client.get("/api/v1/api-keys", headers=key_headers(key)).status_code == 403
    assert client.get("/api/v1/audit-logs", headers=key_headers(key)).status_code == 403
    assert client.get("/api/v1/auth/me", headers=key_headers(key)).status_code == 403


def test_key_acts_for_its_admin(client, db, tenant_a, admin_a):
    key = issue_key(client, admin_a, scopes=["catalog:manage"]).json()["api_key"]

    response = client.post("/api/v1/categories", json={"name": "Vitamins"}, headers=key_headers(key))

    assert response.status_code == 201
    assert response.json()["tenant_id"] == tenant_a.id
    audit = db.query(AuditLog).filter(AuditLog.action == "category.create").one()
    assert audit.actor_id == admin_a.id


def test_revoked_key_is_rejected(client, admin_a):
    key = issue_key(client, admin_a).json()

    revoked = client.post(f"/api/v1/api-keys/{key['id']}/revoke", headers=auth_headers(admin_a))
    assert revoked.status_code == 200
    assert revoked.json()["is_active"] is False
    assert revoked.json()["revoked_at"] is not None

    assert client.get("/api/v1/orders", headers=key_headers(key["api_key"])).status_code == 401
    again = client.post(f"/api/v1/api-keys/{key['id']}/revoke", headers=auth_headers(admin_a))
    assert again.status_code == 409


def test_keys_are_per_tenant(client, admin_a, admin_b):
    key = issue_key(client, admin_a).json()

    assert client.get("/api/v1/api-keys", headers=auth_headers(admin_b)).json() == []
    response = client.post(f"/api/v1/api-keys/{key['id']}/revoke", headers=auth_headers(admin_b))
    assert response.status_code == 403


def test_unknown_key_is_rejected(client, admin_a):
    issue_key(client, admin_a)

    response = client.get("/api/v1/orders", headers=key_headers("pk_" + "0" * 64))

    assert response.status_code == 401


def test_expired_key_is_rejected(client, db, admin_a):
    key = issue_key(client, admin_a, expires_in_days=30).json()
    stored = db.get(ApiKey, key["id"])
    stored.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    assert client.get("/api/v1/orders", headers=key_headers(key["api_key"])).status_code == 401


def test_key_of_deactivated_admin_is_rejected(client, db, admin_a):
    key = issue_key(client, admin_a).json()["api_key"]
    admin_a.is_active = False
    db.commit()

    assert client.get("/api/v1/orders", headers=key_headers(key)).status_code == 401
