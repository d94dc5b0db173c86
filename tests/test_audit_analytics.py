"""
Tests for audit log visibility and the analytics summaries
"""
import pytest
from conftest import auth_headers

from storehub.models.audit import AuditLog


def record(db, tenant_id, action, actor_id=None):
    db.add(AuditLog(tenant_id=tenant_id, action=action, resource_type="test", actor_id=actor_id))
    db.commit()


@pytest.fixture
def audit_rows(db, tenant_a, tenant_b):
    record(db, tenant_a.id, "product.create")
    record(db, tenant_a.id, "order.status")
    record(db, tenant_b.id, "product.create")
    record(db, None, "tenant.provision")


def test_admin_sees_only_own_tenant_logs(client, admin_a, tenant_a, audit_rows):
    response = client.get("/api/v1/audit-logs", headers=auth_headers(admin_a))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {log["tenant_id"] for log in body["logs"]} == {tenant_a.id}


def test_admin_cannot_read_other_tenant_logs(client, admin_a, tenant_b, audit_rows):
    response = client.get("/api/v1/audit-logs", params={"tenant_id": tenant_b.id}, headers=auth_headers(admin_a))

    assert response.status_code == 403


def test_super_admin_sees_everything(client, super_admin, audit_rows):
    body = client.get("/api/v1/audit-logs", headers=auth_headers(super_admin)).json()

    assert body["total"] == 4


def test_super_admin_narrows_to_tenant(client, super_admin, tenant_b, audit_rows):
    response = client.get(
        f"/api/v1/tenants/{tenant_b.id}/audit-logs",
        params={"action": "product.create"},
        headers=auth_headers(super_admin),
    )

    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_customer_cannot_read_audit_logs(client, customer_a, audit_rows):
    response = client.get("/api/v1/audit-logs", headers=auth_headers(customer_a))

    assert response.status_code == 403
    assert response.json()["type"] == "permission_denied"


def test_mutations_are_audited_with_actor(client, db, admin_a):
    client.post("/api/v1/categories", json={"name": "Skin Care"}, headers=auth_headers(admin_a))

    log = db.query(AuditLog).filter(AuditLog.action == "category.create").one()
    assert log.actor_id == admin_a.id
    assert log.actor_role == "admin"
    assert log.tenant_id == admin_a.tenant_id
    assert log.details == {"name": "Skin Care"}


def place_and_fulfil(client, admin, customer, product, quantity):
    order = client.post(
        "/api/v1/orders",
        json={"items": [{"product_id": product.id, "quantity": quantity}], "delivery_type": "pickup"},
        headers=auth_headers(customer),
    ).json()
    for status in ("accepted", "ready_for_pickup"):
        client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": status}, headers=auth_headers(admin))
    return order


def test_tenant_summary(client, tenant_a, admin_a, customer_a, product_a):
    place_and_fulfil(client, admin_a, customer_a, product_a, quantity=2)
    client.post(
        "/api/v1/orders",
        json={"items": [{"product_id": product_a.id, "quantity": 1}], "delivery_type": "pickup"},
        headers=auth_headers(customer_a),
    )

    response = client.get("/api/v1/analytics/summary", headers=auth_headers(admin_a))

    assert response.status_code == 200
    body = response.json()
    assert body["tenant_id"] == tenant_a.id
    assert body["revenue"] == 100.0
    assert body["delivered_orders"] == 1
    assert body["average_order_value"] == 100.0
    assert body["orders_by_status"] == {"ready_for_pickup": 1, "pending": 1}
    assert body["customers"] == 1
    assert body["products"] == 1
    assert body["pending_credit_requests"] == 0


def test_customer_cannot_read_summary(client, customer_a):
    assert client.get("/api/v1/analytics/summary", headers=auth_headers(customer_a)).status_code == 403


def test_platform_summary(client, tenant_a, tenant_b, super_admin, admin_a, customer_a, product_a):
    place_and_fulfil(client, admin_a, customer_a, product_a, quantity=2)

    response = client.get("/api/v1/analytics/platform", headers=auth_headers(super_admin))

    assert response.status_code == 200
    body = response.json()
    assert body["tenants_by_status"] == {"active": 2}
    assert body["total_orders"] == 1
    assert body["total_revenue"] == 100.0
    assert body["top_tenants"] == [{"tenant_id": tenant_a.id, "name": "City Pharma", "revenue": 100.0}]


def test_platform_summary_is_super_admin_only(client, admin_a):
    assert client.get("/api/v1/analytics/platform", headers=auth_headers(admin_a)).status_code == 403
