"""
Tests for in-app notifications, channel messages and the digest job
"""
import json

import httpx
import pytest
from conftest import auth_headers, make_user

import storehub.services.notifications as notifications_service
from storehub.core.tenancy import TenantScope
from storehub.models import UserRole
from storehub.models.notification import MessageLog, MessageStatus, Notification
from storehub.services.notifications import build_digests, notify, send_message


@pytest.fixture
def gateway(monkeypatch):
    """A working SMS gateway that records what it was sent."""
    sent = []

    def handler(request):
        sent.append(json.loads(request.content))
        return httpx.Response(202, json={"id": "msg-1"})

    monkeypatch.setattr(notifications_service.settings, "SMS_GATEWAY_URL", "https://sms.example.com/send")
    monkeypatch.setattr(
        notifications_service,
        "get_http_client",
        lambda: httpx.Client(transport=httpx.MockTransport(handler)),
    )
    return sent


def test_customer_sees_only_own_notifications(client, db, tenant_a, customer_a):
    scope = TenantScope(db, tenant_a.id)
    notify(scope, "promo", "Monsoon sale", "20% off", recipient_id=customer_a.id)
    notify(scope, "new_order", "New order", "For the admins")
    db.commit()

    response = client.get("/api/v1/notifications", headers=auth_headers(customer_a))

    assert response.status_code == 200
    body = response.json()
    assert [n["type"] for n in body["notifications"]] == ["promo"]
    assert body["unread"] == 1


def test_admin_sees_tenant_wide_notifications(client, db, tenant_a, admin_a, customer_a):
    scope = TenantScope(db, tenant_a.id)
    notify(scope, "promo", "Monsoon sale", "20% off", recipient_id=customer_a.id)
    notify(scope, "new_order", "New order", "For the admins")
    db.commit()

    body = client.get("/api/v1/notifications", headers=auth_headers(admin_a)).json()

    assert [n["type"] for n in body["notifications"]] == ["new_order"]


def test_mark_read(client, db, tenant_a, customer_a):
    notification = notify(TenantScope(db, tenant_a.id), "promo", "Sale", "Hi", recipient_id=customer_a.id)
    db.commit()

    response = client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers(customer_a))

    assert response.status_code == 200
    assert response.json()["read"] is True
    body = client.get("/api/v1/notifications", params={"unread_only": "true"}, headers=auth_headers(customer_a))
    assert body.json() == {"notifications": [], "unread": 0}


def test_cannot_read_someone_elses_notification(client, db, tenant_a, customer_a):
    other = make_user(db, tenant_a, UserRole.CUSTOMER, email="other@example.com")
    notification = notify(TenantScope(db, tenant_a.id), "promo", "Sale", "Hi", recipient_id=other.id)
    db.commit()

    response = client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers(customer_a))

    assert response.status_code == 404


def test_mark_all_read(client, db, tenant_a, admin_a):
    scope = TenantScope(db, tenant_a.id)
    for i in range(3):
        notify(scope, "new_order", f"Order {i}", "New order")
    db.commit()

    assert client.post("/api/v1/notifications/read-all", headers=auth_headers(admin_a)).status_code == 204

    body = client.get("/api/v1/notifications", headers=auth_headers(admin_a)).json()
    assert body["unread"] == 0


def test_send_message_through_gateway(client, tenant_a, admin_a, customer_a, gateway):
    response = client.post(
        "/api/v1/notifications/messages",
        json={"customer_id": customer_a.id, "channel": "sms", "body": "Your refill is due"},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 202
    assert response.json() == {"queued": True, "channel": "sms", "customer_id": customer_a.id}

    assert gateway == [{
        "tenant_id": tenant_a.id,
        "channel": "sms",
        "to": customer_a.phone,
        "body": "Your refill is due",
    }]

    logs = client.get("/api/v1/notifications/messages", headers=auth_headers(admin_a)).json()
    assert len(logs) == 1
    assert logs[0]["status"] == "sent"
    assert logs[0]["status_code"] == 202


def test_message_without_gateway_is_skipped(client, db, admin_a, customer_a):
    client.post(
        "/api/v1/notifications/messages",
        json={"customer_id": customer_a.id, "channel": "whatsapp", "body": "Hello"},
        headers=auth_headers(admin_a),
    )

    log = db.query(MessageLog).one()
    assert log.status == MessageStatus.SKIPPED
    assert log.error == "No gateway configured"


def test_gateway_failure_is_logged(db, tenant_a, customer_a, monkeypatch):
    monkeypatch.setattr(notifications_service.settings, "SMS_GATEWAY_URL", "https://sms.example.com/send")
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503, text="busy")))

    status = send_message(tenant_a.id, "sms", customer_a.phone, "Hi", customer_a.id, client=client)

    assert status == MessageStatus.FAILED
    log = db.query(MessageLog).one()
    assert log.status_code == 503
    assert log.error == "busy"


def test_message_needs_a_phone(client, db, tenant_a, admin_a):
    walk_in = make_user(db, tenant_a, UserRole.CUSTOMER, email="walkin@example.com", password=None)

    response = client.post(
        "/api/v1/notifications/messages",
        json={"customer_id": walk_in.id, "channel": "sms", "body": "Hello"},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 400


def test_customer_cannot_send_messages(client, customer_a):
    response = client.post(
        "/api/v1/notifications/messages",
        json={"customer_id": customer_a.id, "channel": "sms", "body": "Hello"},
        headers=auth_headers(customer_a),
    )

    assert response.status_code == 403


def test_digest_summarises_unread_admin_notifications(db, tenant_a, tenant_b, customer_a):
    scope = TenantScope(db, tenant_a.id)
    notify(scope, "new_order", "Order 1", "New order")
    notify(scope, "new_order", "Order 2", "New order")
    notify(scope, "out_of_stock", "Paracetamol", "Out of stock")
    notify(scope, "promo", "Sale", "Customer only", recipient_id=customer_a.id)
    db.commit()

    assert build_digests(db) == 1

    digest = db.query(Notification).filter(Notification.type == "digest").one()
    assert digest.tenant_id == tenant_a.id
    assert digest.data == {"counts": {"new_order": 2, "out_of_stock": 1}, "unread": 3}
    assert digest.message == "3 unread notifications: 2 new_order, 1 out_of_stock"


def test_digest_job_endpoint(client, db, tenant_a, super_admin, admin_a):
    notify(TenantScope(db, tenant_a.id), "new_order", "Order 1", "New order")
    db.commit()

    response = client.post("/api/v1/jobs/digest", headers=auth_headers(super_admin))
    assert response.json() == {"digests": 1}

    assert client.post("/api/v1/jobs/digest", headers=auth_headers(admin_a)).status_code == 403
