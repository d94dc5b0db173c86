"""
Tests for the customer credit ledger and loyalty points
"""
from decimal import Decimal

import pytest
from conftest import auth_headers, make_product, make_user

from storehub.models import UserRole
from storehub.models.ledger import LedgerEntry, LoyaltyTransaction
from storehub.models.order import Order, OrderStatus
from storehub.models.user import User


def place_order(client, customer, product, quantity=2):
    response = client.post(
        "/api/v1/orders",
        json={"items": [{"product_id": product.id, "quantity": quantity}], "delivery_type": "pickup"},
        headers=auth_headers(customer),
    )
    assert response.status_code == 201
    return response.json()


def request_credit(client, customer, order_id, **fields):
    return client.post(
        "/api/v1/ledger/credit-requests",
        json={"order_id": order_id, **fields},
        headers=auth_headers(customer),
    )


def decide(client, admin, entry_id, approve, **fields):
    return client.post(
        f"/api/v1/ledger/{entry_id}/decision",
        json={"approve": approve, **fields},
        headers=auth_headers(admin),
    )


@pytest.fixture
def credit_customer(db, customer_a):
    customer_a.credit_limit = Decimal("500.00")
    db.commit()
    return customer_a


def test_customer_requests_credit(client, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)

    response = request_credit(client, credit_customer, order["id"], notes="Pay on the 1st")

    assert response.status_code == 201
    body = response.json()
    assert body["entry_type"] == "credit_purchase"
    assert body["status"] == "pending"
    assert body["amount"] == 100.0

    order = client.get(f"/api/v1/orders/{order['id']}", headers=auth_headers(credit_customer)).json()
    assert order["payment_status"] == "credit_requested"


def test_duplicate_pending_request_is_conflict(client, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    request_credit(client, credit_customer, order["id"])

    response = request_credit(client, credit_customer, order["id"])

    assert response.status_code == 409


def test_request_over_limit_is_rejected(client, db, credit_customer, tenant_a):
    expensive = make_product(db, tenant_a, name="Glucometer", price="400.00")
    order = place_order(client, credit_customer, expensive, quantity=2)

    response = request_credit(client, credit_customer, order["id"])

    assert response.status_code == 400
    assert response.json()["type"] == "credit_limit_exceeded"


def test_credit_for_someone_elses_order_is_not_found(client, db, tenant_a, credit_customer, product_a):
    other = make_user(db, tenant_a, UserRole.CUSTOMER, email="other@example.com")
    order = place_order(client, other, product_a)

    assert request_credit(client, credit_customer, order["id"]).status_code == 404


def test_admin_approves_credit(client, db, admin_a, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()

    pending = client.get("/api/v1/ledger/pending", headers=auth_headers(admin_a)).json()
    assert [e["id"] for e in pending] == [entry["id"]]

    response = decide(client, admin_a, entry["id"], True)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "approved"
    assert body["balance"] == 100.0
    assert body["decided_by"] == admin_a.id

    db.expire_all()
    assert db.get(User, credit_customer.id).credit_balance == Decimal("100.00")
    assert client.get("/api/v1/ledger/pending", headers=auth_headers(admin_a)).json() == []


def test_admin_rejects_credit(client, db, admin_a, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()

    response = decide(client, admin_a, entry["id"], False, notes="Outstanding dues")

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"

    db.expire_all()
    assert db.get(User, credit_customer.id).credit_balance == Decimal("0.00")

    order = client.get(f"/api/v1/orders/{order['id']}", headers=auth_headers(admin_a)).json()
    assert order["payment_status"] == "credit_rejected"


def test_decided_request_cannot_be_decided_again(client, admin_a, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()
    decide(client, admin_a, entry["id"], True)

    assert decide(client, admin_a, entry["id"], False).status_code == 409


def test_customer_cannot_decide(client, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()

    assert decide(client, credit_customer, entry["id"], True).status_code == 403


def test_payment_reduces_balance_but_not_below_zero(client, db, admin_a, credit_customer):
    credit_customer.credit_balance = Decimal("120.00")
    db.commit()

    first = client.post(
        "/api/v1/ledger/payments",
        json={"customer_id": credit_customer.id, "amount": "100.00", "payment_reference": "UPI-123"},
        headers=auth_headers(admin_a),
    )
    assert first.status_code == 201
    assert first.json()["balance"] == 20.0

    second = client.post(
        "/api/v1/ledger/payments",
        json={"customer_id": credit_customer.id, "amount": "50.00"},
        headers=auth_headers(admin_a),
    )
    assert second.json()["balance"] == 0.0

    db.expire_all()
    assert db.get(User, credit_customer.id).credit_balance == Decimal("0.00")


def test_customer_sees_only_own_ledger(client, db, tenant_a, admin_a, credit_customer):
    other = make_user(db, tenant_a, UserRole.CUSTOMER, email="other@example.com")

    own = client.get(f"/api/v1/ledger/customers/{credit_customer.id}", headers=auth_headers(credit_customer))
    assert own.status_code == 200
    assert own.json()["credit_limit"] == 500.0

    response = client.get(f"/api/v1/ledger/customers/{other.id}", headers=auth_headers(credit_customer))
    assert response.status_code == 404

    assert client.get(f"/api/v1/ledger/customers/{other.id}", headers=auth_headers(admin_a)).status_code == 200


def test_loyalty_points_earned_on_pickup(client, db, tenant_a, admin_a, customer_a):
    product = make_product(db, tenant_a, name="Vitamin D3", price="250.00")
    order = place_order(client, customer_a, product, quantity=2)

    for status in ("accepted", "ready_for_pickup"):
        client.patch(
            f"/api/v1/orders/{order['id']}/status",
            json={"status": status},
            headers=auth_headers(admin_a),
        )

    history = client.get(f"/api/v1/loyalty/customers/{customer_a.id}", headers=auth_headers(customer_a))

    assert history.status_code == 200
    body = history.json()
    assert body["loyalty_points"] == 5
    assert body["transactions"][0]["transaction_type"] == "earned"
    assert body["transactions"][0]["purchase_amount"] == 500.0
    assert body["transactions"][0]["order_id"] == order["id"]


def test_small_orders_earn_nothing(client, db, admin_a, customer_a, product_a):
    order = place_order(client, customer_a, product_a, quantity=1)
    client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "accepted"}, headers=auth_headers(admin_a))
    client.patch(
        f"/api/v1/orders/{order['id']}/status",
        json={"status": "ready_for_pickup"},
        headers=auth_headers(admin_a),
    )

    assert db.query(LoyaltyTransaction).count() == 0


def test_customer_redeems_points(client, db, customer_a):
    customer_a.loyalty_points = 12
    db.commit()

    response = client.post("/api/v1/loyalty/redeem", json={"points": 10}, headers=auth_headers(customer_a))

    assert response.status_code == 201
    assert response.json()["transaction_type"] == "redeemed"

    db.expire_all()
    assert db.get(User, customer_a.id).loyalty_points == 2


def test_redeeming_more_than_available(client, db, customer_a):
    customer_a.loyalty_points = 3
    db.commit()

    response = client.post("/api/v1/loyalty/redeem", json={"points": 4}, headers=auth_headers(customer_a))

    assert response.status_code == 400
    assert "Insufficient loyalty points" in response.json()["error"]


def test_admin_redeems_for_customer(client, db, admin_a, customer_a):
    customer_a.loyalty_points = 20
    db.commit()

    missing = client.post("/api/v1/loyalty/redeem", json={"points": 5}, headers=auth_headers(admin_a))
    assert missing.status_code == 400

    response = client.post(
        "/api/v1/loyalty/redeem",
        json={"points": 5, "customer_id": customer_a.id, "description": "Counter discount"},
        headers=auth_headers(admin_a),
    )
    assert response.status_code == 201
    assert response.json()["description"] == "Counter discount"


def test_cancelling_order_rejects_pending_credit(client, db, admin_a, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()

    cancelled = client.post(f"/api/v1/orders/{order['id']}/cancel", json={}, headers=auth_headers(credit_customer))
    assert cancelled.status_code == 200
    assert cancelled.json()["payment_status"] == "credit_rejected"

    assert decide(client, admin_a, entry["id"], True).status_code == 409
    assert client.get("/api/v1/ledger/pending", headers=auth_headers(admin_a)).json() == []

    db.expire_all()
    assert db.get(LedgerEntry, entry["id"]).status.value == "rejected"
    assert db.get(User, credit_customer.id).credit_balance == Decimal("0.00")


def test_approving_credit_of_cancelled_order_is_conflict(client, db, admin_a, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()

    # Order closed without going through the lifecycle, request still pending
    db.get(Order, order["id"]).status = OrderStatus.CANCELLED
    db.commit()

    response = decide(client, admin_a, entry["id"], True)

    assert response.status_code == 409
    assert "cancelled order" in response.json()["error"]
    db.expire_all()
    assert db.get(User, credit_customer.id).credit_balance == Decimal("0.00")


def test_cancelling_order_reverses_approved_credit(client, db, admin_a, credit_customer, product_a):
    order = place_order(client, credit_customer, product_a)
    entry = request_credit(client, credit_customer, order["id"]).json()
    decide(client, admin_a, entry["id"], True)

    response = client.patch(
        f"/api/v1/orders/{order['id']}/status",
        json={"status": "cancelled", "notes": "Out of delivery range"},
        headers=auth_headers(admin_a),
    )
    assert response.status_code == 200

    ledger = client.get(f"/api/v1/ledger/customers/{credit_customer.id}", headers=auth_headers(admin_a)).json()
    assert ledger["credit_balance"] == 0.0
    reversals = [e for e in ledger["entries"] if e["entry_type"] == "credit_reversal"]
    assert len(reversals) == 1
    assert reversals[0]["amount"] == 100.0
    assert reversals[0]["balance"] == 0.0
    assert reversals[0]["order_id"] == order["id"]

    db.expire_all()
    assert db.get(User, credit_customer.id).credit_balance == Decimal("0.00")
