"""
Tests for staff and customer management
"""
from conftest import auth_headers, make_user

from storehub.models import UserRole


def test_admin_creates_staff(client, tenant_a, admin_a):
    response = client.post(
        "/api/v1/users",
        json={"email": "Pharmacist@CityPharma.example.com", "password": "counter-pass", "full_name": "Meena"},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "pharmacist@citypharma.example.com"
    assert body["role"] == "admin"
    assert body["tenant_id"] == tenant_a.id

    login = client.post(
        "/api/v1/auth/login",
        json={"email": body["email"], "password": "counter-pass", "tenant_id": tenant_a.id},
    )
    assert login.status_code == 200


def test_duplicate_staff_email(client, admin_a):
    response = client.post(
        "/api/v1/users",
        json={"email": admin_a.email, "password": "counter-pass"},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 409


def test_staff_list_is_per_tenant(client, admin_a, admin_b, customer_a):
    body = client.get("/api/v1/users", headers=auth_headers(admin_a)).json()

    assert [u["id"] for u in body["users"]] == [admin_a.id]


def test_admin_cannot_deactivate_self(client, admin_a):
    response = client.delete(f"/api/v1/users/{admin_a.id}", headers=auth_headers(admin_a))

    assert response.status_code == 400


def test_deactivated_staff_cannot_log_in(client, db, tenant_a, admin_a):
    colleague = make_user(db, tenant_a, UserRole.ADMIN, email="colleague@citypharma.example.com")

    assert client.delete(f"/api/v1/users/{colleague.id}", headers=auth_headers(admin_a)).status_code == 204

    login = client.post(
        "/api/v1/auth/login",
        json={"email": colleague.email, "password": "password123", "tenant_id": tenant_a.id},
    )
    assert login.status_code == 401


def test_customer_cannot_manage_staff(client, customer_a):
    assert client.get("/api/v1/users", headers=auth_headers(customer_a)).status_code == 403


def test_admin_registers_walk_in_customer(client, admin_a):
    response = client.post(
        "/api/v1/customers",
        json={"email": "walkin@example.com", "full_name": "Walk In", "phone": "+919800000009", "credit_limit": 1000},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "customer"
    assert body["credit_limit"] == 1000.0
    assert body["credit_balance"] == 0.0


def test_customer_search(client, db, tenant_a, admin_a, customer_a):
    make_user(db, tenant_a, UserRole.CUSTOMER, email="lata@example.com", full_name="Lata Mangesh")

    body = client.get("/api/v1/customers", params={"search": "ravi"}, headers=auth_headers(admin_a)).json()

    assert body["total"] == 1
    assert body["customers"][0]["id"] == customer_a.id


def test_customer_updates_own_record(client, customer_a):
    response = client.patch(
        "/api/v1/customers/me",
        json={"full_name": "Ravi K."},
        headers=auth_headers(customer_a),
    )

    assert response.status_code == 200
    assert response.json()["full_name"] == "Ravi K."
    assert client.get("/api/v1/customers/me", headers=auth_headers(customer_a)).json()["full_name"] == "Ravi K."


def test_customer_cannot_read_other_customer(client, db, tenant_a, customer_a):
    other = make_user(db, tenant_a, UserRole.CUSTOMER, email="other@example.com")

    response = client.get(f"/api/v1/customers/{other.id}", headers=auth_headers(customer_a))

    assert response.status_code == 404


def test_customer_cannot_raise_own_credit_limit(client, customer_a):
    response = client.patch(
        f"/api/v1/customers/{customer_a.id}",
        json={"credit_limit": 100000},
        headers=auth_headers(customer_a),
    )

    assert response.status_code == 403


def test_customer_stats_exclude_cancelled_orders(client, admin_a, customer_a, product_a):
    orders = []
    for quantity in (1, 3):
        orders.append(client.post(
            "/api/v1/orders",
            json={"items": [{"product_id": product_a.id, "quantity": quantity}], "delivery_type": "pickup"},
            headers=auth_headers(customer_a),
        ).json())
    client.post(f"/api/v1/orders/{orders[1]['id']}/cancel", json={}, headers=auth_headers(customer_a))

    response = client.get(f"/api/v1/customers/{customer_a.id}/stats", headers=auth_headers(admin_a))

    assert response.status_code == 200
    body = response.json()
    assert body["order_count"] == 1
    assert body["total_spent"] == 50.0
    assert body["last_order_at"] is not None
