"""
Integration tests for tenant isolation

1. Every request resolves to exactly one tenant
2. Bound actors can never reach another tenant, whatever they send
3. Rows of another tenant addressed by id alone are forbidden
4. Super admins may act on any tenant they name
"""
from conftest import auth_headers, make_product, make_tenant, make_user

from storehub.models import TenantStatus, UserRole


def test_admin_cannot_read_other_tenant_product_by_naming_it(client, tenant_a, admin_b, product_a):
    """
    Admin of tenant B names tenant A explicitly: rejected as a mismatch
    """
    response = client.get(
        f"/api/v1/products/{product_a.id}",
        params={"tenant_id": tenant_a.id},
        headers=auth_headers(admin_b),
    )

    assert response.status_code == 403
    assert response.json()["type"] == "tenant_mismatch"


def test_admin_cannot_read_other_tenant_product_through_path(client, tenant_a, admin_b, product_a):
    response = client.get(
        f"/api/v1/tenants/{tenant_a.id}/products/{product_a.id}",
        headers=auth_headers(admin_b),
    )

    assert response.status_code == 403


def test_foreign_product_id_alone_is_forbidden(client, admin_b, product_a):
    """
    Admin of tenant B asks for A's product by id only: the row belongs to
    another tenant, so 403
    """
    response = client.get(f"/api/v1/products/{product_a.id}", headers=auth_headers(admin_b))

    assert response.status_code == 403
    assert response.json()["type"] == "tenant_isolation_error"


def test_foreign_rows_cannot_be_modified(client, tenant_a, admin_b, product_a):
    response = client.patch(
        f"/api/v1/products/{product_a.id}",
        json={"price": "1.00"},
        headers=auth_headers(admin_b),
    )

    assert response.status_code == 403
    assert client.delete(f"/api/v1/products/{product_a.id}", headers=auth_headers(admin_b)).status_code == 403


def test_foreign_order_is_forbidden(client, admin_b, customer_a, product_a):
    order = client.post(
        "/api/v1/orders",
        json={"items": [{"product_id": product_a.id, "quantity": 1}], "delivery_type": "pickup"},
        headers=auth_headers(customer_a),
    ).json()

    assert client.get(f"/api/v1/orders/{order['id']}", headers=auth_headers(admin_b)).status_code == 403
    response = client.patch(
        f"/api/v1/orders/{order['id']}/status",
        json={"status": "accepted"},
        headers=auth_headers(admin_b),
    )
    assert response.status_code == 403


def test_unknown_product_id_is_not_found(client, admin_b):
    response = client.get("/api/v1/products/no-such-product", headers=auth_headers(admin_b))

    assert response.status_code == 404
    assert response.json()["type"] == "not_found"


def test_super_admin_reads_product_of_named_tenant(client, tenant_a, super_admin, product_a):
    response = client.get(
        f"/api/v1/products/{product_a.id}",
        params={"tenant_id": tenant_a.id},
        headers=auth_headers(super_admin),
    )

    assert response.status_code == 200
    assert response.json()["id"] == product_a.id
    assert response.json()["tenant_id"] == tenant_a.id


def test_super_admin_without_tenant_is_rejected(client, super_admin, product_a):
    response = client.get(f"/api/v1/products/{product_a.id}", headers=auth_headers(super_admin))

    assert response.status_code == 400
    assert response.json()["type"] == "tenant_required"


def test_anonymous_request_without_tenant_is_rejected(client, product_a):
    response = client.get("/api/v1/products")

    assert response.status_code == 400
    assert response.json()["type"] == "tenant_required"


def test_subdomain_resolves_tenant_for_anonymous_storefront(client, tenant_a, product_a):
    response = client.get("/api/v1/products", headers={"Host": "citypharma.storehub.local"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["products"][0]["id"] == product_a.id


def test_conflicting_signals_are_rejected(client, tenant_a, tenant_b):
    response = client.get(
        f"/api/v1/tenants/{tenant_a.id}/products",
        params={"tenant_id": tenant_b.id},
    )

    assert response.status_code == 400
    assert response.json()["type"] == "tenant_conflict"


def test_agreeing_signals_are_accepted(client, tenant_a, product_a):
    response = client.get(
        f"/api/v1/tenants/{tenant_a.id}/products",
        params={"tenant_id": tenant_a.id},
        headers={"Host": "citypharma.storehub.local"},
    )

    assert response.status_code == 200


def test_unknown_tenant_id_is_not_found(client):
    response = client.get("/api/v1/products", params={"tenant_id": "does-not-exist"})

    assert response.status_code == 404


def test_unknown_subdomain_carries_no_tenant(client, tenant_a):
    response = client.get("/api/v1/products", headers={"Host": "nowhere.storehub.local"})

    assert response.status_code == 400
    assert response.json()["type"] == "tenant_required"


def test_reserved_subdomain_carries_no_tenant(client, tenant_a):
    response = client.get("/api/v1/products", headers={"Host": "www.storehub.local"})

    assert response.status_code == 400


def test_suspended_tenant_is_inaccessible_to_its_admin(client, db, tenant_a, admin_a):
    tenant_a.status = TenantStatus.SUSPENDED
    db.commit()

    response = client.get("/api/v1/products", headers=auth_headers(admin_a))

    assert response.status_code == 403
    assert response.json()["type"] == "tenant_inactive"


def test_pending_tenant_storefront_is_closed(client, db):
    make_tenant(db, "newshop", status=TenantStatus.PENDING)

    response = client.get("/api/v1/products", headers={"Host": "newshop.storehub.local"})

    assert response.status_code == 403


def test_super_admin_reaches_suspended_tenant(client, db, tenant_a, super_admin):
    tenant_a.status = TenantStatus.SUSPENDED
    db.commit()

    response = client.get(f"/api/v1/tenants/{tenant_a.id}", headers=auth_headers(super_admin))

    assert response.status_code == 200
    assert response.json()["status"] == "suspended"


def test_customer_token_bound_to_its_tenant(client, tenant_a, tenant_b, customer_a):
    """
    A customer of A sending B's subdomain is a mismatch, not a switch
    """
    response = client.get(
        "/api/v1/orders",
        headers=auth_headers(customer_a, Host="greengrocer.storehub.local"),
    )

    assert response.status_code == 403
    assert response.json()["type"] == "tenant_mismatch"


def test_body_tenant_id_is_checked(client, tenant_a, tenant_b, admin_a):
    response = client.post(
        "/api/v1/categories",
        json={"name": "Vitamins", "tenant_id": tenant_b.id},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 403


def test_listings_only_contain_own_tenant_rows(client, db, tenant_a, tenant_b, admin_a):
    make_product(db, tenant_a, name="Cough Syrup")
    make_product(db, tenant_b, name="Apples")

    response = client.get("/api/v1/products", headers=auth_headers(admin_a))

    assert response.status_code == 200
    names = [product["name"] for product in response.json()["products"]]
    assert names == ["Cough Syrup"]


def test_same_email_may_exist_in_two_tenants(client, db, tenant_a, tenant_b):
    make_user(db, tenant_a, UserRole.CUSTOMER, email="meera@example.com")
    make_user(db, tenant_b, UserRole.CUSTOMER, email="meera@example.com")

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "meera@example.com", "password": "password123", "subdomain": "greengrocer"},
    )

    assert response.status_code == 200
    assert response.json()["tenant_id"] == tenant_b.id
