"""
Tests for categories, products and CSV import
"""
import pytest
from conftest import auth_headers, make_product

from storehub.models.catalog import Category, Product
from storehub.services.catalog import parse_product_row

STOREFRONT = {"Host": "citypharma.storehub.local"}

CSV = (
    "name,price,mrp,sku,brand,category,inventory_count,requires_rx\n"
    "Amoxicillin 250mg,85.50,90,AMX250,Cipla,Antibiotics,40,yes\n"
    ",12.00,,,,,,\n"
    "Cetirizine 10mg,abc,,,,Allergy,5,\n"
    "Azithromycin 500mg,120,,AZI500,,antibiotics,-1,\n"
    "ORS Sachet,20,,,,Hydration,100,no\n"
)


def import_csv(client, admin, content=CSV, filename="catalog.csv"):
    return client.post(
        "/api/v1/products/import",
        files={"file": (filename, content.encode(), "text/csv")},
        headers=auth_headers(admin),
    )


def test_create_and_list_categories(client, admin_a, tenant_a):
    response = client.post(
        "/api/v1/categories",
        json={"name": "Baby Care", "display_order": 2},
        headers=auth_headers(admin_a),
    )
    assert response.status_code == 201
    assert response.json()["tenant_id"] == tenant_a.id

    listed = client.get("/api/v1/categories", headers=STOREFRONT)
    assert listed.status_code == 200
    assert [c["name"] for c in listed.json()] == ["Baby Care"]


def test_duplicate_category_is_conflict(client, admin_a):
    client.post("/api/v1/categories", json={"name": "Vitamins"}, headers=auth_headers(admin_a))

    response = client.post("/api/v1/categories", json={"name": "Vitamins"}, headers=auth_headers(admin_a))

    assert response.status_code == 409


def test_same_category_name_in_two_tenants(client, admin_a, admin_b):
    first = client.post("/api/v1/categories", json={"name": "Fresh"}, headers=auth_headers(admin_a))
    second = client.post("/api/v1/categories", json={"name": "Fresh"}, headers=auth_headers(admin_b))

    assert first.status_code == 201
    assert second.status_code == 201


def test_customer_cannot_create_category(client, customer_a):
    response = client.post("/api/v1/categories", json={"name": "Vitamins"}, headers=auth_headers(customer_a))

    assert response.status_code == 403


def test_create_product(client, admin_a):
    response = client.post(
        "/api/v1/products",
        json={"name": "Crocin Advance", "price": "30.00", "inventory_count": 25},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["mrp"] == 30.0
    assert body["in_stock"] is True
    assert body["active"] is True


def test_product_with_foreign_category_rejected(client, db, tenant_b, admin_a):
    foreign = Category(tenant_id=tenant_b.id, name="Fruit")
    db.add(foreign)
    db.commit()

    response = client.post(
        "/api/v1/products",
        json={"name": "Apple", "price": "10.00", "category_id": foreign.id},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 400


def test_storefront_search(client, db, tenant_a):
    make_product(db, tenant_a, name="Dolo 650", brand="Micro Labs")
    make_product(db, tenant_a, name="Volini Gel", brand="Sun Pharma")

    response = client.get("/api/v1/products", params={"search": "micro"}, headers=STOREFRONT)

    assert [p["name"] for p in response.json()["products"]] == ["Dolo 650"]


def test_deactivated_product_leaves_storefront(client, admin_a, product_a):
    response = client.delete(f"/api/v1/products/{product_a.id}", headers=auth_headers(admin_a))
    assert response.status_code == 204

    assert client.get("/api/v1/products", headers=STOREFRONT).json()["total"] == 0
    assert client.get(f"/api/v1/products/{product_a.id}", headers=STOREFRONT).status_code == 404

    # Still visible to staff
    admin_view = client.get(f"/api/v1/products/{product_a.id}", headers=auth_headers(admin_a))
    assert admin_view.status_code == 200
    assert admin_view.json()["active"] is False


def test_update_product(client, admin_a, product_a):
    response = client.patch(
        f"/api/v1/products/{product_a.id}",
        json={"price": "55.00", "inventory_count": 0},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 200
    assert response.json()["price"] == 55.0
    assert response.json()["in_stock"] is False


def test_product_image_upload(client, tenant_a, admin_a, product_a):
    response = client.post(
        f"/api/v1/products/{product_a.id}/image",
        files={"file": ("box.jpg", b"\xff\xd8\xff\xe0fake", "image/jpeg")},
        headers=auth_headers(admin_a),
    )

    assert response.status_code == 200
    assert response.json()["image_url"].startswith(f"/uploads/{tenant_a.id}/products/")


def test_csv_import_reports_bad_rows(client, db, tenant_a, admin_a):
    response = import_csv(client, admin_a)

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 2
    assert body["failed"] == 3
    assert [e["row"] for e in body["errors"]] == [3, 4, 5]
    assert body["errors"][0]["error"] == "name is required"

    amoxicillin = db.query(Product).filter(Product.name == "Amoxicillin 250mg").one()
    assert amoxicillin.tenant_id == tenant_a.id
    assert amoxicillin.requires_rx is True
    assert amoxicillin.inventory_count == 40

    names = sorted(c.name for c in db.query(Category).filter(Category.tenant_id == tenant_a.id))
    assert names == ["Antibiotics", "Hydration"]


def test_csv_import_reuses_existing_category(client, db, tenant_a, admin_a):
    existing = Category(tenant_id=tenant_a.id, name="Hydration")
    db.add(existing)
    db.commit()

    import_csv(client, admin_a, "name,price,category\nORS Sachet,20,Hydration\n")

    product = db.query(Product).filter(Product.name == "ORS Sachet").one()
    assert product.category_id == existing.id
    assert db.query(Category).count() == 1


def test_csv_without_header_rejected(client, admin_a):
    response = import_csv(client, admin_a, "Dolo,30\n")

    assert response.status_code == 400
    assert response.json()["type"] == "upload_rejected"


def test_parse_product_row_defaults():
    data = parse_product_row({"name": " Dolo 650 ", "price": "30"})

    assert data["name"] == "Dolo 650"
    assert str(data["price"]) == "30.00"
    assert data["mrp"] == data["price"]
    assert data["inventory_count"] == 0
    assert data["requires_rx"] is False


def test_csv_import_rejects_non_finite_prices(client, db, tenant_a, admin_a):
    response = import_csv(
        client, admin_a,
        "name,price\nGood Row,10.00\nBad Row,NaN\nAnother,Infinity\nSignal,sNaN\n"
    )

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 1
    assert [e["row"] for e in body["errors"]] == [3, 4, 5]
    assert all("price is not a number" in e["error"] for e in body["errors"])
    assert [p.name for p in db.query(Product).filter(Product.tenant_id == tenant_a.id)] == ["Good Row"]


def test_parse_product_row_rejects_unrepresentable_price():
    with pytest.raises(ValueError, match="out of range"):
        parse_product_row({"name": "Huge", "price": "1e999"})
