"""Tests for Purchase API endpoints."""
from app.models.user import UserRole


def buy(client, headers, *lines, notes=None):
    payload = {"items": [{"product_id": pid, "quantity": qty} for pid, qty in lines]}
    if notes is not None:
        payload["notes"] = notes
    return client.post("/api/v1/purchases/", json=payload, headers=headers)


def stock_of(client, admin_headers, product_id):
    return client.get(f"/api/v1/products/{product_id}", headers=admin_headers).json()["available_quantity"]


def test_create_purchase_success(client, client_headers, admin_headers, make_product, receipt_task):
    """Product at 100.00 with 5 units, buy 3."""
    product = make_product(price="100.00", quantity=5, name="Widget", lot_code="LOT-W")

    response = buy(client, client_headers, (product.id, 3), notes="Leave at the door")

    assert response.status_code == 201
    data = response.json()
    assert data["total"] == "300.00"
    assert data["status"] == "completed"
    assert data["notes"] == "Leave at the door"
    assert data["invoice_number"].startswith("FAC-")
    assert data["user"]["email"] == "client.user@example.com"
    assert data["items"] == [
        {
            "product_id": product.id,
            "product_name": "Widget",
            "lot_code": "LOT-W",
            "quantity": 3,
            "unit_price": "100.00",
            "subtotal": "300.00",
            "product": {"id": product.id, "name": "Widget", "lot_code": "LOT-W"},
        }
    ]
    assert stock_of(client, admin_headers, product.id) == 2
    receipt_task.assert_called_once_with(data["id"])


def test_create_purchase_insufficient_stock(client, client_headers, admin_headers, make_product, receipt_task):
    product = make_product(quantity=2)

    response = buy(client, client_headers, (product.id, 5))

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["details"] == {"product_id": product.id, "available": 2, "requested": 5}
    assert "Insufficient stock" in body["detail"]
    assert stock_of(client, admin_headers, product.id) == 2
    receipt_task.assert_not_called()


def test_create_purchase_lines_exceeding_stock_together(client, client_headers, admin_headers, make_product):
    product = make_product(quantity=5)

    response = buy(client, client_headers, (product.id, 3), (product.id, 3))

    assert response.status_code == 409
    assert stock_of(client, admin_headers, product.id) == 5
    assert client.get("/api/v1/purchases/mine", headers=client_headers).json()["total"] == 0


def test_create_purchase_product_not_found(client, client_headers):
    response = buy(client, client_headers, (9999, 1))

    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"


def test_create_purchase_retired_product(client, client_headers, admin_headers, make_product):
    product = make_product(quantity=5)
    client.delete(f"/api/v1/products/{product.id}", headers=admin_headers)

    response = buy(client, client_headers, (product.id, 1))

    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_INACTIVE"


def test_create_purchase_empty_cart(client, client_headers):
    response = client.post("/api/v1/purchases/", json={"items": []}, headers=client_headers)

    assert response.status_code == 422


def test_create_purchase_requires_client_role(client, admin_headers, make_product):
    product = make_product()

    response = buy(client, admin_headers, (product.id, 1))

    assert response.status_code == 403


def test_multiple_purchases_deplete_stock(client, client_headers, make_product):
    product = make_product(price="10.00", quantity=5)

    assert buy(client, client_headers, (product.id, 3)).status_code == 201
    assert buy(client, client_headers, (product.id, 2)).status_code == 201
    assert buy(client, client_headers, (product.id, 1)).status_code == 409


def test_invoice_keeps_original_product_data(client, client_headers, admin_headers, make_product):
    product = make_product(price="25.00", quantity=5, name="Original", lot_code="LOT-A")
    purchase_id = buy(client, client_headers, (product.id, 2)).json()["id"]

    client.put(
        f"/api/v1/products/{product.id}",
        json={"name": "Renamed", "price": 40.00},
        headers=admin_headers,
    )

    response = client.get(f"/api/v1/purchases/{purchase_id}/invoice", headers=client_headers)

    assert response.status_code == 200
    item = response.json()["items"][0]
    assert item["product_name"] == "Original"
    assert item["unit_price"] == "25.00"
    assert item["subtotal"] == "50.00"
    assert item["product"]["name"] == "Renamed"


def test_invoice_of_another_user_is_not_found(client, client_headers, make_user, make_product):
    product = make_product()
    purchase_id = buy(client, client_headers, (product.id, 1)).json()["id"]
    other = make_user(name="Other Client", role=UserRole.CLIENT)

    response = client.get(
        f"/api/v1/purchases/{purchase_id}/invoice", headers={"X-User-Id": str(other.id)}
    )

    assert response.status_code == 404
    assert response.json()["code"] == "PURCHASE_NOT_FOUND"


def test_list_my_purchases(client, client_headers, make_user, make_product):
    product = make_product(price="1.00", quantity=100)
    other = make_user(name="Other Client", role=UserRole.CLIENT)
    for _ in range(12):
        buy(client, client_headers, (product.id, 1))
    buy(client, {"X-User-Id": str(other.id)}, (product.id, 1))

    response = client.get("/api/v1/purchases/mine?page=1&page_size=10", headers=client_headers)

    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 10
    assert data["total"] == 12
    assert data["total_pages"] == 2


def test_admin_lists_all_purchases_with_statistics(client, client_headers, admin_headers, make_user, make_product):
    product = make_product(price="12.50", quantity=100)
    other = make_user(name="Maria Lopez", role=UserRole.CLIENT)
    buy(client, client_headers, (product.id, 2))
    buy(client, {"X-User-Id": str(other.id)}, (product.id, 1))

    response = client.get("/api/v1/purchases/admin/all", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["statistics"] == {"total_sales": "37.50", "total_purchases": 2}

    response = client.get("/api/v1/purchases/admin/all?search=maria", headers=admin_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["user"]["name"] == "Maria Lopez"
    assert data["statistics"]["total_sales"] == "12.50"


def test_admin_listing_requires_admin(client, client_headers):
    response = client.get("/api/v1/purchases/admin/all", headers=client_headers)

    assert response.status_code == 403


def test_lot_code_is_frozen_once_purchased(client, client_headers, admin_headers, make_product):
    product = make_product(quantity=5, lot_code="LOT-SOLD")
    buy(client, client_headers, (product.id, 1))

    response = client.put(
        f"/api/v1/products/{product.id}",
        json={"lot_code": "LOT-CHANGED", "name": "Renamed"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "LOT_CODE_LOCKED"
    assert body["details"] == {"product_id": product.id, "lot_code": "LOT-SOLD"}
    current = client.get(f"/api/v1/products/{product.id}", headers=admin_headers).json()
    assert current["lot_code"] == "LOT-SOLD"
    assert current["name"] != "Renamed"


def test_purchased_product_accepts_same_lot_code(client, client_headers, admin_headers, make_product):
    product = make_product(quantity=5, lot_code="LOT-SOLD")
    buy(client, client_headers, (product.id, 1))

    response = client.put(
        f"/api/v1/products/{product.id}",
        json={"lot_code": "LOT-SOLD", "price": 12.00},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["price"] == "12.00"
