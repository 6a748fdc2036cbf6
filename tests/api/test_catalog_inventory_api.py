from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient


def test_missing_organization_header_is_rejected(client: TestClient) -> None:
    response = client.get("/v1/menu", headers={"X-Organization-Id": ""})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_REQUEST"
    assert response.headers["X-Request-Id"]


def test_unknown_order_is_not_found(client: TestClient) -> None:
    response = client.get("/v1/orders/ord_missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ORDER_NOT_FOUND"


def test_menu_lists_available_items(client: TestClient) -> None:
    menu = client.get("/v1/menu").json()["data"]

    names = {item["itemId"] for item in menu["items"]}
    assert "itm_moscow_mule" in names
    assert "Signature Cocktails" in menu["categories"]

    drinks = client.get("/v1/menu", params={"category": "Desserts"}).json()["data"]["items"]
    assert [item["itemId"] for item in drinks] == ["itm_brownie"]


def test_menu_search_matches_names(client: TestClient) -> None:
    response = client.get("/v1/menu/search", params={"q": "margarita"})

    assert response.status_code == 200
    assert [item["itemId"] for item in response.json()["data"]] == ["itm_margarita"]


def test_created_menu_item_appears_then_removed_item_cannot_be_ordered(client: TestClient) -> None:
    created = client.post(
        "/v1/menu/items",
        json={"name": "Espresso Martini", "category": "Signature Cocktails", "price": "17.00"},
    )
    assert created.status_code == 201
    item = created.json()["data"]
    assert item["posCategory"] == "DRINKS"
    assert item["price"]["amountCents"] == 1700

    listed = {entry["itemId"] for entry in client.get("/v1/menu").json()["data"]["items"]}
    assert item["itemId"] in listed

    repriced = client.put(f"/v1/menu/items/{item['itemId']}/price", json={"price": "18.50"})
    assert repriced.json()["data"]["price"]["amountCents"] == 1850

    removed = client.delete(f"/v1/menu/items/{item['itemId']}")
    assert removed.json()["data"]["available"] is False

    cart_id = client.post("/v1/carts").json()["data"]["cartId"]
    added = client.post(f"/v1/carts/{cart_id}/items", json={"menuItemId": item["itemId"]})
    assert added.json()["data"]["applied"] is False
    assert added.json()["message"] == "Item not added"


def test_availability_toggle(client: TestClient) -> None:
    off = client.post("/v1/menu/items/itm_wings/availability")
    assert off.json()["data"]["available"] is False

    on = client.post("/v1/menu/items/itm_wings/availability", json={"available": True})
    assert on.json()["data"]["available"] is True


def test_adjusting_below_minimum_raises_low_stock_alert(client: TestClient) -> None:
    assert client.get("/v1/inventory/alerts", params={"refresh": True}).json()["data"]["alerts"] == []

    response = client.post(
        "/v1/inventory/items/VOD001/adjust",
        json={"newStock": "2", "notes": "shelf count"},
    )

    assert response.status_code == 200
    movement = response.json()["data"]
    assert movement["transaction"]["type"] == "ADJUSTMENT"
    assert Decimal(str(movement["transaction"]["previousStock"])) == Decimal("12")
    assert Decimal(str(movement["item"]["currentStock"])) == Decimal("2")

    alerts = client.get("/v1/inventory/alerts").json()["data"]["alerts"]
    assert [(alert["sku"], alert["type"], alert["severity"]) for alert in alerts] == [
        ("VOD001", "LOW_STOCK", "MEDIUM")
    ]

    low = client.get("/v1/inventory/items", params={"lowStock": True}).json()["data"]["items"]
    assert [item["sku"] for item in low] == ["VOD001"]


def test_restock_clears_alert_and_logs_transaction(client: TestClient) -> None:
    client.post("/v1/inventory/items/GIN001/waste", json={"quantity": "8", "notes": "broken"})
    assert client.get("/v1/inventory/alerts").json()["data"]["alerts"][0]["severity"] == "HIGH"

    restock = client.post(
        "/v1/inventory/items/GIN001/restock",
        json={"quantity": "6", "unitCost": "40.00"},
    )

    assert restock.status_code == 200
    assert restock.json()["data"]["item"]["costPerUnit"]["amountCents"] == 4000
    assert client.get("/v1/inventory/alerts").json()["data"]["alerts"] == []

    transactions = client.get("/v1/inventory/transactions", params={"sku": "GIN001"}).json()["data"][
        "transactions"
    ]
    assert {transaction["type"] for transaction in transactions} == {"WASTE", "RESTOCK"}


def test_duplicate_sku_conflicts(client: TestClient) -> None:
    response = client.post(
        "/v1/inventory/items",
        json={"sku": "VOD001", "name": "Vodka", "category": "Spirits", "unit": "bottles", "maxStock": "10"},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_SKU"


def test_unknown_sku_is_not_found(client: TestClient) -> None:
    response = client.post("/v1/inventory/items/NOPE/deduct", json={"quantity": "1"})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INVENTORY_ITEM_NOT_FOUND"


def test_inventory_analytics(client: TestClient) -> None:
    analytics = client.get("/v1/inventory/analytics").json()["data"]

    assert analytics["totalItems"] == 6
    assert analytics["lowStockItems"] == 0
    assert analytics["categories"] == 3


def test_tables_list_active_orders(client: TestClient) -> None:
    client.post("/v1/orders", json={"locationId": "loc_main", "tableId": "tbl_main_2"})

    tables = client.get("/v1/tables", params={"locationId": "loc_main"}).json()["data"]["tables"]

    assert len(tables) == 8
    by_id = {table["tableId"]: table for table in tables}
    assert len(by_id["tbl_main_2"]["activeOrders"]) == 1
    assert by_id["tbl_main_1"]["activeOrders"] == []


def test_duplicate_table_number_conflicts(client: TestClient) -> None:
    response = client.post("/v1/tables", json={"locationId": "loc_main", "number": 3})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_TABLE"


def test_health_and_metrics(client: TestClient) -> None:
    assert client.get("/health/live").json() == {"status": "ok"}
    ready = client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json()["backend"] == "memory"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "http_requests_total" in metrics.text
