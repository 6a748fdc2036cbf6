from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def _stock(client: TestClient, sku: str) -> Decimal:
    return Decimal(str(client.get(f"/v1/inventory/items/{sku}").json()["data"]["currentStock"]))


def test_checkout_and_close_are_persisted(sql_client: TestClient) -> None:
    vodka_before = _stock(sql_client, "VOD001")

    cart_id = sql_client.post("/v1/carts").json()["data"]["cartId"]
    added = sql_client.post(
        f"/v1/carts/{cart_id}/items",
        json={"menuItemId": "itm_moscow_mule", "quantity": 2},
    )
    assert added.json()["data"]["applied"] is True

    checkout = sql_client.post(
        f"/v1/carts/{cart_id}/checkout",
        json={"locationId": "loc_main", "tableId": "tbl_main_5"},
    )
    assert checkout.status_code == 201
    order = checkout.json()["data"]["order"]
    assert checkout.json()["data"]["ticket"]["station"] == "BAR"

    close = sql_client.post(
        f"/v1/orders/{order['orderId']}/close",
        json={"payment": {"method": "CASH", "amount": "34.84", "tendered": "40.00"}},
    )
    assert close.status_code == 200
    closed = close.json()["data"]
    assert closed["order"]["status"] == "CLOSED"
    assert closed["payment"]["changeDue"]["amountCents"] == 516

    persisted = sql_client.get(f"/v1/orders/{order['orderId']}").json()["data"]
    assert persisted["status"] == "CLOSED"
    assert persisted["version"] == order["version"] + 2
    if vodka_before >= Decimal("0.16"):
        assert _stock(sql_client, "VOD001") == vodka_before - Decimal("0.16")

    payments = sql_client.get("/v1/payments", params={"orderId": order["orderId"]}).json()["data"]["payments"]
    assert [payment["status"] for payment in payments] == ["COMPLETED"]
    receipt = sql_client.get(f"/v1/payments/{payments[0]['paymentId']}/receipt").json()["data"]
    assert receipt["receiptNumber"] == closed["receipt"]["receiptNumber"]


def test_cart_lives_in_redis(sql_client: TestClient) -> None:
    cart_id = sql_client.post("/v1/carts").json()["data"]["cartId"]
    sql_client.post(f"/v1/carts/{cart_id}/items", json={"menuItemId": "itm_brownie"})

    cart = sql_client.get(f"/v1/carts/{cart_id}").json()["data"]

    assert cart["itemCount"] == 1
    assert cart["subtotal"]["amountCents"] == 900
