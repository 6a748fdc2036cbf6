from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.domain.cart.entities import Cart
from barback.domain.common.ids import CartId, MenuItemId, OrganizationId
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuItem, PosCategory


def _menu_item(item_id: str = "itm_001", price: str = "10.00", available: bool = True) -> MenuItem:
    return MenuItem(
        item_id=MenuItemId(item_id),
        organization_id=OrganizationId("org_001"),
        name=f"Item {item_id}",
        category="Main Courses",
        pos_category=PosCategory.FOOD,
        price=Money.from_decimal(price, "USD"),
        cost=Money.zero("USD"),
        preparation_time=5,
        available=available,
    )


def _cart() -> Cart:
    return Cart(cart_id=CartId("crt_001"), organization_id=OrganizationId("org_001"))


def test_identical_adds_merge_into_one_line() -> None:
    cart = _cart()
    item = _menu_item()

    assert cart.add_item(item, quantity=2, modifications=["no ice"], customizations={"size": "L"})
    assert cart.add_item(item, quantity=3, modifications=["no ice"], customizations={"size": "L"})

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 5
    assert cart.lines[0].subtotal == Money(amount_cents=5000, currency="USD")


def test_different_modifications_keep_separate_lines() -> None:
    cart = _cart()
    item = _menu_item()

    cart.add_item(item, modifications=["no ice"])
    cart.add_item(item, modifications=["extra lime"])
    cart.add_item(item, modifications=["no ice"], note="for the birthday")

    assert len(cart.lines) == 3


def test_customizations_merge_regardless_of_key_order() -> None:
    cart = _cart()
    item = _menu_item()

    cart.add_item(item, customizations={"a": "1", "b": "2"})
    cart.add_item(item, customizations={"b": "2", "a": "1"})

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2


def test_modification_order_keeps_lines_apart() -> None:
    cart = _cart()
    item = _menu_item()

    cart.add_item(item, modifications=["x", "y"])
    cart.add_item(item, modifications=["y", "x"])

    assert len(cart.lines) == 2
    assert [line.quantity for line in cart.lines] == [1, 1]


def test_unavailable_or_missing_items_are_not_added() -> None:
    cart = _cart()

    assert cart.add_item(None) is False
    assert cart.add_item(_menu_item(available=False)) is False
    assert cart.add_item(_menu_item(), quantity=0) is False
    assert cart.is_empty


def test_update_quantity_to_zero_removes_line() -> None:
    cart = _cart()
    cart.add_item(_menu_item())

    assert cart.update_quantity(0, 0) is True
    assert cart.is_empty


def test_out_of_range_index_is_a_no_op() -> None:
    cart = _cart()
    cart.add_item(_menu_item())

    assert cart.update_quantity(3, 2) is False
    assert cart.update_note(-1, "x") is False
    assert cart.remove_item(1) is False
    assert cart.lines[0].quantity == 1


def test_totals_add_tax_on_subtotal() -> None:
    cart = _cart()
    cart.add_item(_menu_item("itm_a", "10.00"), quantity=2)
    cart.add_item(_menu_item("itm_b", "6.00"))

    totals = cart.totals(Decimal("0.08875"), "USD")

    assert totals.subtotal == Money(amount_cents=2600, currency="USD")
    assert totals.tax == Money(amount_cents=231, currency="USD")
    assert totals.total == Money(amount_cents=2831, currency="USD")


def test_snapshot_is_independent_of_later_cart_changes() -> None:
    cart = _cart()
    cart.add_item(_menu_item(), customizations={"size": "L"})

    snapshot = cart.snapshot()
    cart.lines[0].customizations["size"] = "S"
    cart.clear()

    assert snapshot[0].customizations == {"size": "L"}
    assert cart.is_empty
