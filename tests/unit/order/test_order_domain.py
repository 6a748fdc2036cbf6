from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.domain.common.ids import (
    LocationId,
    MenuItemId,
    OrderId,
    OrderLineId,
    OrganizationId,
)
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuItem, PosCategory
from barback.domain.order.entities import (
    Order,
    OrderLine,
    OrderStatus,
    OrderTransitionError,
    PaymentStatus,
    create_open_order,
    line_from_menu_item,
)
from barback.domain.payment.entities import PaymentMethod

NOW = datetime(2026, 10, 18, 18, 0, tzinfo=timezone.utc)


def _menu_item(item_id: str, price: str, prep_minutes: int) -> MenuItem:
    return MenuItem(
        item_id=MenuItemId(item_id),
        organization_id=OrganizationId("org_001"),
        name=item_id,
        category="Main Courses",
        pos_category=PosCategory.FOOD,
        price=Money.from_decimal(price, "USD"),
        cost=Money.zero("USD"),
        preparation_time=prep_minutes,
    )


def _order(tip: str = "3.00") -> Order:
    lines = [
        line_from_menu_item(OrderLineId("orl_1"), _menu_item("itm_a", "10.00", 5), 2),
        line_from_menu_item(OrderLineId("orl_2"), _menu_item("itm_b", "6.00", 10), 1),
    ]
    return create_open_order(
        order_id=OrderId("ord_001"),
        organization_id=OrganizationId("org_001"),
        location_id=LocationId("loc_001"),
        order_number=1001,
        lines=lines,
        tax_rate=Decimal("0.08875"),
        tip=Money.from_decimal(tip, "USD"),
        now=NOW,
    )


def test_open_order_totals_and_ready_estimate() -> None:
    order = _order()

    assert order.subtotal.to_decimal() == Decimal("26.00")
    assert order.tax.to_decimal() == Decimal("2.31")
    assert order.total.to_decimal() == Decimal("31.31")
    assert order.estimated_ready_at == NOW + timedelta(minutes=20)
    assert order.status == OrderStatus.OPEN
    assert order.payment_status == PaymentStatus.PENDING


def test_line_total_must_match_quantity() -> None:
    with pytest.raises(ValueError):
        OrderLine(
            line_id=OrderLineId("orl_1"),
            item_id=MenuItemId("itm_a"),
            name="A",
            quantity=2,
            unit_price=Money(amount_cents=100, currency="USD"),
            line_total=Money(amount_cents=100, currency="USD"),
        )


def test_status_moves_forward_and_can_skip_steps() -> None:
    order = _order()

    preparing = order.transition_to(OrderStatus.PREPARING)
    served = preparing.transition_to(OrderStatus.SERVED)

    assert served.status == OrderStatus.SERVED
    with pytest.raises(OrderTransitionError):
        served.transition_to(OrderStatus.PREPARING)


def test_close_is_only_reachable_through_settlement() -> None:
    order = _order()

    with pytest.raises(OrderTransitionError):
        order.transition_to(OrderStatus.CLOSED)

    closed = order.close(NOW, PaymentMethod.CASH)
    assert closed.status == OrderStatus.CLOSED
    assert closed.payment_status == PaymentStatus.COMPLETED
    assert closed.closed_at == NOW
    with pytest.raises(OrderTransitionError):
        closed.transition_to(OrderStatus.CANCELLED)


def test_cancel_allowed_after_ready() -> None:
    ready = _order().transition_to(OrderStatus.READY)

    assert ready.transition_to(OrderStatus.CANCELLED).status == OrderStatus.CANCELLED


def test_add_line_recomputes_totals_and_is_blocked_once_ready() -> None:
    order = _order(tip="0")
    extra = line_from_menu_item(OrderLineId("orl_3"), _menu_item("itm_c", "4.00", 2), 1)

    updated = order.add_line(extra)

    assert updated.subtotal == Money(amount_cents=3000, currency="USD")
    assert updated.estimated_ready_at == NOW + timedelta(minutes=22)
    with pytest.raises(OrderTransitionError):
        order.transition_to(OrderStatus.READY).add_line(extra)


def test_final_totals_apply_new_tax_and_tip() -> None:
    order = _order(tip="0").with_final_totals(Decimal("0.10"), Money.from_decimal("5.00", "USD"))

    assert order.tax == Money(amount_cents=260, currency="USD")
    assert order.total == Money(amount_cents=3360, currency="USD")
