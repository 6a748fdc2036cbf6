from __future__ import annotations

import sys
from datetime import datetime, timezone
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
    TicketId,
)
from barback.domain.common.money import Money
from barback.domain.kitchen.entities import (
    RoutingPolicy,
    TicketStation,
    TicketStatus,
    TicketTransitionError,
    create_ticket,
    resolve_station,
)
from barback.domain.menu.entities import MenuItem, PosCategory
from barback.domain.order.entities import Order, OrderType, create_open_order, line_from_menu_item

NOW = datetime(2026, 10, 18, 21, 0, tzinfo=timezone.utc)


def _item(item_id: str, pos_category: PosCategory) -> MenuItem:
    return MenuItem(
        item_id=MenuItemId(item_id),
        organization_id=OrganizationId("org_001"),
        name=item_id,
        category="Bar" if pos_category == PosCategory.DRINKS else "Main Courses",
        pos_category=pos_category,
        price=Money(amount_cents=1200, currency="USD"),
        cost=Money.zero("USD"),
        preparation_time=4,
        allergens=("nuts",),
    )


def _order(*categories: PosCategory, order_type: OrderType = OrderType.DINE_IN) -> Order:
    lines = [
        line_from_menu_item(OrderLineId(f"orl_{index}"), _item(f"itm_{index}", category), 1)
        for index, category in enumerate(categories)
    ]
    return create_open_order(
        order_id=OrderId("ord_001"),
        organization_id=OrganizationId("org_001"),
        location_id=LocationId("loc_001"),
        order_number=1001,
        lines=lines,
        tax_rate=Decimal("0"),
        tip=Money.zero("USD"),
        now=NOW,
        order_type=order_type,
        table_number=7,
    )


def test_drinks_only_orders_route_to_the_bar() -> None:
    assert resolve_station(_order(PosCategory.DRINKS), RoutingPolicy.AUTO) == TicketStation.BAR
    assert (
        resolve_station(_order(PosCategory.DRINKS, PosCategory.FOOD), RoutingPolicy.AUTO)
        == TicketStation.KITCHEN
    )


def test_takeout_and_skip_produce_no_ticket() -> None:
    takeout = _order(PosCategory.FOOD, order_type=OrderType.TAKEOUT)

    assert resolve_station(takeout, RoutingPolicy.AUTO) is None
    assert resolve_station(_order(PosCategory.FOOD), RoutingPolicy.SKIP) is None
    assert resolve_station(takeout, RoutingPolicy.KITCHEN) == TicketStation.KITCHEN


def test_ticket_denormalizes_order_lines() -> None:
    ticket = create_ticket(TicketId("tkt_001"), 5001, _order(PosCategory.FOOD), TicketStation.KITCHEN)

    assert ticket.label == "K5001"
    assert ticket.status == TicketStatus.NEW
    assert ticket.table_number == 7
    assert ticket.items[0].allergens == ("nuts",)
    assert ticket.prep_time_total == 4


def test_ticket_cannot_move_backwards_or_leave_served() -> None:
    ticket = create_ticket(TicketId("tkt_001"), 5001, _order(PosCategory.FOOD), TicketStation.KITCHEN)
    ready = ticket.advance(TicketStatus.READY)

    with pytest.raises(TicketTransitionError):
        ready.advance(TicketStatus.PREPARING)

    served = ready.advance(TicketStatus.SERVED)
    assert not served.is_active
    with pytest.raises(TicketTransitionError):
        served.advance(TicketStatus.CANCELLED)


def test_auto_ticket_for_empty_tab_moves_to_bar_on_first_drink() -> None:
    ticket = create_ticket(TicketId("tkt_001"), 5001, _order(), TicketStation.KITCHEN)

    synced = ticket.sync_with(_order(PosCategory.DRINKS))

    assert synced.station == TicketStation.BAR
    assert synced.items[0].name == "itm_0"


def test_pinned_or_started_tickets_keep_their_station() -> None:
    pinned = create_ticket(
        TicketId("tkt_001"),
        5001,
        _order(),
        TicketStation.KITCHEN,
        routing=RoutingPolicy.KITCHEN,
    )
    started = create_ticket(TicketId("tkt_002"), 5002, _order(), TicketStation.KITCHEN).advance(
        TicketStatus.PREPARING
    )

    assert pinned.sync_with(_order(PosCategory.DRINKS)).station == TicketStation.KITCHEN
    assert started.sync_with(_order(PosCategory.DRINKS)).station == TicketStation.KITCHEN
