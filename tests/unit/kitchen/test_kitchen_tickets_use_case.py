from __future__ import annotations

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.api.container import Container, build_memory_container
from barback.application.use_cases.context import NO_TRACE
from barback.application.use_cases.errors import InvalidTicketTransitionError, ValidationError
from barback.application.use_cases.kitchen_tickets import (
    ListActiveTickets,
    TicketDispatcher,
    UpdateTicketStatus,
)
from barback.domain.common.ids import LocationId, MenuItemId, OrderId, OrderLineId
from barback.domain.common.money import Money
from barback.domain.kitchen.entities import KitchenTicket, TicketStatus
from barback.domain.order.entities import OrderStatus, create_open_order, line_from_menu_item
from barback.tools.seed import DEMO_ORGANIZATION_ID, seed_demo_data

NOW = datetime(2026, 10, 18, 19, 30, tzinfo=timezone.utc)


def _container() -> Container:
    container = build_memory_container()
    seed_demo_data(container, now=NOW)
    return container


def _dispatch(container: Container, order_id: str, item_id: str) -> KitchenTicket:
    item = container.menu.get_item(MenuItemId(item_id), DEMO_ORGANIZATION_ID)
    assert item is not None
    order = create_open_order(
        order_id=OrderId(order_id),
        organization_id=DEMO_ORGANIZATION_ID,
        location_id=LocationId("loc_main"),
        order_number=1001 if order_id.endswith("1") else 1002,
        lines=[line_from_menu_item(OrderLineId(f"orl_{order_id}"), item, 1)],
        tax_rate=Decimal("0.08875"),
        tip=Money.zero("USD"),
        now=NOW,
    )
    container.orders.add(order)
    ticket = TicketDispatcher(
        ticket_repository=container.tickets,
        sequence_repository=container.sequences,
    ).dispatch(order)
    assert ticket is not None
    return ticket


def _updater(container: Container) -> UpdateTicketStatus:
    return UpdateTicketStatus(
        ticket_repository=container.tickets,
        order_repository=container.orders,
        publisher=container.publisher,
    )


def test_ready_ticket_moves_lagging_order_forward() -> None:
    container = _container()
    ticket = _dispatch(container, "ord_1", "itm_burger")

    response = _updater(container).execute(
        DEMO_ORGANIZATION_ID, ticket.ticket_id, TicketStatus.READY, NO_TRACE
    )

    assert response.status == "READY"
    order = container.orders.get(OrderId("ord_1"), DEMO_ORGANIZATION_ID)
    assert order is not None
    assert order.status == OrderStatus.READY


def test_kds_cannot_cancel_tickets() -> None:
    container = _container()
    ticket = _dispatch(container, "ord_1", "itm_burger")

    with pytest.raises(InvalidTicketTransitionError):
        _updater(container).execute(
            DEMO_ORGANIZATION_ID, ticket.ticket_id, TicketStatus.CANCELLED, NO_TRACE
        )


def test_queue_filters_by_station() -> None:
    container = _container()
    food = _dispatch(container, "ord_1", "itm_burger")
    drink = _dispatch(container, "ord_2", "itm_margarita")
    queue = ListActiveTickets(ticket_repository=container.tickets)

    kitchen = queue.execute(DEMO_ORGANIZATION_ID, station="kitchen")
    everything = queue.execute(DEMO_ORGANIZATION_ID, station="all")

    assert [ticket.ticketId for ticket in kitchen.tickets] == [str(food.ticket_id)]
    assert {ticket.ticketId for ticket in everything.tickets} == {str(food.ticket_id), str(drink.ticket_id)}
    assert drink.label == "K5002"


def test_unknown_station_is_rejected() -> None:
    queue = ListActiveTickets(ticket_repository=_container().tickets)

    with pytest.raises(ValidationError):
        queue.execute(DEMO_ORGANIZATION_ID, station="patio")
