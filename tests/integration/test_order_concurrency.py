from __future__ import annotations

import concurrent.futures
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from barback.application.ports.repositories import ORDER_NUMBER_SEQUENCE, OptimisticConcurrencyError
from barback.domain.common.ids import LocationId, MenuItemId, OrderId, OrderLineId
from barback.domain.common.money import Money
from barback.domain.order.entities import OrderStatus, create_open_order, line_from_menu_item
from barback.infrastructure.db.repositories.menu_repo import SqlAlchemyMenuRepository
from barback.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from barback.infrastructure.db.repositories.sequence_repo import SqlAlchemySequenceRepository
from barback.tools.seed import DEMO_ORGANIZATION_ID

pytestmark = pytest.mark.integration


def test_status_update_applies_once_under_race() -> None:
    repository = SqlAlchemyOrderRepository()
    wings = SqlAlchemyMenuRepository().get_item(MenuItemId("itm_wings"), DEMO_ORGANIZATION_ID)
    assert wings is not None
    order = create_open_order(
        order_id=OrderId(f"ord_{uuid4().hex[:12]}"),
        organization_id=DEMO_ORGANIZATION_ID,
        location_id=LocationId("loc_main"),
        order_number=SqlAlchemySequenceRepository().next_value(ORDER_NUMBER_SEQUENCE),
        lines=[line_from_menu_item(OrderLineId(f"orl_{uuid4().hex[:12]}"), wings, 1)],
        tax_rate=Decimal("0.08875"),
        tip=Money.zero("USD"),
        now=datetime.now(timezone.utc),
    )
    repository.add(order)

    def _prepare_once() -> str:
        try:
            updated = repository.update_with_version(
                order.transition_to(OrderStatus.PREPARING),
                expected_version=1,
            )
            return updated.status.value
        except OptimisticConcurrencyError:
            return "CONFLICT"

    with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(lambda _: _prepare_once(), [0, 1]))

    assert sorted(results) == ["CONFLICT", "PREPARING"]

    current = repository.get(order.order_id, DEMO_ORGANIZATION_ID)
    assert current is not None
    assert current.status == OrderStatus.PREPARING
    assert current.version == 2


def test_order_numbers_are_unique_across_threads() -> None:
    sequences = SqlAlchemySequenceRepository()

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
        values = list(executor.map(lambda _: sequences.next_value(ORDER_NUMBER_SEQUENCE), range(40)))

    assert len(set(values)) == 40
