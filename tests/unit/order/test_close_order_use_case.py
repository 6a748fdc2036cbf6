from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.api.container import Container, build_memory_container
from barback.application.dto.requests import CloseOrderRequest, PaymentRequest
from barback.application.ports.repositories import ORDER_NUMBER_SEQUENCE
from barback.application.use_cases.close_order import CloseOrder, recipe_movements
from barback.application.use_cases.context import NO_TRACE
from barback.application.use_cases.errors import InvalidOrderTransitionError, OrderConflictError
from barback.application.use_cases.inventory_ledger import RecomputeAlerts
from barback.application.use_cases.kitchen_tickets import TicketDispatcher, UpdateTicketStatus
from barback.application.use_cases.process_payment import ProcessPayment
from barback.domain.common.ids import LocationId, MenuItemId, OrderId, OrderLineId, Sku
from barback.domain.common.money import Money
from barback.domain.kitchen.entities import TicketStatus
from barback.domain.order.entities import (
    Order,
    OrderStatus,
    PaymentStatus,
    create_open_order,
    line_from_menu_item,
)
from barback.domain.payment.entities import MobileWallet, PaymentCard, PaymentMethod, PaymentResult
from barback.tools.seed import DEMO_ORGANIZATION_ID, seed_demo_data

NOW = datetime(2026, 10, 18, 21, 0, tzinfo=timezone.utc)


class RecordingGateway:
    def __init__(self) -> None:
        self.refunded: list[str] = []

    def _approved(self, transaction_id: str) -> PaymentResult:
        return PaymentResult(
            success=True,
            payment_method="test",
            timestamp=datetime.now(timezone.utc),
            processing_time_ms=5,
            transaction_id=transaction_id,
        )

    async def charge_card(self, amount: Money, card: PaymentCard) -> PaymentResult:
        return self._approved("TXN_card")

    async def charge_contactless(self, amount: Money) -> PaymentResult:
        return self._approved("TXN_tap")

    async def charge_mobile(self, amount: Money, wallet: MobileWallet) -> PaymentResult:
        return self._approved("TXN_mobile")

    async def charge_split_leg(self, amount: Money, card: PaymentCard | None) -> PaymentResult:
        return self._approved("TXN_leg")

    async def refund(self, transaction_id: str, amount: Money, reason: str | None) -> PaymentResult:
        self.refunded.append(transaction_id)
        return self._approved(f"REF_{transaction_id}")


class FailingSettlementRepository:
    def __init__(self) -> None:
        self.calls = 0

    def settle(self, order, expected_version, payment, movements, now):
        self.calls += 1
        raise RuntimeError("database unavailable")


def _seeded(gateway: RecordingGateway) -> Container:
    container = build_memory_container(gateway=gateway)
    seed_demo_data(container, now=NOW)
    return container


def _open_mule_order(container: Container, quantity: int = 2) -> Order:
    mule = container.menu.get_item(MenuItemId("itm_moscow_mule"), DEMO_ORGANIZATION_ID)
    assert mule is not None
    order = create_open_order(
        order_id=OrderId("ord_test"),
        organization_id=DEMO_ORGANIZATION_ID,
        location_id=LocationId("loc_main"),
        order_number=container.sequences.next_value(ORDER_NUMBER_SEQUENCE),
        lines=[line_from_menu_item(OrderLineId("orl_test"), mule, quantity)],
        tax_rate=Decimal("0.08875"),
        tip=Money.zero("USD"),
        now=NOW,
    )
    container.orders.add(order)
    return order


def _close_use_case(container: Container, settlement=None) -> CloseOrder:
    return CloseOrder(
        order_repository=container.orders,
        payment_repository=container.payments,
        ticket_repository=container.tickets,
        sequence_repository=container.sequences,
        settlement_repository=settlement or container.settlement,
        processor=ProcessPayment(container.gateway),
        recompute_alerts=RecomputeAlerts(
            inventory_repository=container.inventory,
            alert_repository=container.alerts,
            publisher=container.publisher,
        ),
        publisher=container.publisher,
    )


def _tap(amount: str) -> CloseOrderRequest:
    return CloseOrderRequest(payment=PaymentRequest(method=PaymentMethod.CONTACTLESS, amount=Decimal(amount)))


def test_recipe_movements_scale_by_quantity() -> None:
    container = _seeded(RecordingGateway())
    order = _open_mule_order(container, quantity=3)

    movements = {movement.sku: movement.quantity for movement in recipe_movements(order)}

    assert movements == {
        Sku("VOD001"): Decimal("0.24"),
        Sku("MIX001"): Decimal("3"),
        Sku("PRO001"): Decimal("1.5"),
    }


def test_failed_settlement_refunds_capture_and_reraises() -> None:
    gateway = RecordingGateway()
    container = _seeded(gateway)
    order = _open_mule_order(container)
    settlement = FailingSettlementRepository()

    with pytest.raises(RuntimeError, match="database unavailable"):
        asyncio.run(
            _close_use_case(container, settlement).execute(
                DEMO_ORGANIZATION_ID, order.order_id, _tap("34.84"), NO_TRACE
            )
        )

    assert settlement.calls == 1
    assert gateway.refunded == ["TXN_tap"]

    stored = container.orders.get(order.order_id, DEMO_ORGANIZATION_ID)
    assert stored is not None
    assert stored.status == OrderStatus.OPEN
    assert stored.payment_status == PaymentStatus.PENDING
    assert container.payments.list_payments(DEMO_ORGANIZATION_ID, order.order_id, None) == []
    vodka = container.inventory.get(Sku("VOD001"), DEMO_ORGANIZATION_ID)
    assert vodka is not None
    assert vodka.current_stock == Decimal("12")


def test_successful_close_deducts_and_numbers_receipt() -> None:
    gateway = RecordingGateway()
    container = _seeded(gateway)
    order = _open_mule_order(container)

    result = asyncio.run(
        _close_use_case(container).execute(DEMO_ORGANIZATION_ID, order.order_id, _tap("34.84"), NO_TRACE)
    )

    assert result.order.status == "CLOSED"
    assert result.payment.transactionId == "TXN_tap"
    assert result.receipt.receiptNumber == "R10001"
    assert gateway.refunded == []
    vodka = container.inventory.get(Sku("VOD001"), DEMO_ORGANIZATION_ID)
    assert vodka is not None
    assert vodka.current_stock == Decimal("11.84")


def test_closed_order_cannot_be_closed_again() -> None:
    container = _seeded(RecordingGateway())
    order = _open_mule_order(container)
    use_case = _close_use_case(container)
    asyncio.run(use_case.execute(DEMO_ORGANIZATION_ID, order.order_id, _tap("34.84"), NO_TRACE))

    with pytest.raises(InvalidOrderTransitionError):
        asyncio.run(use_case.execute(DEMO_ORGANIZATION_ID, order.order_id, _tap("34.84"), NO_TRACE))


def test_sequence_values_are_unique_under_concurrency() -> None:
    container = build_memory_container()

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
        values = list(
            executor.map(lambda _: container.sequences.next_value(ORDER_NUMBER_SEQUENCE), range(50))
        )

    assert sorted(values) == list(range(1001, 1051))


class InterleavingGateway(RecordingGateway):
    """Runs ``during_capture`` while a contactless charge is in flight."""

    def __init__(self) -> None:
        super().__init__()
        self.during_capture = None

    async def charge_contactless(self, amount: Money) -> PaymentResult:
        if self.during_capture is not None:
            self.during_capture()
        return self._approved("TXN_tap")


def test_kitchen_progress_during_capture_does_not_abort_close() -> None:
    gateway = InterleavingGateway()
    container = _seeded(gateway)
    order = _open_mule_order(container)
    ticket = TicketDispatcher(
        ticket_repository=container.tickets,
        sequence_repository=container.sequences,
    ).dispatch(order)
    assert ticket is not None
    updater = UpdateTicketStatus(
        ticket_repository=container.tickets,
        order_repository=container.orders,
        publisher=container.publisher,
    )
    gateway.during_capture = lambda: updater.execute(
        DEMO_ORGANIZATION_ID, ticket.ticket_id, TicketStatus.PREPARING, NO_TRACE
    )

    result = asyncio.run(
        _close_use_case(container).execute(DEMO_ORGANIZATION_ID, order.order_id, _tap("34.84"), NO_TRACE)
    )

    assert result.order.status == "CLOSED"
    assert gateway.refunded == []
    stored_ticket = container.tickets.get_for_order(order.order_id)
    assert stored_ticket is not None
    assert stored_ticket.status == TicketStatus.SERVED
    vodka = container.inventory.get(Sku("VOD001"), DEMO_ORGANIZATION_ID)
    assert vodka is not None
    assert vodka.current_stock == Decimal("11.84")


def test_items_added_during_capture_refund_and_release_the_order() -> None:
    gateway = InterleavingGateway()
    container = _seeded(gateway)
    order = _open_mule_order(container)
    brownie = container.menu.get_item(MenuItemId("itm_brownie"), DEMO_ORGANIZATION_ID)
    assert brownie is not None

    def add_brownie() -> None:
        current = container.orders.get(order.order_id, DEMO_ORGANIZATION_ID)
        assert current is not None
        container.orders.update_with_version(
            current.add_line(line_from_menu_item(OrderLineId("orl_brownie"), brownie, 1)),
            expected_version=current.version,
        )

    gateway.during_capture = add_brownie

    with pytest.raises(OrderConflictError):
        asyncio.run(
            _close_use_case(container).execute(DEMO_ORGANIZATION_ID, order.order_id, _tap("34.84"), NO_TRACE)
        )

    assert gateway.refunded == ["TXN_tap"]
    stored = container.orders.get(order.order_id, DEMO_ORGANIZATION_ID)
    assert stored is not None
    assert stored.status == OrderStatus.OPEN
    assert stored.payment_status == PaymentStatus.PENDING
    assert len(stored.lines) == 2


def test_close_keeps_the_tip_taken_at_checkout() -> None:
    container = _seeded(RecordingGateway())
    mule = container.menu.get_item(MenuItemId("itm_moscow_mule"), DEMO_ORGANIZATION_ID)
    assert mule is not None
    order = create_open_order(
        order_id=OrderId("ord_tipped"),
        organization_id=DEMO_ORGANIZATION_ID,
        location_id=LocationId("loc_main"),
        order_number=container.sequences.next_value(ORDER_NUMBER_SEQUENCE),
        lines=[line_from_menu_item(OrderLineId("orl_tipped"), mule, 2)],
        tax_rate=Decimal("0.08875"),
        tip=Money.from_decimal("3.00", "USD"),
        now=NOW,
    )
    container.orders.add(order)

    result = asyncio.run(
        _close_use_case(container).execute(DEMO_ORGANIZATION_ID, order.order_id, _tap("37.84"), NO_TRACE)
    )

    assert result.order.status == "CLOSED"
    assert result.payment.amount.amountCents == 3784
