from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.api.container import Container, build_memory_container
from barback.application.dto.requests import RefundRequest
from barback.application.use_cases.context import NO_TRACE
from barback.application.use_cases.errors import PaymentFailedError
from barback.application.use_cases.payments import RefundPayment
from barback.domain.common.ids import LocationId, MenuItemId, OrderId, OrderLineId, PaymentId
from barback.domain.common.money import Money
from barback.domain.order.entities import create_open_order, line_from_menu_item
from barback.domain.payment.entities import (
    CapturedCharge,
    MobileWallet,
    PaymentCard,
    PaymentMethod,
    PaymentNotRefundableError,
    PaymentRecord,
    PaymentRecordStatus,
    PaymentResult,
)
from barback.tools.seed import DEMO_ORGANIZATION_ID, seed_demo_data

NOW = datetime(2026, 10, 18, 22, 0, tzinfo=timezone.utc)
PAYMENT_ID = PaymentId("pay_test")


class SlowRefundGateway:
    """Yields to the event loop before answering each refund."""

    def __init__(self, approve: bool = True) -> None:
        self._approve = approve
        self.refunds: list[tuple[str, int]] = []

    async def charge_card(self, amount: Money, card: PaymentCard) -> PaymentResult:
        raise AssertionError("no charges expected")

    async def charge_contactless(self, amount: Money) -> PaymentResult:
        raise AssertionError("no charges expected")

    async def charge_mobile(self, amount: Money, wallet: MobileWallet) -> PaymentResult:
        raise AssertionError("no charges expected")

    async def charge_split_leg(self, amount: Money, card: PaymentCard | None) -> PaymentResult:
        raise AssertionError("no charges expected")

    async def refund(self, transaction_id: str, amount: Money, reason: str | None) -> PaymentResult:
        await asyncio.sleep(0)
        self.refunds.append((transaction_id, amount.amount_cents))
        return PaymentResult(
            success=self._approve,
            payment_method="refund",
            timestamp=datetime.now(timezone.utc),
            processing_time_ms=3,
            transaction_id=f"REF_{transaction_id}" if self._approve else None,
            error_message=None if self._approve else "Refund declined",
        )


def _container_with_payment(
    gateway: SlowRefundGateway,
    method: PaymentMethod,
    amount: str,
    captures: tuple[CapturedCharge, ...],
) -> Container:
    container = build_memory_container(gateway=gateway)
    seed_demo_data(container, now=NOW)
    burger = container.menu.get_item(MenuItemId("itm_burger"), DEMO_ORGANIZATION_ID)
    assert burger is not None
    order = create_open_order(
        order_id=OrderId("ord_refund"),
        organization_id=DEMO_ORGANIZATION_ID,
        location_id=LocationId("loc_main"),
        order_number=1001,
        lines=[line_from_menu_item(OrderLineId("orl_refund"), burger, 1)],
        tax_rate=Decimal("0.08875"),
        tip=Money.zero("USD"),
        now=NOW,
    )
    container.orders.add(order)
    container.payments.add(
        PaymentRecord(
            payment_id=PAYMENT_ID,
            organization_id=DEMO_ORGANIZATION_ID,
            order_id=order.order_id,
            method=method,
            status=PaymentRecordStatus.COMPLETED,
            amount=Money.from_decimal(amount, "USD"),
            created_at=NOW,
            transaction_id=",".join(charge.transaction_id for charge in captures) or None,
            receipt_number=10001,
            captures=captures,
        )
    )
    return container


def _charge(transaction_id: str, amount: str) -> CapturedCharge:
    return CapturedCharge(transaction_id=transaction_id, amount=Money.from_decimal(amount, "USD"))


def _refunder(container: Container) -> RefundPayment:
    return RefundPayment(
        payment_repository=container.payments,
        order_repository=container.orders,
        gateway=container.gateway,
        publisher=container.publisher,
    )


def test_concurrent_refunds_reach_the_gateway_once() -> None:
    gateway = SlowRefundGateway()
    container = _container_with_payment(
        gateway, PaymentMethod.CONTACTLESS, "20.69", (_charge("TXN_tap", "20.69"),)
    )
    refunder = _refunder(container)

    async def refund_twice() -> list[object]:
        return await asyncio.gather(
            refunder.execute(DEMO_ORGANIZATION_ID, PAYMENT_ID, RefundRequest(), NO_TRACE),
            refunder.execute(DEMO_ORGANIZATION_ID, PAYMENT_ID, RefundRequest(), NO_TRACE),
            return_exceptions=True,
        )

    results = asyncio.run(refund_twice())

    assert gateway.refunds == [("TXN_tap", 2069)]
    assert sum(isinstance(result, PaymentNotRefundableError) for result in results) == 1
    stored = container.payments.get(PAYMENT_ID, DEMO_ORGANIZATION_ID)
    assert stored is not None
    assert stored.status == PaymentRecordStatus.REFUNDED


def test_declined_refund_releases_the_payment() -> None:
    gateway = SlowRefundGateway(approve=False)
    container = _container_with_payment(
        gateway, PaymentMethod.CONTACTLESS, "20.69", (_charge("TXN_tap", "20.69"),)
    )

    with pytest.raises(PaymentFailedError):
        asyncio.run(
            _refunder(container).execute(DEMO_ORGANIZATION_ID, PAYMENT_ID, RefundRequest(), NO_TRACE)
        )

    stored = container.payments.get(PAYMENT_ID, DEMO_ORGANIZATION_ID)
    assert stored is not None
    assert stored.status == PaymentRecordStatus.COMPLETED
    assert stored.refund is None


def test_split_refund_returns_each_card_leg() -> None:
    gateway = SlowRefundGateway()
    container = _container_with_payment(
        gateway,
        PaymentMethod.SPLIT,
        "25.00",
        (_charge("TXN_a", "12.00"), _charge("TXN_b", "8.00")),
    )

    response = asyncio.run(
        _refunder(container).execute(DEMO_ORGANIZATION_ID, PAYMENT_ID, RefundRequest(), NO_TRACE)
    )

    assert gateway.refunds == [("TXN_a", 1200), ("TXN_b", 800)]
    assert response.status == "REFUNDED"
    assert response.refund is not None
    assert response.refund.transactionId == "REF_TXN_a,REF_TXN_b"
    assert response.refund.amount.amountCents == 2500


def test_partial_split_refund_walks_legs_in_order() -> None:
    gateway = SlowRefundGateway()
    container = _container_with_payment(
        gateway,
        PaymentMethod.SPLIT,
        "25.00",
        (_charge("TXN_a", "12.00"), _charge("TXN_b", "8.00")),
    )

    asyncio.run(
        _refunder(container).execute(
            DEMO_ORGANIZATION_ID,
            PAYMENT_ID,
            RefundRequest(amount=Decimal("15.00")),
            NO_TRACE,
        )
    )

    assert gateway.refunds == [("TXN_a", 1200), ("TXN_b", 300)]


def test_cash_refund_skips_the_gateway() -> None:
    gateway = SlowRefundGateway()
    container = _container_with_payment(gateway, PaymentMethod.CASH, "20.69", ())

    response = asyncio.run(
        _refunder(container).execute(DEMO_ORGANIZATION_ID, PAYMENT_ID, RefundRequest(), NO_TRACE)
    )

    assert gateway.refunds == []
    assert response.status == "REFUNDED"
