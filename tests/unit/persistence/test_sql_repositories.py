from __future__ import annotations

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.application.ports.repositories import (
    ORDER_NUMBER_SEQUENCE,
    RECEIPT_NUMBER_SEQUENCE,
    OptimisticConcurrencyError,
)
from barback.domain.common.ids import (
    InventoryItemId,
    LocationId,
    MenuItemId,
    OrderId,
    OrderLineId,
    OrganizationId,
    PaymentId,
    Sku,
)
from barback.domain.common.money import Money
from barback.domain.inventory.entities import (
    InventoryItem,
    StockMovement,
    TransactionType,
)
from barback.domain.menu.entities import MenuItem, PosCategory, RecipeComponent
from barback.domain.order.entities import (
    Order,
    OrderStatus,
    PaymentStatus,
    create_open_order,
    line_from_menu_item,
)
from barback.domain.payment.entities import (
    CapturedCharge,
    PaymentMethod,
    PaymentRecord,
    PaymentRecordStatus,
)
from barback.infrastructure.db.models.base import Base
from barback.infrastructure.db.repositories.inventory_repo import SqlAlchemyInventoryRepository
from barback.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from barback.infrastructure.db.repositories.payment_repo import SqlAlchemyPaymentRepository
from barback.infrastructure.db.repositories.sequence_repo import SqlAlchemySequenceRepository
from barback.infrastructure.db.repositories.settlement_repo import SqlAlchemySettlementRepository

ORG = OrganizationId("org_001")
NOW = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(tmp_path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{tmp_path / 'barback.db'}")
    Base.metadata.create_all(engine)
    return engine


def _mule() -> MenuItem:
    return MenuItem(
        item_id=MenuItemId("itm_mule"),
        organization_id=ORG,
        name="Moscow Mule",
        category="Signature Cocktails",
        pos_category=PosCategory.DRINKS,
        price=Money.from_decimal("16.00", "USD"),
        cost=Money.zero("USD"),
        preparation_time=3,
        recipe=(
            RecipeComponent(sku=Sku("VOD001"), quantity=Decimal("0.08")),
            RecipeComponent(sku=Sku("LIM001"), quantity=Decimal("0.5")),
        ),
    )


def _order(order_number: int = 1001) -> Order:
    return create_open_order(
        order_id=OrderId(f"ord_{order_number}"),
        organization_id=ORG,
        location_id=LocationId("loc_001"),
        order_number=order_number,
        lines=[line_from_menu_item(OrderLineId(f"orl_{order_number}"), _mule(), 2)],
        tax_rate=Decimal("0.08875"),
        tip=Money.zero("USD"),
        now=NOW,
    )


def _vodka(stock: str = "12") -> InventoryItem:
    return InventoryItem(
        item_id=InventoryItemId("inv_vod001"),
        organization_id=ORG,
        sku=Sku("VOD001"),
        name="Premium Vodka",
        category="Spirits",
        unit="bottles",
        current_stock=Decimal(stock),
        min_stock=Decimal("3"),
        max_stock=Decimal("20"),
        cost_per_unit=Money.from_decimal("35.00", "USD"),
        updated_at=NOW,
    )


def test_sequences_start_at_configured_values_and_increase(engine: Engine) -> None:
    sequences = SqlAlchemySequenceRepository(engine)

    orders = [sequences.next_value(ORDER_NUMBER_SEQUENCE) for _ in range(3)]
    receipt = sequences.next_value(RECEIPT_NUMBER_SEQUENCE)

    assert orders == [1001, 1002, 1003]
    assert receipt == 10001


def test_order_round_trip_keeps_lines_and_recipe(engine: Engine) -> None:
    repository = SqlAlchemyOrderRepository(engine)
    repository.add(_order())

    loaded = repository.get(OrderId("ord_1001"), ORG)

    assert loaded is not None
    assert loaded.order_number == 1001
    assert loaded.total.amount_cents == 3484
    assert loaded.lines[0].recipe == _mule().recipe
    assert loaded.created_at.tzinfo is not None
    assert repository.get(OrderId("ord_1001"), OrganizationId("org_other")) is None


def test_stale_version_is_rejected(engine: Engine) -> None:
    repository = SqlAlchemyOrderRepository(engine)
    order = _order()
    repository.add(order)

    updated = repository.update_with_version(order.transition_to(OrderStatus.PREPARING), expected_version=1)
    assert updated.version == 2

    with pytest.raises(OptimisticConcurrencyError):
        repository.update_with_version(order.transition_to(OrderStatus.CANCELLED), expected_version=1)

    current = repository.get(order.order_id, ORG)
    assert current is not None
    assert current.status == OrderStatus.PREPARING


def test_settlement_closes_order_records_payment_and_deducts(engine: Engine) -> None:
    orders = SqlAlchemyOrderRepository(engine)
    inventory = SqlAlchemyInventoryRepository(engine)
    payments = SqlAlchemyPaymentRepository(engine)
    order = _order()
    orders.add(order)
    inventory.add(_vodka())

    payment = PaymentRecord(
        payment_id=PaymentId("pay_001"),
        organization_id=ORG,
        order_id=order.order_id,
        method=PaymentMethod.CASH,
        status=PaymentRecordStatus.COMPLETED,
        amount=order.total,
        created_at=NOW,
        receipt_number=10001,
    )
    movements = [
        StockMovement(sku=Sku("VOD001"), movement_type=TransactionType.SALE, quantity=Decimal("0.16")),
        StockMovement(sku=Sku("LIM001"), movement_type=TransactionType.SALE, quantity=Decimal("1")),
    ]

    result = SqlAlchemySettlementRepository(engine).settle(
        order.close(NOW, PaymentMethod.CASH),
        expected_version=order.version,
        payment=payment,
        movements=movements,
        now=NOW,
    )

    assert result.order.status == OrderStatus.CLOSED
    assert result.order.payment_status == PaymentStatus.COMPLETED
    assert result.missing_skus == [Sku("LIM001")]
    assert [transaction.new_stock for transaction in result.transactions] == [Decimal("11.84")]

    vodka = inventory.get(Sku("VOD001"), ORG)
    assert vodka is not None
    assert vodka.current_stock == Decimal("11.84")
    stored = payments.get(PaymentId("pay_001"), ORG)
    assert stored is not None
    assert stored.receipt_number == 10001


def test_settlement_on_stale_order_commits_nothing(engine: Engine) -> None:
    orders = SqlAlchemyOrderRepository(engine)
    inventory = SqlAlchemyInventoryRepository(engine)
    payments = SqlAlchemyPaymentRepository(engine)
    order = _order()
    orders.add(order)
    inventory.add(_vodka())
    orders.update_with_version(order.transition_to(OrderStatus.PREPARING), expected_version=1)

    with pytest.raises(OptimisticConcurrencyError):
        SqlAlchemySettlementRepository(engine).settle(
            order.close(NOW, PaymentMethod.CASH),
            expected_version=1,
            payment=PaymentRecord(
                payment_id=PaymentId("pay_002"),
                organization_id=ORG,
                order_id=order.order_id,
                method=PaymentMethod.CASH,
                status=PaymentRecordStatus.COMPLETED,
                amount=order.total,
                created_at=NOW,
            ),
            movements=[
                StockMovement(sku=Sku("VOD001"), movement_type=TransactionType.SALE, quantity=Decimal("1"))
            ],
            now=NOW,
        )

    vodka = inventory.get(Sku("VOD001"), ORG)
    assert vodka is not None
    assert vodka.current_stock == Decimal("12")
    assert payments.get(PaymentId("pay_002"), ORG) is None


def test_sale_below_zero_clamps_stock(engine: Engine) -> None:
    inventory = SqlAlchemyInventoryRepository(engine)
    inventory.add(_vodka(stock="1"))

    transactions = inventory.apply_movements(
        ORG,
        [StockMovement(sku=Sku("VOD001"), movement_type=TransactionType.SALE, quantity=Decimal("3"))],
        NOW,
    )

    assert transactions[0].new_stock == Decimal("0")
    assert transactions[0].quantity == Decimal("-3")
    listed = inventory.list_transactions(ORG, Sku("VOD001"), limit=10)
    assert [transaction.transaction_type for transaction in listed] == [TransactionType.SALE]


def test_payment_status_claim_is_conditional(engine: Engine) -> None:
    orders = SqlAlchemyOrderRepository(engine)
    payments = SqlAlchemyPaymentRepository(engine)
    order = _order()
    orders.add(order)
    payment = PaymentRecord(
        payment_id=PaymentId("pay_split"),
        organization_id=ORG,
        order_id=order.order_id,
        method=PaymentMethod.SPLIT,
        status=PaymentRecordStatus.COMPLETED,
        amount=order.total,
        created_at=NOW,
        captures=(
            CapturedCharge(transaction_id="TXN_a", amount=Money(amount_cents=2000, currency="USD")),
            CapturedCharge(transaction_id="TXN_b", amount=Money(amount_cents=1484, currency="USD")),
        ),
    )
    payments.add(payment)

    claimed = payment.claim_refund(payment.amount)
    payments.update_if_status(claimed, expected_status=PaymentRecordStatus.COMPLETED)
    with pytest.raises(OptimisticConcurrencyError):
        payments.update_if_status(claimed, expected_status=PaymentRecordStatus.COMPLETED)

    stored = payments.get(PaymentId("pay_split"), ORG)
    assert stored is not None
    assert stored.status == PaymentRecordStatus.REFUNDING
    assert [charge.transaction_id for charge in stored.captures] == ["TXN_a", "TXN_b"]
    assert stored.captures[1].amount.amount_cents == 1484
